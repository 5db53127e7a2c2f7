"""
Accessors over the parsed certificate model.
"""
from cryptography import x509

from .errors import MalformedCertificateError


def describe(cert: x509.Certificate) -> str:
    """Subject of a certificate as an RFC 4514 string, for logs."""
    return cert.subject.rfc4514_string()


def read_extensions(cert: x509.Certificate) -> x509.Extensions:
    """
    Parsed extensions of a certificate.

    Raises:
        MalformedCertificateError: If the extensions cannot be parsed
    """
    try:
        return cert.extensions
    except ValueError as e:
        raise MalformedCertificateError(
            f"Unparseable extensions: {e}", subject=describe(cert)
        ) from e


def get_extension(cert: x509.Certificate, extension_class):
    """The value of an extension of the given type, or None when absent."""
    try:
        return read_extensions(cert).get_extension_for_class(extension_class).value
    except x509.ExtensionNotFound:
        return None


def is_self_issued(cert: x509.Certificate) -> bool:
    return cert.subject == cert.issuer
