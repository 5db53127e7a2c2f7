"""
Signature linkage between a certificate and the certificate that issued it.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, padding, rsa

from .errors import MalformedCertificateError, UnsupportedAlgorithmError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureAlgorithm:
    """The signature algorithm a certificate declares for its own signature."""
    oid: x509.ObjectIdentifier
    hash_algorithm: Optional[hashes.HashAlgorithm]
    parameters: Any = None

    @classmethod
    def from_certificate(cls, cert: x509.Certificate) -> 'SignatureAlgorithm':
        """
        Read the declared signature algorithm of a certificate.

        Raises:
            UnsupportedAlgorithmError: If the algorithm is not known to the backend
        """
        try:
            return cls(
                oid=cert.signature_algorithm_oid,
                hash_algorithm=cert.signature_hash_algorithm,
                parameters=cert.signature_algorithm_parameters
            )
        except UnsupportedAlgorithm as e:
            raise UnsupportedAlgorithmError(
                f"Unsupported signature algorithm {cert.signature_algorithm_oid.dotted_string} "
                f"on {cert.subject.rfc4514_string()}: {e}"
            ) from e


class SignatureVerifier(ABC):
    """Signature verification primitive used to link certificates."""

    @abstractmethod
    def verify(self, public_key, algorithm: SignatureAlgorithm,
               signed_data: bytes, signature: bytes) -> bool:
        """
        Check a signature.

        Returns:
            True if the signature matches, False on any mismatch

        Raises:
            UnsupportedAlgorithmError: If the combination cannot be evaluated
        """


class CryptographySignatureVerifier(SignatureVerifier):
    """Verifies RSA, ECDSA, EdDSA and DSA signatures with the cryptography package."""

    def verify(self, public_key, algorithm: SignatureAlgorithm,
               signed_data: bytes, signature: bytes) -> bool:
        try:
            if isinstance(public_key, rsa.RSAPublicKey):
                if not isinstance(algorithm.parameters, (padding.PKCS1v15, padding.PSS)):
                    logger.debug(f"RSA key cannot verify {algorithm.oid.dotted_string}")
                    return False
                public_key.verify(signature, signed_data, algorithm.parameters,
                                  algorithm.hash_algorithm)

            elif isinstance(public_key, ec.EllipticCurvePublicKey):
                if not isinstance(algorithm.parameters, ec.ECDSA):
                    logger.debug(f"EC key cannot verify {algorithm.oid.dotted_string}")
                    return False
                public_key.verify(signature, signed_data, algorithm.parameters)

            elif isinstance(public_key, (ed25519.Ed25519PublicKey, ed448.Ed448PublicKey)):
                if algorithm.hash_algorithm is not None:
                    logger.debug(f"EdDSA key cannot verify {algorithm.oid.dotted_string}")
                    return False
                public_key.verify(signature, signed_data)

            elif isinstance(public_key, dsa.DSAPublicKey):
                if algorithm.hash_algorithm is None or algorithm.parameters is not None:
                    logger.debug(f"DSA key cannot verify {algorithm.oid.dotted_string}")
                    return False
                public_key.verify(signature, signed_data, algorithm.hash_algorithm)

            else:
                raise UnsupportedAlgorithmError(
                    f"Unsupported public key type: {type(public_key).__name__}"
                )
        except InvalidSignature:
            return False

        return True


_default_verifier = CryptographySignatureVerifier()


def verify_link(child: x509.Certificate, issuer: x509.Certificate,
                verifier: Optional[SignatureVerifier] = None) -> bool:
    """
    Verify that child was signed with the public key of issuer.

    A cryptographic mismatch (wrong key, wrong algorithm, tampered content)
    returns False. Only a certificate whose key or algorithm cannot be
    evaluated raises.
    """
    verifier = verifier or _default_verifier

    try:
        public_key = issuer.public_key()
    except UnsupportedAlgorithm as e:
        raise UnsupportedAlgorithmError(
            f"Unsupported public key on {issuer.subject.rfc4514_string()}: {e}"
        ) from e
    except ValueError as e:
        raise MalformedCertificateError(
            f"Unreadable public key: {e}", subject=issuer.subject.rfc4514_string()
        ) from e

    algorithm = SignatureAlgorithm.from_certificate(child)
    linked = verifier.verify(public_key, algorithm, child.tbs_certificate_bytes, child.signature)

    if not linked:
        logger.debug(
            f"Signature of {child.subject.rfc4514_string()} does not verify "
            f"with key of {issuer.subject.rfc4514_string()}"
        )
    return linked
