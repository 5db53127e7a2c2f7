"""
Trust anchor store: certificates accepted by policy rather than by chain derivation.
"""
import logging
import os
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from .errors import TrustStoreError

logger = logging.getLogger(__name__)

PEM_SUFFIXES = ('.pem', '.crt')


def certificate_fingerprint(cert: x509.Certificate) -> bytes:
    """SHA-256 fingerprint of the DER encoding of a certificate."""
    return cert.fingerprint(hashes.SHA256())


def _normalize_fingerprint(value: Union[bytes, str]) -> bytes:
    if isinstance(value, bytes):
        return value
    try:
        return bytes.fromhex(value.replace(':', '').strip())
    except ValueError as e:
        raise ValueError(f"Invalid certificate fingerprint: {value}") from e


def load_pem_bundle(file_path: str) -> List[x509.Certificate]:
    """Load every certificate of a PEM bundle file."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Certificate file not found: {file_path}")

    with open(file_path, 'rb') as f:
        content = f.read()

    if not content.strip():
        raise ValueError(f"Certificate file is empty: {file_path}")

    return x509.load_pem_x509_certificates(content)


class TrustAnchorStore:
    """
    Immutable set of trust anchors.

    Lookups never mutate the store, so one instance can be shared by
    concurrent validations. Adding anchors returns a new store.
    """

    def __init__(self, certificates: Iterable[x509.Certificate] = ()):
        anchors: Dict[bytes, x509.Certificate] = {}
        by_subject: Dict[x509.Name, List[x509.Certificate]] = {}

        for cert in certificates:
            fingerprint = certificate_fingerprint(cert)
            if fingerprint in anchors:
                continue
            anchors[fingerprint] = cert
            by_subject.setdefault(cert.subject, []).append(cert)

        self._anchors = anchors
        self._by_subject = {subject: tuple(certs) for subject, certs in by_subject.items()}

    def __len__(self) -> int:
        return len(self._anchors)

    def __iter__(self) -> Iterator[x509.Certificate]:
        return iter(self._anchors.values())

    def __contains__(self, item) -> bool:
        return self.contains(item)

    def contains(self, cert_or_fingerprint: Union[x509.Certificate, bytes, str]) -> bool:
        """Check whether a certificate, or its SHA-256 fingerprint, is a trust anchor."""
        if isinstance(cert_or_fingerprint, x509.Certificate):
            fingerprint = certificate_fingerprint(cert_or_fingerprint)
        else:
            fingerprint = _normalize_fingerprint(cert_or_fingerprint)
        return fingerprint in self._anchors

    def find_issuers(self, cert: x509.Certificate) -> Tuple[x509.Certificate, ...]:
        """Anchors whose subject is the issuer name of cert, in insertion order."""
        return self._by_subject.get(cert.issuer, ())

    def with_certificates(self, certificates: Iterable[x509.Certificate]) -> 'TrustAnchorStore':
        """Return a new store holding these anchors plus the given certificates."""
        return TrustAnchorStore(list(self._anchors.values()) + list(certificates))

    @classmethod
    def from_pem_file(cls, file_path: str) -> 'TrustAnchorStore':
        """Load anchors from a PEM bundle."""
        try:
            certificates = load_pem_bundle(file_path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load trust anchors from {file_path}: {e}")
            raise TrustStoreError(f"Failed to load trust anchors from {file_path}: {e}") from e

        logger.info(f"Loaded {len(certificates)} trust anchors from {file_path}")
        return cls(certificates)

    @classmethod
    def from_directory(cls, directory: str) -> 'TrustAnchorStore':
        """Load anchors from every .pem/.crt file of a directory."""
        if not os.path.isdir(directory):
            raise TrustStoreError(f"Trust store directory not found: {directory}")

        certificates = []
        for filename in sorted(os.listdir(directory)):
            if not filename.endswith(PEM_SUFFIXES):
                continue
            cert_path = os.path.join(directory, filename)
            try:
                certificates.extend(load_pem_bundle(cert_path))
                logger.debug(f"Loaded trust anchor file: {filename}")
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load trust anchor file {filename}: {e}")

        logger.info(f"Loaded {len(certificates)} trust anchors from {directory}")
        return cls(certificates)

    @classmethod
    def load(cls, path: str) -> 'TrustAnchorStore':
        """Load anchors from a PEM bundle or a directory of PEM files."""
        if os.path.isdir(path):
            return cls.from_directory(path)
        return cls.from_pem_file(path)
