"""
Host name matching against the names a certificate declares.

Candidates are the subject CommonName and every SubjectAltName DNS entry.
A wildcard candidate has '*' as its whole leftmost label and stands for
exactly one label of the host name.
"""
import logging
from enum import Enum
from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..models.validation import (
    Checks, DEFAULT_CHECKS, FailedReason, INVALID_WILDCARD, NO_COMMON_NAME
)
from .certificate import describe, get_extension

logger = logging.getLogger(__name__)

WILDCARD_LABEL = '*'


class _Outcome(Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    INVALID_WILDCARD = "invalid_wildcard"


def certificate_names(cert: x509.Certificate) -> Tuple[Optional[str], List[str]]:
    """Return the CommonName (if any) and the SubjectAltName DNS names of cert."""
    common_name = None
    for attribute in cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME):
        if isinstance(attribute.value, str) and attribute.value:
            common_name = attribute.value
            break

    alt_names = []
    san = get_extension(cert, x509.SubjectAlternativeName)
    if san is not None:
        alt_names = [name for name in san.get_values_for_type(x509.DNSName) if name]

    return common_name, alt_names


def split_labels(name: str) -> List[str]:
    """
    Lower-case a DNS name and split it into labels.

    One trailing dot is dropped; the empty name is a single empty label.
    """
    name = name.lower()
    if name.endswith('.'):
        name = name[:-1]
    return name.split('.')


def _is_too_broad(suffix: List[str]) -> bool:
    # Two short labels such as co.uk look like a public suffix.
    return len(suffix) == 2 and len(suffix[0]) <= 3 and len(suffix[1]) <= 2


def _match_candidate(host_labels: List[str], candidate: str) -> _Outcome:
    labels = split_labels(candidate)

    if WILDCARD_LABEL not in candidate:
        if '' in labels:
            return _Outcome.MISMATCH
        return _Outcome.MATCH if labels == host_labels else _Outcome.MISMATCH

    suffix = labels[1:]
    if labels[0] != WILDCARD_LABEL or any(WILDCARD_LABEL in label for label in suffix):
        return _Outcome.INVALID_WILDCARD
    if len(suffix) < 2 or _is_too_broad(suffix):
        return _Outcome.INVALID_WILDCARD
    if '' in suffix:
        return _Outcome.MISMATCH

    if len(host_labels) != len(labels) or not host_labels[0]:
        return _Outcome.MISMATCH
    return _Outcome.MATCH if host_labels[1:] == suffix else _Outcome.MISMATCH


def match_name(host_name: str, cert: x509.Certificate,
               checks: Checks = DEFAULT_CHECKS) -> List[FailedReason]:
    """
    Validate that the name used to reach a host matches the certificate.

    Every candidate is considered and any match accepts the certificate.
    Otherwise fail-fast mode reports the first defect found, and exhaustive
    mode reports each invalid wildcard followed by the name mismatch.
    """
    common_name, alt_names = certificate_names(cert)
    candidates = ([common_name] if common_name else []) + alt_names

    if not candidates:
        logger.debug(f"No names declared by {describe(cert)}")
        return [NO_COMMON_NAME]

    host_labels = split_labels(host_name)
    defects = []

    for candidate in candidates:
        outcome = _match_candidate(host_labels, candidate)
        if outcome is _Outcome.MATCH:
            logger.debug(f"Host name {host_name} matched {candidate}")
            return []
        if outcome is _Outcome.INVALID_WILDCARD:
            logger.debug(f"Invalid wildcard {candidate} in {describe(cert)}")
            defects.append(INVALID_WILDCARD)

    mismatch = FailedReason.name_mismatch(host_name)
    if not checks.check_exhaustive:
        return defects[:1] or [mismatch]
    return defects + [mismatch]
