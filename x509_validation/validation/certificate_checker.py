"""
Checks that apply to a single certificate of a chain, independently of its neighbours.
"""
import logging
from datetime import datetime, timezone
from typing import List

from cryptography import x509
from cryptography.x509.oid import ExtensionOID

from ..models.validation import (
    Checks, FailedReason, EXPIRED, IN_FUTURE, NO_COMMON_NAME, NOT_ALLOWED_TO_SIGN,
    UNKNOWN_CRITICAL_EXTENSION
)
from .certificate import describe, get_extension, read_extensions
from .name_matcher import certificate_names

logger = logging.getLogger(__name__)

# Extensions this validator interprets. Any other extension marked critical
# must cause the certificate to be rejected.
UNDERSTOOD_EXTENSIONS = frozenset([
    ExtensionOID.BASIC_CONSTRAINTS,
    ExtensionOID.KEY_USAGE,
    ExtensionOID.EXTENDED_KEY_USAGE,
    ExtensionOID.SUBJECT_ALTERNATIVE_NAME,
    ExtensionOID.SUBJECT_KEY_IDENTIFIER,
    ExtensionOID.AUTHORITY_KEY_IDENTIFIER,
])


def as_utc(moment: datetime) -> datetime:
    """Make a checking time timezone-aware; naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def check_validity(now: datetime, cert: x509.Certificate) -> List[FailedReason]:
    """Validate that the checking time is between the validity bounds."""
    now = as_utc(now)
    if now < cert.not_valid_before_utc:
        return [IN_FUTURE]
    if now > cert.not_valid_after_utc:
        return [EXPIRED]
    return []


def check_has_name(cert: x509.Certificate) -> List[FailedReason]:
    common_name, alt_names = certificate_names(cert)
    if not common_name and not alt_names:
        return [NO_COMMON_NAME]
    return []


def check_ca_authorization(cert: x509.Certificate, position: int) -> List[FailedReason]:
    """
    Check that a certificate may sign the certificates below it.

    The certificate must be a CA per BasicConstraints, its KeyUsage (when
    present) must allow certificate signing, and its path length limit must
    cover the intermediate CAs between it and the leaf.
    """
    basic_constraints = get_extension(cert, x509.BasicConstraints)
    if basic_constraints is None or not basic_constraints.ca:
        logger.debug(f"{describe(cert)} is not a CA")
        return [NOT_ALLOWED_TO_SIGN]

    key_usage = get_extension(cert, x509.KeyUsage)
    if key_usage is not None and not key_usage.key_cert_sign:
        logger.debug(f"{describe(cert)} key usage does not allow certificate signing")
        return [NOT_ALLOWED_TO_SIGN]

    intermediates_below = max(position - 1, 0)
    if basic_constraints.path_length is not None and intermediates_below > basic_constraints.path_length:
        logger.debug(
            f"Path length constraint of {describe(cert)} exceeded: "
            f"allowed {basic_constraints.path_length}, found {intermediates_below}"
        )
        return [NOT_ALLOWED_TO_SIGN]

    return []


def check_critical_extensions(cert: x509.Certificate) -> List[FailedReason]:
    for extension in read_extensions(cert):
        if extension.critical and extension.oid not in UNDERSTOOD_EXTENSIONS:
            logger.debug(f"Unknown critical extension {extension.oid.dotted_string} in {describe(cert)}")
            return [UNKNOWN_CRITICAL_EXTENSION]
    return []


def check_certificate(now: datetime, checks: Checks, cert: x509.Certificate,
                      position: int = 0) -> List[FailedReason]:
    """
    Run the per-certificate checks on one element of an ordered path.

    Args:
        now: Checking time
        checks: Check policy
        cert: Certificate to check
        position: Index of cert in the ordered path, the leaf being 0

    Returns:
        Failures found, stopping at the first one unless checks are exhaustive
    """
    steps = []
    if checks.check_time_validity:
        steps.append(lambda: check_validity(now, cert))
    if position == 0:
        steps.append(lambda: check_has_name(cert))
    if checks.check_ca_constraints and position > 0:
        steps.append(lambda: check_ca_authorization(cert, position))
    steps.append(lambda: check_critical_extensions(cert))

    failures = []
    for step in steps:
        found = step()
        failures.extend(found)
        if found and not checks.check_exhaustive:
            break

    return failures
