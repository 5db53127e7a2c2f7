"""
Validation models: failure reasons, check policy and validation reports.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from cryptography import x509


class FailureKind(Enum):
    """Closed set of reasons a certificate chain can fail validation."""
    UNKNOWN_CRITICAL_EXTENSION = "unknown_critical_extension"
    EXPIRED = "expired"
    IN_FUTURE = "in_future"
    SELF_SIGNED = "self_signed"
    UNKNOWN_CA = "unknown_ca"
    NOT_ALLOWED_TO_SIGN = "not_allowed_to_sign"
    SIGNATURE_FAILED = "signature_failed"
    NO_COMMON_NAME = "no_common_name"
    NAME_MISMATCH = "name_mismatch"
    INVALID_WILDCARD = "invalid_wildcard"
    EMPTY_CHAIN = "empty_chain"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    FailureKind.UNKNOWN_CRITICAL_EXTENSION: "certificate contains an unknown critical extension",
    FailureKind.EXPIRED: "validity ends before checking time",
    FailureKind.IN_FUTURE: "validity starts after checking time",
    FailureKind.SELF_SIGNED: "certificate is self signed",
    FailureKind.UNKNOWN_CA: "unknown certificate authority",
    FailureKind.NOT_ALLOWED_TO_SIGN: "certificate is not allowed to sign (not a CA)",
    FailureKind.SIGNATURE_FAILED: "signature failed",
    FailureKind.NO_COMMON_NAME: "certificate does not have any common name",
    FailureKind.NAME_MISMATCH: "connection name and certificate do not match",
    FailureKind.INVALID_WILDCARD: "invalid wildcard in certificate",
    FailureKind.EMPTY_CHAIN: "empty chain of certificates",
}


@dataclass(frozen=True)
class FailedReason:
    """
    A single validation failure.

    Only NAME_MISMATCH carries a payload: the host name that was requested.
    """
    kind: FailureKind
    host: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.kind, FailureKind):
            raise TypeError(f"kind must be a FailureKind, got {type(self.kind).__name__}")
        if self.kind is FailureKind.NAME_MISMATCH:
            if not isinstance(self.host, str):
                raise ValueError("NAME_MISMATCH requires the requested host name")
        elif self.host is not None:
            raise ValueError(f"{self.kind.name} does not carry a host name")

    @classmethod
    def name_mismatch(cls, host: str) -> 'FailedReason':
        return cls(FailureKind.NAME_MISMATCH, host)

    @property
    def description(self) -> str:
        return self.kind.description

    def __str__(self):
        if self.kind is FailureKind.NAME_MISMATCH:
            return f"{self.kind.value}: {self.host}"
        return self.kind.value


UNKNOWN_CRITICAL_EXTENSION = FailedReason(FailureKind.UNKNOWN_CRITICAL_EXTENSION)
EXPIRED = FailedReason(FailureKind.EXPIRED)
IN_FUTURE = FailedReason(FailureKind.IN_FUTURE)
SELF_SIGNED = FailedReason(FailureKind.SELF_SIGNED)
UNKNOWN_CA = FailedReason(FailureKind.UNKNOWN_CA)
NOT_ALLOWED_TO_SIGN = FailedReason(FailureKind.NOT_ALLOWED_TO_SIGN)
SIGNATURE_FAILED = FailedReason(FailureKind.SIGNATURE_FAILED)
NO_COMMON_NAME = FailedReason(FailureKind.NO_COMMON_NAME)
INVALID_WILDCARD = FailedReason(FailureKind.INVALID_WILDCARD)
EMPTY_CHAIN = FailedReason(FailureKind.EMPTY_CHAIN)


@dataclass(frozen=True)
class Checks:
    """Policy flags controlling which checks run and how failures are collected."""

    # Check that the checking time is within the validity bounds of every
    # certificate in the chain.
    check_time_validity: bool = True

    # Trust the chain order as presented (leaf first). When off, the chain is
    # treated as an unordered bag: many servers send stale or unrelated
    # certificates along with the relevant ones.
    check_strict_ordering: bool = False

    # Check that signing certificates carry the CA basic constraint.
    # Turning this off is not recommended.
    check_ca_constraints: bool = True

    # Keep going after the first failure to gather every reason. When off,
    # it is never safe to ignore a reason that looks benign (e.g. EXPIRED):
    # the more serious checks after it were not performed.
    check_exhaustive: bool = False

    def __post_init__(self):
        for name in ('check_time_validity', 'check_strict_ordering',
                     'check_ca_constraints', 'check_exhaustive'):
            if not isinstance(getattr(self, name), bool):
                raise TypeError(f"{name} must be a bool")

    def replace(self, **flags) -> 'Checks':
        """Return a copy of these checks with some flags changed."""
        return replace(self, **flags)


DEFAULT_CHECKS = Checks()


@dataclass
class ValidationReport:
    """Outcome of one chain validation, with the path that was evaluated."""
    reasons: List[FailedReason]
    path: Tuple[x509.Certificate, ...] = ()
    dropped: Tuple[x509.Certificate, ...] = ()
    host_name: Optional[str] = None
    checked_at: Optional[datetime] = None

    @property
    def kinds(self) -> List[FailureKind]:
        return [reason.kind for reason in self.reasons]

    @property
    def is_valid(self) -> bool:
        """An empty list of reasons means the chain is accepted."""
        return len(self.reasons) == 0

    def to_dict(self) -> dict:
        return {
            'valid': self.is_valid,
            'host_name': self.host_name,
            'checked_at': self.checked_at.isoformat() if self.checked_at else None,
            'reasons': [str(reason) for reason in self.reasons],
            'path': [cert.subject.rfc4514_string() for cert in self.path],
            'dropped': [cert.subject.rfc4514_string() for cert in self.dropped],
        }
