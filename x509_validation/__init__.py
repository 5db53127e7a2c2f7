"""
X.509 certificate chain validation following RFC 5280 / RFC 6818.
"""
from .models.validation import (
    Checks, DEFAULT_CHECKS, FailedReason, FailureKind, ValidationReport
)
from .validation.chain_validator import ChainValidator, validate
from .validation.trust_store import TrustAnchorStore

__version__ = "0.1.0"

__all__ = [
    'Checks',
    'DEFAULT_CHECKS',
    'FailedReason',
    'FailureKind',
    'ValidationReport',
    'ChainValidator',
    'validate',
    'TrustAnchorStore'
]
