"""
Models package for the certificate chain validator.
"""

from .config import ValidatorConfig, ConfigIssue, ConfigValidationResult
from .validation import Checks, DEFAULT_CHECKS, FailedReason, FailureKind, ValidationReport

__all__ = [
    'ValidatorConfig',
    'ConfigIssue',
    'ConfigValidationResult',
    'Checks',
    'DEFAULT_CHECKS',
    'FailedReason',
    'FailureKind',
    'ValidationReport'
]
