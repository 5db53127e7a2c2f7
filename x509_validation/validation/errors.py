"""
Fatal validation errors.

Policy violations are reported as FailedReason values. The exceptions here
mean the input could not be evaluated at all.
"""


class ValidationError(Exception):
    """Base class for conditions that prevent a chain from being evaluated."""


class MalformedCertificateError(ValidationError):
    """A certificate object does not satisfy the certificate model contract."""

    def __init__(self, message: str, subject: str = None):
        super().__init__(message)
        self.subject = subject


class UnsupportedAlgorithmError(ValidationError):
    """The signature primitive cannot evaluate a key/algorithm combination."""


class TrustStoreError(ValidationError):
    """Trust anchors could not be loaded."""
