"""
Configuration data models for the certificate chain validator.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from .validation import Checks


@dataclass
class ValidatorConfig:
    """Main configuration class containing all validator settings."""

    # Check policy
    check_time_validity: bool = True
    check_strict_ordering: bool = False
    check_ca_constraints: bool = True
    check_exhaustive: bool = False

    # Trust settings
    trust_store_path: Optional[str] = None

    # Application settings
    log_level: str = "INFO"
    log_file_path: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_types()

    def _validate_types(self):
        """Ensure all configuration values have correct types."""
        for name in ('check_time_validity', 'check_strict_ordering',
                     'check_ca_constraints', 'check_exhaustive'):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be a boolean")

        if self.trust_store_path is not None and not isinstance(self.trust_store_path, str):
            raise ValueError("trust_store_path must be a string")

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")

    def to_checks(self) -> Checks:
        """Build the check policy described by this configuration."""
        return Checks(
            check_time_validity=self.check_time_validity,
            check_strict_ordering=self.check_strict_ordering,
            check_ca_constraints=self.check_ca_constraints,
            check_exhaustive=self.check_exhaustive
        )


@dataclass(frozen=True)
class ConfigIssue:
    """A problem found in a validator configuration; warnings do not block loading."""
    field: str
    message: str
    severity: str = "error"

    def __str__(self):
        return f"[{self.severity}] {self.field}: {self.message}"


@dataclass
class ConfigValidationResult:
    """Issues found while validating a ValidatorConfig."""
    issues: List[ConfigIssue] = field(default_factory=list)

    @property
    def errors(self) -> List[ConfigIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> List[ConfigIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def describe(self, severity: str) -> str:
        """One line per issue of the given severity."""
        return "\n".join(f"  - {issue}" for issue in self.issues if issue.severity == severity)
