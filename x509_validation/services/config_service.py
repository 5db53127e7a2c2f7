"""
Configuration service for loading and validating validator settings.
"""
import os
import configparser
from typing import Optional, Dict, Any
import logging

from ..models.config import ValidatorConfig, ConfigIssue, ConfigValidationResult

DEFAULT_CONFIG_CONTENT = """# Certificate Chain Validator Configuration File

[checks]
time_validity = true
strict_ordering = false
ca_constraints = true
exhaustive = false

[trust]
store_path = certs/trust-anchors.pem

[app]
log_level = INFO
log_file_path =
"""

# Configuration keys mapped to ValidatorConfig fields
CONFIG_MAPPING = {
    # Check policy
    "checks.time_validity": ("check_time_validity", bool),
    "check_time_validity": ("check_time_validity", bool),
    "checks.strict_ordering": ("check_strict_ordering", bool),
    "check_strict_ordering": ("check_strict_ordering", bool),
    "checks.ca_constraints": ("check_ca_constraints", bool),
    "check_ca_constraints": ("check_ca_constraints", bool),
    "checks.exhaustive": ("check_exhaustive", bool),
    "check_exhaustive": ("check_exhaustive", bool),

    # Trust settings
    "trust.store_path": ("trust_store_path", str),
    "trust_store_path": ("trust_store_path", str),

    # Application settings
    "app.log_level": ("log_level", str),
    "log_level": ("log_level", str),
    "app.log_file_path": ("log_file_path", str),
    "log_file_path": ("log_file_path", str),
}


class ConfigService:
    """Service for loading and validating validator configuration."""

    def __init__(self, config_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self._config = None
        if config_path:
            self._config = self.load_config(config_path)

    def get_config(self) -> ValidatorConfig:
        """
        Get the loaded configuration.

        Raises:
            ValueError: If no configuration has been loaded
        """
        if self._config is None:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config

    def load_config(self, config_path: str) -> ValidatorConfig:
        """
        Load configuration from a property file.

        Args:
            config_path: Path to the configuration file

        Returns:
            ValidatorConfig with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid or has validation errors
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        config_data = self._load_config_file(config_path)
        config = self._create_config_from_data(config_data)

        validation_result = self.validate_config(config)

        if not validation_result.is_valid:
            raise ValueError(
                f"Invalid validator configuration in {config_path}:\n"
                f"{validation_result.describe('error')}"
            )

        if validation_result.warnings:
            self.logger.warning(
                f"Validator configuration {config_path} has warnings:\n"
                f"{validation_result.describe('warning')}"
            )

        self._config = config
        return config

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration data from file."""
        config_parser = configparser.ConfigParser()

        try:
            config_parser.read(config_path)
        except configparser.Error as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        # Flatten to section.key, DEFAULT section items without prefix
        config_data = {}
        for section in config_parser.sections():
            for key, value in config_parser.items(section):
                config_data[f"{section}.{key}"] = value

        for key, value in config_parser.defaults().items():
            config_data.setdefault(key, value)

        return config_data

    def _create_config_from_data(self, config_data: Dict[str, Any]) -> ValidatorConfig:
        """Create ValidatorConfig from configuration data."""
        config_kwargs = {}

        for config_key, raw_value in config_data.items():
            if config_key not in CONFIG_MAPPING:
                continue
            field_name, field_type = CONFIG_MAPPING[config_key]
            try:
                if field_type == bool:
                    value = self._parse_bool(raw_value)
                else:
                    value = str(raw_value).strip() if raw_value is not None else None
                    # Empty paths mean "not set"
                    if value == "" and field_name != "log_level":
                        value = None
                config_kwargs[field_name] = value
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid value for {config_key}: {raw_value} ({e})")

        if "log_level" in config_kwargs and config_kwargs["log_level"]:
            config_kwargs["log_level"] = config_kwargs["log_level"].upper()

        return ValidatorConfig(**config_kwargs)

    def _parse_bool(self, value: Any) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "yes", "1", "on", "enabled"):
                return True
            if lowered in ("false", "no", "0", "off", "disabled"):
                return False
            raise ValueError("expected a boolean")
        return bool(value)

    def validate_config(self, config: ValidatorConfig) -> ConfigValidationResult:
        """
        Validate configuration settings.

        Args:
            config: Configuration object to validate

        Returns:
            ConfigValidationResult with validation results
        """
        issues = []

        if config.trust_store_path and not os.path.exists(config.trust_store_path):
            issues.append(ConfigIssue(
                "trust_store_path",
                f"Trust store not found: {config.trust_store_path}"
            ))
        elif not config.trust_store_path:
            issues.append(ConfigIssue(
                "trust_store_path",
                "No trust store configured, only self-contained chains can be accepted",
                "warning"
            ))

        if not config.check_ca_constraints:
            issues.append(ConfigIssue(
                "check_ca_constraints",
                "CA constraint checking is disabled, any certificate may sign",
                "warning"
            ))

        if not config.check_time_validity:
            issues.append(ConfigIssue(
                "check_time_validity",
                "Time validity checking is disabled, expired certificates are accepted",
                "warning"
            ))

        if config.log_file_path:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                issues.append(ConfigIssue(
                    "log_file_path",
                    f"Log directory does not exist: {log_dir}",
                    "warning"
                ))

        return ConfigValidationResult(issues)

    def create_default_config_file(self, config_path: str) -> None:
        """
        Create a default configuration file with example settings.

        Args:
            config_path: Path where to create the config file
        """
        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(config_path, 'w') as f:
            f.write(DEFAULT_CONFIG_CONTENT)
