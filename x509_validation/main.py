"""
Command line entry point: validate a PEM certificate chain.
"""

import json
import logging
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from .models.config import ValidatorConfig
from .models.validation import ValidationReport
from .services.config_service import ConfigService
from .services.logging_service import LoggingService
from .validation.chain_validator import ChainValidator
from .validation.errors import ValidationError
from .validation.trust_store import TrustAnchorStore, load_pem_bundle

EXIT_ACCEPTED = 0
EXIT_REJECTED = 1
EXIT_ERROR = 2


class ChainValidationApplication:
    """Wires configuration, logging and the trust store around a ChainValidator."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the application.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.config_path = config_path
        self.config: Optional[ValidatorConfig] = None
        self.logging_service: Optional[LoggingService] = None
        self.trust_anchors: Optional[TrustAnchorStore] = None
        self.validator: Optional[ChainValidator] = None
        self.logger = logging.getLogger(__name__)

    def initialize(self, **overrides) -> ValidatorConfig:
        """
        Load configuration, set up logging and load the trust store.

        Args:
            **overrides: ValidatorConfig fields that take precedence over the file

        Raises:
            FileNotFoundError: If the configuration file doesn't exist
            ValueError: If the configuration is invalid
            TrustStoreError: If the trust anchors cannot be loaded
        """
        if self.config_path:
            config = ConfigService().load_config(self.config_path)
        else:
            config = ValidatorConfig()

        overrides = {key: value for key, value in overrides.items() if value is not None}
        self.config = replace(config, **overrides)

        self.logging_service = LoggingService(self.config)
        self.logger.debug(f"Configuration loaded from: {self.config_path or 'defaults'}")

        if self.config.trust_store_path:
            self.trust_anchors = TrustAnchorStore.load(self.config.trust_store_path)
        else:
            self.logger.warning("No trust store configured")
            self.trust_anchors = TrustAnchorStore()

        self.validator = ChainValidator(self.trust_anchors, self.config.to_checks())
        return self.config

    def validate_file(self, chain_path: str, host_name: Optional[str] = None,
                      at: Optional[datetime] = None) -> ValidationReport:
        """Validate the certificates of a PEM bundle, leaf first."""
        if self.validator is None:
            raise ValueError("Application not initialized. Call initialize() first.")

        chain = load_pem_bundle(chain_path)
        now = at or datetime.now(timezone.utc)
        report = self.validator.validate_report(chain, now, host_name)

        self.logging_service.log_with_context(
            "info" if report.is_valid else "warning",
            f"Validated {chain_path}",
            chain_path=chain_path,
            presented=len(chain),
            **report.to_dict()
        )
        return report

    def add_trust_anchors(self, anchor_path: str) -> TrustAnchorStore:
        """
        Trust the certificates of a PEM bundle in addition to the trust store.

        Raises:
            TrustStoreError: If the bundle cannot be loaded
        """
        if self.validator is None:
            raise ValueError("Application not initialized. Call initialize() first.")

        extra = TrustAnchorStore.from_pem_file(anchor_path)
        self.trust_anchors = self.trust_anchors.with_certificates(extra)
        self.validator = ChainValidator(self.trust_anchors, self.config.to_checks())
        self.logger.info(f"Added {len(extra)} trust anchors from {anchor_path}")
        return self.trust_anchors

    def shutdown(self):
        if self.logging_service:
            self.logging_service.close()


def parse_time(value: str) -> datetime:
    """Parse an ISO-8601 checking time; times without an offset are UTC."""
    moment = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def main(argv=None):
    """Main entry point for the validator."""
    import argparse

    parser = argparse.ArgumentParser(description='Validate an X.509 certificate chain')
    parser.add_argument('chain', help='PEM file holding the chain presented by the peer')
    parser.add_argument('--host', help='Host name the chain must be valid for')
    parser.add_argument('--trust-store', help='PEM bundle or directory of trusted certificates')
    parser.add_argument('--anchor', action='append', default=[],
                        help='Extra PEM file of trusted certificates (repeatable)')
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--at', type=parse_time, help='Checking time in ISO-8601 (default: now)')
    parser.add_argument('--exhaustive', action='store_true', default=None,
                        help='Report every failure instead of stopping at the first')
    parser.add_argument('--strict-ordering', action='store_true', default=None,
                        help='Require the chain to be ordered leaf first')
    parser.add_argument('--no-time-check', dest='time_check', action='store_false', default=None,
                        help='Skip validity period checks')
    parser.add_argument('--no-ca-check', dest='ca_check', action='store_false', default=None,
                        help='Skip CA basic constraint checks')
    parser.add_argument('--json', action='store_true', help='Print the report as JSON')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Log level (uses config if not specified)')

    args = parser.parse_args(argv)

    app = ChainValidationApplication(config_path=args.config)
    try:
        app.initialize(
            check_exhaustive=args.exhaustive,
            check_strict_ordering=args.strict_ordering,
            check_time_validity=args.time_check,
            check_ca_constraints=args.ca_check,
            trust_store_path=args.trust_store,
            log_level=args.log_level
        )
        for anchor_path in args.anchor:
            app.add_trust_anchors(anchor_path)
        report = app.validate_file(args.chain, host_name=args.host, at=args.at)
    except (ValidationError, OSError, ValueError) as e:
        print(f"Validation error: {e}", file=sys.stderr)
        app.shutdown()
        sys.exit(EXIT_ERROR)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    elif report.is_valid:
        print("Certificate chain accepted")
    else:
        for reason in report.reasons:
            print(f"{reason}: {reason.description}")

    app.shutdown()
    sys.exit(EXIT_ACCEPTED if report.is_valid else EXIT_REJECTED)


if __name__ == '__main__':
    main()
