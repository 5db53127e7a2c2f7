"""
Certificate chain validation: the public entry point composing ordering,
per-certificate checks, signature linkage, trust anchor resolution and
host name matching.
"""
import logging
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from cryptography import x509

from ..models.validation import (
    Checks, DEFAULT_CHECKS, FailedReason, ValidationReport, SELF_SIGNED, SIGNATURE_FAILED,
    UNKNOWN_CA
)
from .certificate import describe, is_self_issued
from .certificate_checker import as_utc, check_certificate
from .chain_orderer import OrderedPath, order_chain
from .errors import ValidationError
from .name_matcher import match_name
from .signature import SignatureVerifier, verify_link
from .trust_store import TrustAnchorStore


class ChainValidator:
    """
    Validates certificate chains against a set of trust anchors.

    A validator holds no per-call state and can be shared between threads
    as long as its trust store is not replaced during a call.
    """

    def __init__(self, trust_anchors: Union[TrustAnchorStore, Iterable[x509.Certificate]],
                 checks: Checks = DEFAULT_CHECKS,
                 verifier: Optional[SignatureVerifier] = None):
        """
        Initialize the validator.

        Args:
            trust_anchors: Trust store, or certificates to build one from
            checks: Default check policy
            verifier: Signature primitive (defaults to the cryptography backend)
        """
        if not isinstance(trust_anchors, TrustAnchorStore):
            trust_anchors = TrustAnchorStore(trust_anchors)
        self.trust_anchors = trust_anchors
        self.checks = checks
        self.verifier = verifier
        self.logger = logging.getLogger(__name__)

    def validate(self, chain: Sequence[x509.Certificate], now: datetime,
                 host_name: Optional[str] = None,
                 checks: Optional[Checks] = None) -> List[FailedReason]:
        """
        Validate a chain and return every triggered failure.

        An empty list means the chain is accepted under the check policy.
        """
        return self.validate_report(chain, now, host_name, checks).reasons

    def validate_report(self, chain: Sequence[x509.Certificate], now: datetime,
                        host_name: Optional[str] = None,
                        checks: Optional[Checks] = None) -> ValidationReport:
        """
        Validate a chain and describe the path that was evaluated.

        Raises:
            ValidationError: If the chain cannot be evaluated at all
        """
        checks = checks or self.checks
        now = as_utc(now)

        ordering = order_chain(checks, chain, self.trust_anchors)
        if not ordering.ok:
            self.logger.info("Certificate chain rejected: empty chain")
            return ValidationReport(list(ordering.failures), host_name=host_name, checked_at=now)

        path = ordering.path
        try:
            reasons = self._collect(self._evaluate(path, host_name, now, checks), checks)
        except ValidationError as e:
            self.logger.error(
                f"Certificate chain could not be evaluated: {e}",
                extra={'extra_data': {'leaf': describe(path.leaf), 'host_name': host_name}}
            )
            raise

        report = ValidationReport(
            reasons=reasons,
            path=path.certificates,
            dropped=path.dropped,
            host_name=host_name,
            checked_at=now
        )
        self._log_outcome(report)
        return report

    def _collect(self, findings: Iterator[List[FailedReason]], checks: Checks) -> List[FailedReason]:
        reasons = []
        for found in findings:
            reasons.extend(found)
            if found and not checks.check_exhaustive:
                break
        return reasons

    def _evaluate(self, path: OrderedPath, host_name: Optional[str], now: datetime,
                  checks: Checks) -> Iterator[List[FailedReason]]:
        """Yield the findings of each check in evaluation order."""
        if host_name is not None:
            yield match_name(host_name, path.leaf, checks)

        for position, cert in enumerate(path):
            yield check_certificate(now, checks, cert, position)
            if position + 1 < len(path):
                issuer = path.certificates[position + 1]
                yield [] if verify_link(cert, issuer, self.verifier) else [SIGNATURE_FAILED]

        yield self._resolve_terminal(path.terminal)

    def _resolve_terminal(self, cert: x509.Certificate) -> List[FailedReason]:
        """
        Decide whether the last certificate of the path is anchored.

        A certificate in the trust store is trusted as is. A self-signed
        certificate outside the store is SELF_SIGNED. Anything else must be
        signed by a store anchor named as its issuer: SIGNATURE_FAILED when
        such anchors exist but none verifies, UNKNOWN_CA when there are none.
        """
        if self.trust_anchors.contains(cert):
            self.logger.debug(f"Terminal certificate {describe(cert)} is a trust anchor")
            return []

        if is_self_issued(cert) and verify_link(cert, cert, self.verifier):
            return [SELF_SIGNED]

        anchors = self.trust_anchors.find_issuers(cert)
        for anchor in anchors:
            if verify_link(cert, anchor, self.verifier):
                self.logger.debug(f"Terminal certificate {describe(cert)} issued by anchor {describe(anchor)}")
                return []

        if anchors:
            return [SIGNATURE_FAILED]
        return [UNKNOWN_CA]

    def _log_outcome(self, report: ValidationReport):
        context = {
            'leaf': describe(report.path[0]),
            'host_name': report.host_name,
            'path_length': len(report.path),
            'dropped': len(report.dropped),
            'reasons': [str(reason) for reason in report.reasons],
        }
        if report.is_valid:
            self.logger.info("Certificate chain accepted", extra={'extra_data': context})
        else:
            self.logger.info(
                f"Certificate chain rejected: {', '.join(context['reasons'])}",
                extra={'extra_data': context}
            )


def validate(checks: Checks,
             trust_anchors: Union[TrustAnchorStore, Iterable[x509.Certificate]],
             host_name: Optional[str],
             now: datetime,
             chain: Sequence[x509.Certificate],
             verifier: Optional[SignatureVerifier] = None) -> List[FailedReason]:
    """
    Validate a certificate chain.

    Args:
        checks: Check policy
        trust_anchors: Trust store, or the trusted certificates
        host_name: Name used to reach the peer, or None to skip name matching
        now: Checking time
        chain: Certificates as presented by the peer
        verifier: Signature primitive (defaults to the cryptography backend)

    Returns:
        Every triggered failure; empty when the chain is accepted
    """
    return ChainValidator(trust_anchors, checks, verifier).validate(chain, now, host_name)
