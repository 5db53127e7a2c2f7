"""
Ordering of a presented chain into a leaf-to-root path.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from cryptography import x509

from ..models.validation import Checks, FailedReason, EMPTY_CHAIN
from .certificate import describe, is_self_issued
from .trust_store import TrustAnchorStore, certificate_fingerprint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderedPath:
    """Certificates from leaf to terminal, each issued by the next one."""
    certificates: Tuple[x509.Certificate, ...]
    dropped: Tuple[x509.Certificate, ...] = ()

    def __post_init__(self):
        if not self.certificates:
            raise ValueError("An ordered path holds at least one certificate")

    def __len__(self) -> int:
        return len(self.certificates)

    def __iter__(self) -> Iterator[x509.Certificate]:
        return iter(self.certificates)

    @property
    def leaf(self) -> x509.Certificate:
        return self.certificates[0]

    @property
    def terminal(self) -> x509.Certificate:
        return self.certificates[-1]

    def links(self) -> List[Tuple[x509.Certificate, x509.Certificate]]:
        """(child, issuer) pairs along the path."""
        return list(zip(self.certificates, self.certificates[1:]))


@dataclass(frozen=True)
class OrderingResult:
    """Either an ordered path or the failures that prevented building one."""
    path: Optional[OrderedPath]
    failures: Tuple[FailedReason, ...] = ()

    @property
    def ok(self) -> bool:
        return self.path is not None


class _ChainGraph:
    """Issuer/subject edges over a bag of certificates, by input position."""

    def __init__(self, chain: Sequence[x509.Certificate]):
        self.chain = chain
        self.fingerprints = [certificate_fingerprint(cert) for cert in chain]
        self.by_subject: Dict[x509.Name, List[int]] = {}
        self.by_issuer: Dict[x509.Name, List[int]] = {}
        for position, cert in enumerate(chain):
            self.by_subject.setdefault(cert.subject, []).append(position)
            self.by_issuer.setdefault(cert.issuer, []).append(position)

    def leaf_candidates(self) -> List[int]:
        """Positions of certificates that issue no other certificate of the bag."""
        candidates = []
        for position, cert in enumerate(self.chain):
            issued = self.by_issuer.get(cert.subject, [])
            if all(other == position for other in issued):
                candidates.append(position)
        return candidates

    def build_path(self, start: int) -> List[int]:
        """
        Follow issuer names from start, picking the first unused certificate
        (in input order) whose subject is the current issuer.
        """
        path = [start]
        seen = {self.fingerprints[start]}
        tail = self.chain[start]

        while not is_self_issued(tail):
            next_position = None
            for position in self.by_subject.get(tail.issuer, []):
                if self.fingerprints[position] not in seen:
                    next_position = position
                    break
            if next_position is None:
                break
            path.append(next_position)
            seen.add(self.fingerprints[next_position])
            tail = self.chain[next_position]

        return path


def _is_anchored(cert: x509.Certificate, anchors: Optional[TrustAnchorStore]) -> bool:
    if anchors is None:
        return False
    return anchors.contains(cert) or bool(anchors.find_issuers(cert))


def _reorder(chain: Sequence[x509.Certificate],
             anchors: Optional[TrustAnchorStore] = None) -> OrderedPath:
    graph = _ChainGraph(chain)

    candidates = graph.leaf_candidates() or [0]
    best: List[int] = []
    best_rank = (0, False)
    for start in candidates:
        path = graph.build_path(start)
        # Longer paths first, then paths ending at a trust anchor
        rank = (len(path), _is_anchored(chain[path[-1]], anchors))
        if rank > best_rank:
            best, best_rank = path, rank

    selected = set(best)
    dropped = tuple(cert for position, cert in enumerate(chain) if position not in selected)
    if dropped:
        logger.debug(
            f"Ignoring {len(dropped)} certificates outside the path of {describe(chain[best[0]])}",
            extra={'extra_data': {'dropped': [describe(cert) for cert in dropped]}}
        )

    return OrderedPath(tuple(chain[position] for position in best), dropped)


def order_chain(checks: Checks, chain: Sequence[x509.Certificate],
                anchors: Optional[TrustAnchorStore] = None) -> OrderingResult:
    """
    Turn a presented chain into an ordered path.

    With strict ordering the chain is used as given, leaf first. Otherwise
    it is treated as an unordered bag that may contain unrelated
    certificates: the leaf is the certificate that issues no other one and
    yields the longest path, and issuers are selected by subject name, first
    occurrence winning. Certificates that are not on the path are dropped
    silently.

    Among leaf candidates with equally long paths, one whose path ends at a
    certificate held in, or named as issued by, the anchors is preferred;
    remaining ties go to the first in input order.
    """
    chain = list(chain)
    if not chain:
        return OrderingResult(None, (EMPTY_CHAIN,))

    if checks.check_strict_ordering:
        return OrderingResult(OrderedPath(tuple(chain)))

    return OrderingResult(_reorder(chain, anchors))
