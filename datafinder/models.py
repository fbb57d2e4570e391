"""Data models for the email scraping pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


# =============================================================================
# TARGETS
# =============================================================================

@dataclass(frozen=True)
class Target:
    """A page to visit: an opaque label plus the address to fetch."""

    label: str
    url: str

    @classmethod
    def from_candidate(cls, candidate: Mapping[str, Any]) -> 'Target':
        """Build a target from a search-result style ``{title, link}`` dict.

        ``label``/``url`` keys are accepted as well.
        """
        label = candidate.get('title', candidate.get('label', '')) or ''
        url = candidate.get('link', candidate.get('url', '')) or ''
        return cls(label=str(label).strip(), url=str(url).strip())


# =============================================================================
# FETCH OUTCOMES
# =============================================================================

@dataclass(frozen=True)
class Success:
    status: int
    body: str
    url: str = ''
    elapsed: float = 0.0


@dataclass(frozen=True)
class HttpError:
    status: int


@dataclass(frozen=True)
class Timeout:
    pass


@dataclass(frozen=True)
class NetworkError:
    """Transport failure.

    ``kind`` is one of ``connect``, ``remote_closed`` or ``network``.
    """

    cause: str
    kind: str = 'network'


@dataclass(frozen=True)
class Cancelled:
    pass


@dataclass(frozen=True)
class InvalidTarget:
    reason: str


FetchOutcome = Union[Success, HttpError, Timeout, NetworkError, Cancelled, InvalidTarget]

RETRYABLE_OUTCOMES = (Timeout, NetworkError)


def describe_outcome(outcome: FetchOutcome) -> str:
    """Short classification used in logs and ``ExtractionResult.error``."""
    if isinstance(outcome, Success):
        return f"ok {outcome.status}"
    if isinstance(outcome, HttpError):
        return f"http {outcome.status}"
    if isinstance(outcome, Timeout):
        return 'timeout'
    if isinstance(outcome, NetworkError):
        return f"network error ({outcome.kind}): {outcome.cause}"
    if isinstance(outcome, Cancelled):
        return 'cancelled'
    if isinstance(outcome, InvalidTarget):
        return f"invalid url: {outcome.reason}"
    return repr(outcome)


# =============================================================================
# RESULTS
# =============================================================================

STATUS_FOUND = 'found'
STATUS_NOT_FOUND = 'not_found'
STATUS_FAILED = 'failed'


@dataclass(frozen=True)
class ExtractionResult:
    """The single outcome for one target in one run."""

    target: Target
    signals: Tuple[str, ...] = ()
    succeeded: bool = False
    error: Optional[str] = None
    attempts: int = 0

    @property
    def status(self) -> str:
        """``found``, ``not_found`` (fetched, nothing extracted) or ``failed``."""
        if not self.succeeded:
            return STATUS_FAILED
        return STATUS_FOUND if self.signals else STATUS_NOT_FOUND

    @property
    def has_signals(self) -> bool:
        return bool(self.signals)

    def to_record(self) -> Dict[str, Any]:
        return {
            'label': self.target.label,
            'url': self.target.url,
            'signals': list(self.signals),
        }


@dataclass(frozen=True)
class SiteStatus:
    """Liveness/responsiveness of a single site."""

    target: Target
    is_active: bool
    loads_fast: bool
    elapsed: Optional[float] = None


@dataclass(frozen=True)
class BatchReport:
    """One chunk of an orchestrated run.

    ``results`` only holds the signal-bearing results; the counters cover
    everything that was attempted in the chunk.
    """

    index: int
    size: int
    results: Tuple[ExtractionResult, ...] = ()
    attempted: int = 0
    succeeded: int = 0
    empty: int = 0
    failed: int = 0
    error: Optional[str] = None

    @classmethod
    def from_results(cls, index: int, size: int, results: List[ExtractionResult]) -> 'BatchReport':
        kept = tuple(r for r in results if r.has_signals)
        succeeded = sum(1 for r in results if r.succeeded)
        return cls(
            index=index,
            size=size,
            results=kept,
            attempted=len(results),
            succeeded=succeeded,
            empty=succeeded - len(kept),
            failed=len(results) - succeeded,
        )

    @property
    def signal_count(self) -> int:
        return sum(len(r.signals) for r in self.results)


@dataclass(frozen=True)
class RunReport:
    """Ordered batch reports for a whole orchestration run."""

    batches: Tuple[BatchReport, ...] = field(default_factory=tuple)

    @property
    def entries(self) -> List[ExtractionResult]:
        """Signal-bearing results, in batch order."""
        return [result for batch in self.batches for result in batch.results]

    @property
    def stats(self) -> Dict[str, int]:
        return {
            'batches': len(self.batches),
            'attempted': sum(b.attempted for b in self.batches),
            'succeeded': sum(b.succeeded for b in self.batches),
            'with_signals': sum(len(b.results) for b in self.batches),
            'empty': sum(b.empty for b in self.batches),
            'failed': sum(b.failed for b in self.batches),
            'signals': sum(b.signal_count for b in self.batches),
        }

    def to_records(self) -> List[Dict[str, Any]]:
        return [result.to_record() for result in self.entries]
