"""Per-item transfer outcomes and run summaries."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .modes import Operation


class OutcomeStatus(str, Enum):
    TRANSFERRED = "transferred"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    UNCHANGED = "unchanged"
    """Remote copy is not older than the local file"""

    LOCAL_EXISTS = "local_exists"
    """Local file still exists, so clean keeps the object"""


@dataclass(frozen=True)
class TransferOutcome:
    """Result of one item's transfer attempt."""

    relative_path: str
    status: OutcomeStatus
    reason: Optional[SkipReason] = None
    error: Optional[BaseException] = None
    size: int = 0

    @property
    def transferred(self) -> bool:
        return self.status is OutcomeStatus.TRANSFERRED

    @classmethod
    def done(cls, relative_path: str, size: int = 0) -> "TransferOutcome":
        return cls(relative_path, OutcomeStatus.TRANSFERRED, size=size)

    @classmethod
    def skipped(
        cls, relative_path: str, reason: SkipReason = SkipReason.UNCHANGED
    ) -> "TransferOutcome":
        return cls(relative_path, OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, relative_path: str, error: BaseException) -> "TransferOutcome":
        return cls(relative_path, OutcomeStatus.FAILED, error=error)


@dataclass(frozen=True)
class RunSummary:
    """Immutable summary of one operation run."""

    operation: Operation
    candidates: int
    """Items considered after filtering"""

    transferred: int
    skipped: int
    failed: int
    filtered: int
    """Items rejected by the extension filter"""

    elapsed: float
    """Wall time in seconds"""

    dry_run: bool = False

    @classmethod
    def from_outcomes(
        cls,
        operation: Operation,
        outcomes: Iterable[TransferOutcome],
        filtered: int,
        elapsed: float,
        dry_run: bool = False,
    ) -> "RunSummary":
        outcomes = list(outcomes)
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1
        return cls(
            operation=operation,
            candidates=len(outcomes),
            transferred=counts[OutcomeStatus.TRANSFERRED],
            skipped=counts[OutcomeStatus.SKIPPED],
            failed=counts[OutcomeStatus.FAILED],
            filtered=filtered,
            elapsed=elapsed,
            dry_run=dry_run,
        )
