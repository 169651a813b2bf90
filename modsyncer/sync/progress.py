"""
Progress events and batch results for transfer runs.
"""

from dataclasses import dataclass, field
from enum import Enum

from .units import Category


class EventState(Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    """One state change (or byte progress) of a transfer unit."""
    unit: str
    category: Category
    state: EventState
    bytes_done: int = 0
    bytes_total: int = 0
    reason: str = ""
    attempt: int = 0

    @property
    def fraction(self) -> float:
        if self.bytes_total <= 0:
            return 0.0
        return min(1.0, self.bytes_done / self.bytes_total)


@dataclass
class TransferResult:
    """Aggregated outcome of a transfer run. Failures are listed, never dropped."""
    downloads_succeeded: int = 0
    downloads_failed: int = 0
    deletes_succeeded: int = 0
    deletes_failed: int = 0
    bytes_downloaded: int = 0
    cancelled: bool = False
    # unit id -> reason
    failures: dict = field(default_factory=dict)

    def record(self, category: Category, unit: str, succeeded: bool, reason: str = ""):
        if category is Category.DOWNLOAD:
            if succeeded:
                self.downloads_succeeded += 1
            else:
                self.downloads_failed += 1
        else:
            if succeeded:
                self.deletes_succeeded += 1
            else:
                self.deletes_failed += 1
        if not succeeded:
            self.failures[unit] = reason

    @property
    def failed(self) -> int:
        return self.downloads_failed + self.deletes_failed

    @property
    def ok(self) -> bool:
        return self.failed == 0 and not self.cancelled
