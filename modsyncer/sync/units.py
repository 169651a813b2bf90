"""
Per-unit retry state machine for transfers.

    PENDING -> IN_FLIGHT -> SUCCEEDED
                         -> RETRYING -> IN_FLIGHT ...
                         -> FAILED

A unit is one file download, the single bundle download+extract, or one
deletion. The orchestrator's workers drive the transitions.
"""

from enum import Enum

from ..core.constants import MAX_ATTEMPTS


class UnitState(Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Category(Enum):
    DOWNLOAD = "download"
    DELETE = "delete"


class TransferUnit:
    """Tracks attempts and outcome of one unit of work."""

    def __init__(self, unit_id: str, category: Category, total_bytes: int = 0, max_attempts: int = MAX_ATTEMPTS):
        self.unit_id = unit_id
        self.category = category
        self.total_bytes = total_bytes
        self.max_attempts = max_attempts
        self.state = UnitState.PENDING
        self.attempts = 0
        self.bytes_done = 0
        self.reason = ""

    def __repr__(self):
        return f"TransferUnit({self.unit_id!r}, {self.state.value}, attempts={self.attempts})"

    @property
    def done(self) -> bool:
        return self.state in (UnitState.SUCCEEDED, UnitState.FAILED)

    @property
    def succeeded(self) -> bool:
        return self.state is UnitState.SUCCEEDED

    def start(self):
        if self.state not in (UnitState.PENDING, UnitState.RETRYING):
            raise RuntimeError(f"Cannot start {self!r}")
        self.state = UnitState.IN_FLIGHT
        self.attempts += 1
        self.bytes_done = 0

    def succeed(self):
        if self.state is not UnitState.IN_FLIGHT:
            raise RuntimeError(f"Cannot complete {self!r}")
        self.state = UnitState.SUCCEEDED
        self.reason = ""

    def fail(self, reason: str, retryable: bool):
        """Record a failed attempt; retry if allowed and attempts remain."""
        if self.state is not UnitState.IN_FLIGHT:
            raise RuntimeError(f"Cannot fail {self!r}")
        self.reason = reason
        if retryable and self.attempts < self.max_attempts:
            self.state = UnitState.RETRYING
        else:
            self.state = UnitState.FAILED

    def abandon(self, reason: str):
        """Give up without (another) attempt, e.g. on cancellation."""
        if self.done:
            return
        self.state = UnitState.FAILED
        self.reason = reason
