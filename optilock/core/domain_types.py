"""Domain Types — rich types for the write-attempt lifecycle.

Invariants:
    - A WriteAttempt moves IDLE -> ATTEMPTING -> exactly one terminal state
    - Terminal states: COMMITTED, CONFLICTED, FAULTED — none loops back to ATTEMPTING
    - Version values are non-negative ints; None means "never written" and counts as 0

Design Decisions:
    - str Enums: serialize into JSON log lines without custom encoders
    - WriteAttempt is a small mutable record, one per persist/delete call (ADR: no retry loop to share it)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, NewType


Version = NewType("Version", int)


def normalize_version(value: int | None) -> Version:
    """Stored NULL versions count as 0."""
    if value is None:
        return Version(0)
    if value < 0:
        raise ValueError(f"Version must be non-negative, got {value}")
    return Version(value)


# ─── Enums ───────────────────────────────────────────────────────

class WriteState(str, Enum):
    """Lifecycle of a single write attempt."""
    IDLE = "idle"
    ATTEMPTING = "attempting"
    COMMITTED = "committed"
    CONFLICTED = "conflicted"
    FAULTED = "faulted"


TERMINAL_STATES = frozenset({
    WriteState.COMMITTED, WriteState.CONFLICTED, WriteState.FAULTED,
})


class WriteOutcome(str, Enum):
    """Classification of an affected-row count."""
    COMMITTED = "committed"
    CONFLICTED = "conflicted"
    FAULTED = "faulted"


class WriteKind(str, Enum):
    UPDATE = "update"
    DELETE = "delete"


# ─── Attempt Record ──────────────────────────────────────────────

@dataclass
class WriteAttempt:
    """One write attempt against one row."""
    entity_type: str
    entity_id: Any
    kind: WriteKind = WriteKind.UPDATE
    locking: bool = True
    expected_version: Version | None = None
    state: WriteState = WriteState.IDLE
    affected_rows: int | None = None

    def begin(self) -> None:
        if self.state is not WriteState.IDLE:
            raise RuntimeError(f"Write attempt already {self.state.value}")
        self.state = WriteState.ATTEMPTING

    def finish(self, outcome: WriteOutcome) -> None:
        if self.state is not WriteState.ATTEMPTING:
            raise RuntimeError(
                f"Cannot finish write attempt in state {self.state.value}",
            )
        self.state = WriteState(outcome.value)

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES
