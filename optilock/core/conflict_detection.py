"""Conflict Detection — turns an affected-row count into an outcome or a signal.

Invariants:
    - 1 row: COMMITTED, no signal
    - 0 rows on a version-checked write: CONFLICTED -> StaleVersionConflict
      (version mismatch and deleted row are deliberately indistinguishable)
    - 0 rows on an unconditional write: COMMITTED (last write wins, nothing to signal)
    - >1 rows: FAULTED -> InternalConsistencyError, never a conflict
    - The WriteAttempt reaches its terminal state before any signal is raised
"""

from optilock.core.domain_types import WriteAttempt, WriteOutcome
from optilock.core.errors import InternalConsistencyError, StaleVersionConflict


def classify_affected_rows(affected: int, *, conditional: bool) -> WriteOutcome:
    """Pure classification of a store's affected-row count."""
    if affected is None or affected < 0:
        raise ValueError(
            f"Store did not report an affected-row count (got {affected!r})",
        )
    if affected > 1:
        return WriteOutcome.FAULTED
    if affected == 0 and conditional:
        return WriteOutcome.CONFLICTED
    return WriteOutcome.COMMITTED


def check_affected_rows(attempt: WriteAttempt, affected: int) -> WriteOutcome:
    """Record the outcome on ``attempt`` and raise the matching signal, if any."""
    outcome = classify_affected_rows(affected, conditional=attempt.locking)
    attempt.affected_rows = affected
    attempt.finish(outcome)

    if outcome is WriteOutcome.CONFLICTED:
        raise StaleVersionConflict(
            attempt.entity_type, attempt.entity_id, attempt.expected_version,
            operation=attempt.kind.value,
        )
    if outcome is WriteOutcome.FAULTED:
        raise InternalConsistencyError(
            attempt.entity_type, attempt.entity_id, affected,
        )
    return outcome
