"""Domain Types — tests for the write-attempt state machine and version normalization."""

import pytest

from optilock.core.domain_types import (
    TERMINAL_STATES,
    WriteAttempt,
    WriteOutcome,
    WriteState,
    normalize_version,
)


def test_attempt_starts_idle():
    attempt = WriteAttempt(entity_type="Document", entity_id=1)
    assert attempt.state is WriteState.IDLE
    assert not attempt.done


@pytest.mark.parametrize("outcome", list(WriteOutcome))
def test_attempt_reaches_each_terminal_state(outcome):
    attempt = WriteAttempt(entity_type="Document", entity_id=1)
    attempt.begin()
    assert attempt.state is WriteState.ATTEMPTING
    attempt.finish(outcome)
    assert attempt.state in TERMINAL_STATES
    assert attempt.state.value == outcome.value
    assert attempt.done


def test_attempt_cannot_begin_twice():
    attempt = WriteAttempt(entity_type="Document", entity_id=1)
    attempt.begin()
    attempt.finish(WriteOutcome.CONFLICTED)
    with pytest.raises(RuntimeError):
        attempt.begin()


def test_attempt_cannot_finish_without_begin():
    attempt = WriteAttempt(entity_type="Document", entity_id=1)
    with pytest.raises(RuntimeError):
        attempt.finish(WriteOutcome.COMMITTED)


def test_normalize_version():
    assert normalize_version(None) == 0
    assert normalize_version(5) == 5
    with pytest.raises(ValueError):
        normalize_version(-2)
