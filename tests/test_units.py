"""
Tests for the per-unit transfer state machine.
"""

import pytest

from modsyncer.sync.units import Category, TransferUnit, UnitState


def test_success_path():
    unit = TransferUnit("a.jar", Category.DOWNLOAD)
    assert unit.state is UnitState.PENDING
    unit.start()
    assert unit.state is UnitState.IN_FLIGHT
    unit.succeed()
    assert unit.done and unit.succeeded
    assert unit.attempts == 1


def test_retryable_failure_retries_until_attempts_exhausted():
    unit = TransferUnit("a.jar", Category.DOWNLOAD, max_attempts=3)
    for expected in (UnitState.RETRYING, UnitState.RETRYING, UnitState.FAILED):
        unit.start()
        unit.fail("timeout", retryable=True)
        assert unit.state is expected
    assert unit.attempts == 3
    assert unit.reason == "timeout"


def test_permanent_failure_not_retried():
    unit = TransferUnit("a.jar", Category.DOWNLOAD, max_attempts=3)
    unit.start()
    unit.fail("HTTP 404", retryable=False)
    assert unit.state is UnitState.FAILED
    assert unit.attempts == 1


def test_abandon_pending():
    unit = TransferUnit("a.jar", Category.DELETE)
    unit.abandon("cancelled")
    assert unit.state is UnitState.FAILED
    assert unit.reason == "cancelled"
    assert unit.attempts == 0


def test_abandon_does_not_override_success():
    unit = TransferUnit("a.jar", Category.DELETE)
    unit.start()
    unit.succeed()
    unit.abandon("cancelled")
    assert unit.succeeded


def test_invalid_transitions():
    unit = TransferUnit("a.jar", Category.DOWNLOAD)
    with pytest.raises(RuntimeError):
        unit.succeed()
    unit.start()
    with pytest.raises(RuntimeError):
        unit.start()
    unit.succeed()
    with pytest.raises(RuntimeError):
        unit.fail("late", retryable=True)


def test_start_resets_progress():
    unit = TransferUnit("a.jar", Category.DOWNLOAD, total_bytes=10)
    unit.start()
    unit.bytes_done = 6
    unit.fail("timeout", retryable=True)
    unit.start()
    assert unit.bytes_done == 0
