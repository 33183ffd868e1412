"""Tests for monitor.correlation.CorrelationTracker."""

import pytest

from monitor.correlation import CorrelationState, CorrelationTracker, PendingMutation
from monitor.errors import CorrelationError


def test_register_then_consume_once():
    tracker = CorrelationTracker()
    mutation = PendingMutation(target_path="/w/a.txt", action="write")
    assert tracker.state("x1") is CorrelationState.ABSENT

    tracker.register("x1", mutation)
    assert tracker.state("x1") is CorrelationState.PENDING
    assert len(tracker) == 1

    assert tracker.consume("x1") == mutation
    assert tracker.state("x1") is CorrelationState.CONSUMED
    assert len(tracker) == 0
    assert tracker.consume("x1") is None


def test_consume_unknown_id():
    tracker = CorrelationTracker()
    assert tracker.consume("nope") is None
    assert tracker.state("nope") is CorrelationState.ABSENT


def test_register_pending_id_twice_rejected():
    tracker = CorrelationTracker()
    tracker.register("x1", PendingMutation("/w/a.txt", "write"))
    with pytest.raises(CorrelationError):
        tracker.register("x1", PendingMutation("/w/b.txt", "edit"))
    assert tracker.consume("x1").target_path == "/w/a.txt"


def test_consumed_id_never_reused():
    tracker = CorrelationTracker()
    tracker.register("x1", PendingMutation("/w/a.txt", "write"))
    tracker.consume("x1")
    with pytest.raises(CorrelationError):
        tracker.register("x1", PendingMutation("/w/a.txt", "write"))
    assert tracker.state("x1") is CorrelationState.CONSUMED
