"""Unit tests for cooperative cancellation contexts."""

import time

import pytest

from clustermon.core.context import CANCELED, DEADLINE_EXCEEDED, Context
from clustermon.core.errors import CancellationError, TaskError


class TestContext:
    """Tests for cancellation and deadlines."""

    def test_background_is_never_done(self):
        ctx = Context.background()
        assert not ctx.done()
        assert ctx.error() is None
        assert ctx.remaining() is None
        ctx.check()

    def test_cancel_marks_done(self):
        ctx = Context.background()
        ctx.cancel()
        assert ctx.done()
        assert ctx.error() == CANCELED

    def test_cancel_keeps_first_reason(self):
        """Test that cancelling twice keeps the original reason."""
        ctx = Context.background()
        ctx.cancel("shutting down")
        ctx.cancel("again")
        assert ctx.error() == "shutting down"

    def test_check_raises_cancellation_error(self):
        ctx = Context.background()
        ctx.cancel()
        with pytest.raises(CancellationError, match=CANCELED):
            ctx.check()

    def test_cancellation_error_is_task_error(self):
        assert issubclass(CancellationError, TaskError)

    def test_expired_timeout(self):
        """Test that a zero timeout is immediately past its deadline."""
        ctx = Context.background().with_timeout(0)
        assert ctx.error() == DEADLINE_EXCEEDED
        assert ctx.remaining() == 0.0

    def test_remaining_counts_down(self):
        ctx = Context.background().with_timeout(60)
        remaining = ctx.remaining()
        assert 0 < remaining <= 60
        time.sleep(0.01)
        assert ctx.remaining() < remaining


class TestChildContext:
    """Tests for parent/child propagation."""

    def test_parent_cancel_propagates(self):
        parent = Context.background()
        child = parent.with_cancel()
        parent.cancel()
        assert child.done()
        assert child.error() == CANCELED

    def test_child_cancel_does_not_propagate_up(self):
        parent = Context.background()
        child = parent.with_cancel()
        child.cancel()
        assert child.done()
        assert not parent.done()

    def test_child_never_outlives_parent_deadline(self):
        """Test that a longer child timeout is clamped to the parent's."""
        parent = Context.background().with_timeout(1)
        child = parent.with_timeout(3600)
        assert child.deadline == parent.deadline

    def test_child_keeps_shorter_deadline(self):
        parent = Context.background().with_timeout(3600)
        child = parent.with_timeout(1)
        assert child.deadline < parent.deadline

    def test_with_cancel_inherits_deadline(self):
        parent = Context.background().with_timeout(30)
        assert parent.with_cancel().deadline == parent.deadline
