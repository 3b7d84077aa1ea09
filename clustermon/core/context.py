"""Cooperative cancellation for reconciliation runs.

A Context is handed to every task and from there to every client call.
Nothing is interrupted forcibly: callers check the context before doing
blocking work and use ``remaining()`` as their request timeout.
"""

import threading
import time
from typing import Optional

from clustermon.core.errors import CancellationError

CANCELED = "context canceled"
DEADLINE_EXCEEDED = "context deadline exceeded"


class Context:
    """Cancellation flag plus an optional deadline.

    Child contexts created with ``with_cancel`` or ``with_timeout`` are done
    whenever their parent is done, and never outlive the parent's deadline.

    Example:
        >>> ctx = Context.background().with_timeout(30)
        >>> ctx.check()  # raises CancellationError once cancelled or expired
    """

    def __init__(
        self, deadline: Optional[float] = None, parent: Optional["Context"] = None
    ) -> None:
        self._cancelled = threading.Event()
        self._reason: Optional[str] = None
        self._parent = parent
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

    @classmethod
    def background(cls) -> "Context":
        """Return a context that is never done unless cancelled."""
        return cls()

    def with_cancel(self) -> "Context":
        return Context(parent=self)

    def with_timeout(self, seconds: float) -> "Context":
        """Return a child context expiring ``seconds`` from now."""
        return Context(deadline=time.monotonic() + seconds, parent=self)

    def cancel(self, reason: str = CANCELED) -> None:
        if not self._cancelled.is_set():
            self._reason = reason
            self._cancelled.set()

    def error(self) -> Optional[str]:
        """Return why the context is done, or None while it is still live."""
        if self._cancelled.is_set():
            return self._reason
        if self._parent is not None:
            parent_error = self._parent.error()
            if parent_error is not None:
                return parent_error
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DEADLINE_EXCEEDED
        return None

    def done(self) -> bool:
        return self.error() is not None

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Raise CancellationError if the context is done."""
        reason = self.error()
        if reason is not None:
            raise CancellationError(reason)
