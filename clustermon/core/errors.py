"""Task-specific exceptions for error handling."""

from typing import Any, List, Optional


class TaskError(Exception):
    """Base class for failures surfaced by a reconciliation task.

    Every TaskError carries the step that failed so callers can pinpoint the
    offending resource from the message alone.

    Attributes:
        message: Description of the failure, already prefixed with the step
        step: One of "initializing", "reconciling" or "deleting" (optional)
        identity: ObjectIdentity or Asset the step was working on (optional)
    """

    def __init__(
        self, message: str, step: Optional[str] = None, identity: Optional[Any] = None
    ) -> None:
        """Initialize TaskError exception.

        Args:
            message: Error message describing the failure
            step: The reconciliation step that failed (optional)
            identity: The object or asset the step was working on (optional)
        """
        super().__init__(message)
        self.step = step
        self.identity = identity


class ConfigurationError(TaskError):
    """Raised when a desired-state object cannot be produced.

    This covers failures such as:
    - Missing or unparsable manifest templates
    - Invalid configuration values
    - Manifests rejected by schema validation

    Fixing cluster state does not help; the configuration has to change.
    """


class ReconciliationError(TaskError):
    """Raised when applying or deleting an object against the cluster fails.

    Permission problems, conflicts and transient API unavailability all land
    here. The next reconciliation cycle retries implicitly.
    """


class CancellationError(TaskError):
    """Raised when the execution context is cancelled or its deadline passes."""


class TaskGroupError(Exception):
    """Raised when one or more tasks of a group failed.

    Attributes:
        outcomes: The failed TaskOutcome entries, in task order
    """

    def __init__(self, outcomes: List[Any]) -> None:
        lines = [f"{o.name}: {o.error}" for o in outcomes]
        super().__init__(f"{len(outcomes)} task(s) failed:\n  " + "\n  ".join(lines))
        self.outcomes = outcomes
