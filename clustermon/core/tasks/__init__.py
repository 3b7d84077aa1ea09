"""Reconciliation task implementation.

This package contains the component-agnostic task machinery:
- Task base class: enable branch, ordered apply, retirement of replaced components
- TaskRunner: composition of sibling tasks within one reconciliation cycle

Concrete component tasks live in clustermon.k8s.tasks.
"""

from clustermon.core.tasks.base import Task
from clustermon.core.tasks.runner import TaskOutcome, TaskRunner, raise_for_outcomes

__all__ = [
    "Task",
    "TaskOutcome",
    "TaskRunner",
    "raise_for_outcomes",
]
