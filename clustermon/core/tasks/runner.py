"""Runner composing sibling reconciliation tasks."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from clustermon.core.context import Context
from clustermon.core.errors import TaskError, TaskGroupError
from clustermon.core.tasks.base import Task

logger = logging.getLogger(__name__)


@dataclass
class TaskOutcome:
    """Result of one task within a reconciliation cycle."""

    name: str
    error: Optional[TaskError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class TaskRunner:
    """Run a group of independent tasks for one reconciliation cycle.

    Tasks do not depend on each other, so a failing task never stops its
    siblings. In parallel mode tasks run on a thread pool; the client and
    factory they share must tolerate concurrent callers.

    Only TaskError failures are turned into outcomes; anything else is a
    programming error and propagates.

    Example:
        >>> runner = TaskRunner(build_tasks(ctx, config, client, factory))
        >>> outcomes = runner.run(ctx)
        >>> raise_for_outcomes(outcomes)
    """

    def __init__(
        self, tasks: Sequence[Task], parallel: bool = False, max_workers: Optional[int] = None
    ) -> None:
        self.tasks = list(tasks)
        self.parallel = parallel
        self.max_workers = max_workers

    def run(self, ctx: Context) -> List[TaskOutcome]:
        """Run every task once and return outcomes in task order."""
        if not self.parallel or len(self.tasks) < 2:
            return [self._run_one(task, ctx) for task in self.tasks]

        workers = self.max_workers or len(self.tasks)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="task") as pool:
            futures = [pool.submit(self._run_one, task, ctx) for task in self.tasks]
            return [future.result() for future in futures]

    @staticmethod
    def _run_one(task: Task, ctx: Context) -> TaskOutcome:
        logger.info(f"Running task {task.name}")
        try:
            task.run(ctx)
        except TaskError as e:
            logger.warning(f"Task {task.name} failed: {e}")
            return TaskOutcome(name=task.name, error=e)
        logger.info(f"Task {task.name} succeeded")
        return TaskOutcome(name=task.name)


def raise_for_outcomes(outcomes: Sequence[TaskOutcome]) -> None:
    """Raise TaskGroupError if any outcome failed.

    Raises:
        TaskGroupError: Aggregating every failed outcome
    """
    failed = [outcome for outcome in outcomes if not outcome.succeeded]
    if failed:
        raise TaskGroupError(failed)
