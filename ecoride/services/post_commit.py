"""
Post-Commit Tasks

Best-effort side effects that run after an authoritative state change has
been committed. Each task is fault-isolated: a failure is logged, recorded
for reconciliation and never stops the tasks after it.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

from ecoride.models.task_failure import TaskFailure
from ecoride.repositories.base import TaskFailureRepository

logger = logging.getLogger(__name__)


@dataclass
class _Task:
    name: str
    func: Callable[..., Awaitable[Any]]
    args: tuple
    kwargs: dict
    trip_id: Optional[str] = None
    booking_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class PostCommitReport:
    """What ran and what failed after a commit."""
    completed: List[str] = field(default_factory=list)
    failures: List[TaskFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


class PostCommitTasks:
    """
    Ordered list of named coroutines run sequentially in insertion order.

    Usage:
        tasks = PostCommitTasks("complete_trip", failures_repo)
        tasks.add("reward_driver", rewards.process_carbon_conversion,
                  driver_id, 5000, is_driver=True, user_id=driver_id)
        report = await tasks.run()
    """

    def __init__(self, context: str, failures: Optional[TaskFailureRepository] = None):
        self.context = context
        self.failures = failures
        self._tasks: List[_Task] = []

    def __len__(self) -> int:
        return len(self._tasks)

    def add(
        self,
        name: str,
        func: Callable[..., Awaitable[Any]],
        *args,
        trip_id: Optional[str] = None,
        booking_id: Optional[str] = None,
        user_id: Optional[str] = None,
        **kwargs,
    ) -> None:
        """Queue a coroutine function; reference ids are kept for the failure record."""
        self._tasks.append(_Task(
            name=name,
            func=func,
            args=args,
            kwargs=kwargs,
            trip_id=trip_id,
            booking_id=booking_id,
            user_id=user_id,
        ))

    async def run(self) -> PostCommitReport:
        report = PostCommitReport()

        for task in self._tasks:
            try:
                await task.func(*task.args, **task.kwargs)
                report.completed.append(task.name)
            except Exception as e:
                logger.error(
                    f"[{self.context}] post-commit task '{task.name}' failed: {e}",
                    exc_info=True,
                )
                failure = TaskFailure(
                    failure_id=str(uuid.uuid4()),
                    context=self.context,
                    task=task.name,
                    error=f"{type(e).__name__}: {e}",
                    trip_id=task.trip_id,
                    booking_id=task.booking_id,
                    user_id=task.user_id,
                )
                report.failures.append(failure)
                await self._record(failure)

        self._tasks.clear()
        return report

    async def _record(self, failure: TaskFailure) -> None:
        if self.failures is None:
            return
        try:
            await self.failures.insert(failure)
        except Exception as e:
            logger.error(f"Could not persist task failure {failure.failure_id}: {e}")
