"""Task completion and recurring task regeneration."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from .exceptions import RegenerationFailed, TTError
from .recurring import OccurrenceCalculator, RecurrenceKind
from .storage import TaskStore
from .todo import Task, TaskState, TaskStatus, TaskType
from .utils.datetime import now_utc

logger = logging.getLogger(__name__)


@dataclass
class CompleteResult:
    """Outcome of completing one task."""
    completed: Task
    next_task: Optional[Task] = None
    regeneration_error: Optional[RegenerationFailed] = None


class CompletionOrchestrator:
    """Completes tasks and regenerates recurring ones.

    Ids are processed one at a time in order. The batch is not transactional:
    the first error stops processing, tasks already completed stay completed,
    and the error carries the results gathered so far in `partial_results`.

    A recurring task whose successor cannot be built (unreadable rule JSON,
    failed create) is still completed. By default the failure is logged and
    recorded on the result without being raised; with `strict_regeneration`
    it is raised as RegenerationFailed instead.
    """

    def __init__(self, store: TaskStore,
                 calculator: Optional[OccurrenceCalculator] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 strict_regeneration: bool = False):
        self.store = store
        self.clock = clock or now_utc
        self.calculator = calculator or OccurrenceCalculator(clock=lambda: self.clock())
        self.strict_regeneration = strict_regeneration

    def complete(self, ids: List[int]) -> List[CompleteResult]:
        """Complete each task in ids, regenerating recurring tasks.

        Raises:
            NotFoundError: If an id does not exist; earlier ids stay completed.
            InvalidTransitionError: If a task is already completed.
            RegenerationFailed: Only with strict_regeneration.
        """
        completed_at = self.clock()
        results: List[CompleteResult] = []

        for task_id in ids:
            try:
                results.append(self._complete_one(task_id, completed_at))
            except TTError as e:
                e.partial_results = list(results)
                raise

        return results

    def _complete_one(self, task_id: int, completed_at: datetime) -> CompleteResult:
        task = self.store.get_by_id(task_id)

        if task.is_container:
            self._complete_with_children(task, completed_at)
        else:
            task.complete(completed_at)
            self.store.update(task)
        logger.info(f"Completed task {task.id}: {task.title}")

        result = CompleteResult(completed=task)
        if self.should_regenerate(task):
            try:
                result.next_task = self.regenerate(task)
            except RegenerationFailed as e:
                if self.strict_regeneration:
                    raise
                logger.warning(str(e))
                result.regeneration_error = e
        return result

    def _complete_with_children(self, container: Task, completed_at: datetime):
        """Complete a project and its open children with one timestamp."""
        container.complete(completed_at)
        self.store.update(container)
        for child in self.store.children_of(container.id):
            if child.is_done:
                continue
            child.complete(completed_at)
            self.store.update(child)
            logger.debug(f"Completed task {child.id} with project {container.id}")

    def should_regenerate(self, task: Task) -> bool:
        """Check whether a just-completed task gets a successor."""
        if task.is_container or not task.has_recurrence or task.recur_paused:
            return False
        if task.recurrence_ended(self.calculator.today()):
            logger.debug(f"Recurrence of task {task.id} ended on {task.recur_end}")
            return False
        return True

    def regenerate(self, task: Task) -> Task:
        """Create and store the successor of a completed recurring task.

        Raises:
            RegenerationFailed: If the rule cannot be read or the successor
                cannot be stored.
        """
        try:
            rule = task.rule()
            kind = task.recur_kind or RecurrenceKind.FIXED
            anchor = task.completed_at if kind == RecurrenceKind.RELATIVE else None
            next_date = self.calculator.next_occurrence(rule, kind, anchor)

            successor = Task(
                title=task.title,
                description=task.description,
                task_type=TaskType.TASK,
                container_id=task.container_id,
                area_id=None if task.container_id is not None else task.area_id,
                tags=list(task.tags),
                state=TaskState.ACTIVE,
                status=TaskStatus.TODO,
                created_at=self.clock(),
                recur_kind=task.recur_kind,
                recur_rule=task.recur_rule,
                recur_end=task.recur_end,
                # Always point at the root of the chain
                recur_lineage_id=task.recur_lineage_id if task.recur_lineage_id is not None else task.id,
            )
            if task.due_date is not None:
                successor.due_date = next_date
            else:
                successor.planned_date = next_date

            self.store.create(successor)
        except TTError as e:
            raise RegenerationFailed(task.id, e) from e

        logger.info(f"Regenerated task {task.id} as {successor.id} on {next_date}")
        return successor


def complete_tasks(store: TaskStore, ids: List[int], **kwargs) -> List[CompleteResult]:
    """Complete tasks with a one-off orchestrator."""
    return CompletionOrchestrator(store, **kwargs).complete(ids)
