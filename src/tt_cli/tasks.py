"""Task use cases: creating, scheduling, filing and listing tasks."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional, Protocol

from .area import Area
from .completion import CompleteResult, CompletionOrchestrator
from .exceptions import ConstraintError, TTError
from .recurring import OccurrenceCalculator, RecurrenceParser
from .storage import TaskStore
from .todo import Task, TaskState, TaskType, normalize_tags
from .utils.datetime import now_utc, to_date
from .views import View, filter_view, parse_sort, sort_tasks

logger = logging.getLogger(__name__)


class ContainerLookup(Protocol):
    """Resolves a project name to its task."""

    def resolve(self, name: str) -> Task:
        ...


class AreaLookup(Protocol):
    """Resolves an area name to the area."""

    def resolve(self, name: str) -> Area:
        ...


class StoreContainerLookup:
    """ContainerLookup backed by a task store."""

    def __init__(self, store: TaskStore):
        self.store = store

    def resolve(self, name: str) -> Task:
        return self.store.get_project_by_name(name)


class StoreAreaLookup:
    """AreaLookup backed by a task store."""

    def __init__(self, store: TaskStore):
        self.store = store

    def resolve(self, name: str) -> Area:
        return self.store.get_area_by_name(name)


@dataclass
class CreateOptions:
    """Optional settings for a new task."""
    description: str = ""
    project: Optional[str] = None
    area: Optional[str] = None
    planned_date: Optional[date] = None
    due_date: Optional[date] = None
    someday: bool = False
    recurrence: Optional[str] = None
    recurrence_end: Optional[date] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class ListFilter:
    """Narrows a listing; every set field must match."""
    project: Optional[str] = None
    area: Optional[str] = None
    tag: Optional[str] = None
    search: Optional[str] = None  # Substring of the title


class TaskService:
    """Entry point for every task operation the CLI offers."""

    def __init__(self, store: TaskStore,
                 container_lookup: Optional[ContainerLookup] = None,
                 area_lookup: Optional[AreaLookup] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 strict_regeneration: bool = False):
        self.store = store
        self.container_lookup = container_lookup or StoreContainerLookup(store)
        self.area_lookup = area_lookup or StoreAreaLookup(store)
        self.clock = clock or now_utc
        self.completion = CompletionOrchestrator(
            store,
            calculator=OccurrenceCalculator(clock=lambda: self.clock()),
            clock=lambda: self.clock(),
            strict_regeneration=strict_regeneration,
        )

    def today(self) -> date:
        return to_date(self.clock())

    # Creation

    def create_task(self, title: str, options: Optional[CreateOptions] = None) -> Task:
        """Create a task.

        Raises:
            ConstraintError: If both a project and an area are requested.
            NotFoundError: If the project or area does not exist.
            ParseError: If the recurrence phrase is invalid.
        """
        options = options or CreateOptions()
        title = title.strip()
        if not title:
            raise ConstraintError("task title cannot be empty")
        if options.project and options.area:
            raise ConstraintError("a task can belong to a project or an area, not both")

        task = Task(title=title, description=options.description, created_at=self.clock(),
                    tags=list(options.tags))
        if options.project:
            task.set_container(self.container_lookup.resolve(options.project).id)
        if options.area:
            task.set_area(self.area_lookup.resolve(options.area).id)

        task.planned_date = options.planned_date
        task.due_date = options.due_date
        # Someday only sticks to an unscheduled task
        if options.someday and options.planned_date is None and options.due_date is None:
            task.state = TaskState.SOMEDAY

        if options.recurrence:
            parsed = RecurrenceParser.parse(options.recurrence)
            task.set_recurrence(parsed.kind, parsed.rule, options.recurrence_end)

        self.store.create(task)
        return task

    def create_project(self, title: str, area: Optional[str] = None) -> Task:
        title = title.strip()
        if not title:
            raise ConstraintError("project title cannot be empty")
        project = Task(title=title, task_type=TaskType.PROJECT, created_at=self.clock())
        if area:
            project.set_area(self.area_lookup.resolve(area).id)
        self.store.create(project)
        return project

    def rename_project(self, name: str, new_title: str) -> Task:
        project = self.container_lookup.resolve(name)
        return self.set_title(project.id, new_title)

    def delete_project(self, name: str) -> List[Task]:
        """Delete a project together with its tasks."""
        project = self.container_lookup.resolve(name)
        return self.delete([project.id])

    def create_area(self, name: str) -> Area:
        return self.store.create_area(name)

    def rename_area(self, name: str, new_name: str) -> Area:
        return self.store.rename_area(name, new_name)

    def delete_area(self, name: str) -> Area:
        return self.store.delete_area(name)

    def list_areas(self) -> List[Area]:
        return self.store.list_areas()

    # Lookups

    def get(self, task_id: int) -> Task:
        return self.store.get_by_id(task_id)

    def _modify(self, task_id: int, change: Callable[[Task], None]) -> Task:
        task = self.store.get_by_id(task_id)
        change(task)
        self.store.update(task)
        return task

    # Lifecycle

    def complete(self, ids: List[int]) -> List[CompleteResult]:
        return self.completion.complete(ids)

    def uncomplete(self, ids: List[int]) -> List[Task]:
        """Reopen tasks in order, stopping at the first failure."""
        reopened: List[Task] = []
        for task_id in ids:
            try:
                reopened.append(self._modify(task_id, lambda t: t.uncomplete()))
            except TTError as e:
                e.partial_results = list(reopened)
                raise
        return reopened

    def delete(self, ids: List[int]) -> List[Task]:
        """Delete tasks in order, stopping at the first failure.

        Deleting a project deletes its children as well; they are included
        in the result after the project.
        """
        deleted: List[Task] = []
        for task_id in ids:
            if any(t.id == task_id for t in deleted):
                continue
            try:
                task = self.store.get_by_id(task_id)
                children = self.store.children_of(task_id) if task.is_container else []
                self.store.delete(task_id)
            except TTError as e:
                e.partial_results = list(deleted)
                raise
            deleted.append(task)
            deleted.extend(children)
        return deleted

    def defer(self, task_id: int) -> Task:
        return self._modify(task_id, lambda t: t.defer())

    def activate(self, task_id: int) -> Task:
        return self._modify(task_id, lambda t: t.activate())

    def set_planned_date(self, task_id: int, value: Optional[date]) -> Task:
        return self._modify(task_id, lambda t: t.set_planned_date(value))

    def set_due_date(self, task_id: int, value: Optional[date]) -> Task:
        return self._modify(task_id, lambda t: t.set_due_date(value))

    # Details

    def set_title(self, task_id: int, title: str) -> Task:
        title = title.strip()
        if not title:
            raise ConstraintError("task title cannot be empty")
        return self._modify(task_id, lambda t: setattr(t, "title", title))

    def set_description(self, task_id: int, description: str) -> Task:
        return self._modify(task_id, lambda t: setattr(t, "description", description))

    def set_project(self, task_id: int, name: Optional[str]) -> Task:
        """Move a task into a project (leaving its area), or out with None."""
        container_id = self.container_lookup.resolve(name).id if name else None
        return self._modify(task_id, lambda t: t.set_container(container_id))

    def set_area(self, task_id: int, name: Optional[str]) -> Task:
        """Move a task into an area (leaving its project), or out with None."""
        area_id = self.area_lookup.resolve(name).id if name else None
        return self._modify(task_id, lambda t: t.set_area(area_id))

    # Recurrence

    def set_recurrence(self, task_id: int, phrase: str, end: Optional[date] = None) -> Task:
        parsed = RecurrenceParser.parse(phrase)
        logger.debug(f"Setting recurrence of task {task_id} to {parsed.rule.format()} ({parsed.kind.value})")
        return self._modify(task_id, lambda t: t.set_recurrence(parsed.kind, parsed.rule, end))

    def clear_recurrence(self, task_id: int) -> Task:
        return self._modify(task_id, lambda t: t.clear_recurrence())

    def pause_recurrence(self, task_id: int) -> Task:
        return self._modify(task_id, lambda t: t.pause_recurrence())

    def resume_recurrence(self, task_id: int) -> Task:
        return self._modify(task_id, lambda t: t.resume_recurrence())

    def set_recurrence_end(self, task_id: int, end: Optional[date]) -> Task:
        return self._modify(task_id, lambda t: t.set_recurrence_end(end))

    # Tags

    def add_tag(self, task_id: int, tag: str) -> Task:
        return self.store.add_tag(task_id, tag)

    def remove_tag(self, task_id: int, tag: str) -> Task:
        return self.store.remove_tag(task_id, tag)

    def set_tags(self, task_id: int, tags: List[str]) -> Task:
        return self._modify(task_id, lambda t: setattr(t, "tags", normalize_tags(tags)))

    def list_tags(self):
        return self.store.list_tags()

    # Listing

    def list_view(self, view: View, sort: Optional[str] = None,
                  today: Optional[date] = None,
                  filters: Optional[ListFilter] = None) -> List[Task]:
        """List the tasks in a view, narrowed by filters and sorted by a sort spec.

        Raises:
            NotFoundError: If a filter names an unknown project or area.
            ParseError: If the sort spec is invalid.
        """
        options = parse_sort(sort)
        tasks = filter_view(self.store.list_tasks(), view, today or self.today())
        return sort_tasks(self.filter_tasks(tasks, filters), options)

    def search(self, query: str, sort: Optional[str] = None) -> List[Task]:
        """Find open tasks whose title contains query (case-insensitive)."""
        query = query.strip()
        if not query:
            raise ConstraintError("search query cannot be empty")
        tasks = self.store.list_tasks(lambda t: not t.is_done)
        return sort_tasks(self.filter_tasks(tasks, ListFilter(search=query)), parse_sort(sort))

    def filter_tasks(self, tasks: List[Task], filters: Optional[ListFilter]) -> List[Task]:
        """Keep the tasks matching every set filter field, in order."""
        if filters is None:
            return tasks
        if filters.project:
            container_id = self.container_lookup.resolve(filters.project).id
            tasks = [t for t in tasks if t.container_id == container_id]
        if filters.area:
            area_id = self.area_lookup.resolve(filters.area).id
            tasks = [t for t in tasks if t.area_id == area_id]
        if filters.tag:
            tag = filters.tag.strip()
            tasks = [t for t in tasks if tag in t.tags]
        if filters.search:
            needle = filters.search.strip().lower()
            tasks = [t for t in tasks if needle in t.title.lower()]
        return tasks

    def list_completed(self, since: Optional[date] = None) -> List[Task]:
        """Logbook: completed tasks, newest first."""
        tasks = self.store.list_tasks(lambda t: t.is_done)
        if since is not None:
            tasks = [t for t in tasks if to_date(t.completed_at) >= since]
        return sorted(tasks, key=lambda t: t.completed_at, reverse=True)

    def list_projects(self) -> List[Task]:
        return self.store.list_tasks(lambda t: t.is_container and not t.is_done)


def describe_recurrence(task: Task) -> str:
    """Summarize a task's recurrence, e.g. ``every mon,wed (fixed, until 2025-12-31)``."""
    if not task.has_recurrence:
        return "not recurring"

    try:
        phrase = task.rule().format()
    except TTError:
        phrase = "unreadable rule"

    details = [task.recur_kind.value]
    if task.recur_paused:
        details.append("paused")
    if task.recur_end is not None:
        details.append(f"until {task.recur_end.isoformat()}")
    return f"{phrase} ({', '.join(details)})"
