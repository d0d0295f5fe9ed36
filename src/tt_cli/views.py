"""Derived task views and list sorting.

Views are computed from a task's status, state, dates and placement rather
than stored. All date comparisons are by calendar day.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from .exceptions import ParseError
from .todo import Task, TaskState, TaskStatus
from .utils.datetime import today_local


class View(Enum):
    """Named task buckets."""
    TODAY = "today"
    UPCOMING = "upcoming"
    ANYTIME = "anytime"
    INBOX = "inbox"
    SOMEDAY = "someday"
    LOGBOOK = "logbook"


def _open_active(status: TaskStatus, state: TaskState) -> bool:
    return status == TaskStatus.TODO and state == TaskState.ACTIVE


def is_today(status: TaskStatus, state: TaskState, planned: Optional[date],
             due: Optional[date], today: date) -> bool:
    """Planned or due today or earlier."""
    return _open_active(status, state) and (
        (planned is not None and planned <= today) or (due is not None and due <= today)
    )


def is_upcoming(status: TaskStatus, state: TaskState, planned: Optional[date],
                due: Optional[date], today: date) -> bool:
    """Planned or due after today."""
    return _open_active(status, state) and (
        (planned is not None and planned > today) or (due is not None and due > today)
    )


def is_anytime(status: TaskStatus, state: TaskState, planned: Optional[date],
               due: Optional[date], has_container_or_area: bool) -> bool:
    """Unscheduled but filed under a project or area."""
    return (_open_active(status, state) and planned is None and due is None
            and has_container_or_area)


def is_inbox(status: TaskStatus, state: TaskState, planned: Optional[date],
             due: Optional[date], has_container_or_area: bool) -> bool:
    """Unscheduled and unfiled."""
    return (_open_active(status, state) and planned is None and due is None
            and not has_container_or_area)


def is_someday(status: TaskStatus, state: TaskState) -> bool:
    return status == TaskStatus.TODO and state == TaskState.SOMEDAY


def is_logbook(status: TaskStatus) -> bool:
    return status == TaskStatus.DONE


def in_view(task: Task, view: View, today: Optional[date] = None) -> bool:
    """Check whether a task belongs to a view."""
    today = today or today_local()
    if view == View.TODAY:
        return is_today(task.status, task.state, task.planned_date, task.due_date, today)
    if view == View.UPCOMING:
        return is_upcoming(task.status, task.state, task.planned_date, task.due_date, today)
    if view == View.ANYTIME:
        return is_anytime(task.status, task.state, task.planned_date, task.due_date,
                          task.has_container_or_area)
    if view == View.INBOX:
        return is_inbox(task.status, task.state, task.planned_date, task.due_date,
                        task.has_container_or_area)
    if view == View.SOMEDAY:
        return is_someday(task.status, task.state)
    return is_logbook(task.status)


def classify(task: Task, today: Optional[date] = None) -> List[View]:
    """Return every view the task belongs to."""
    today = today or today_local()
    return [view for view in View if in_view(task, view, today)]


def filter_view(tasks: Iterable[Task], view: View, today: Optional[date] = None) -> List[Task]:
    today = today or today_local()
    return [task for task in tasks if in_view(task, view, today)]


# Sorting

SORT_FIELDS: Dict[str, Callable[[Task], Any]] = {
    "id": lambda t: t.id,
    "title": lambda t: t.title.lower(),
    "planned": lambda t: t.planned_date,
    "due": lambda t: t.due_date,
    "created": lambda t: t.created_at,
    "project": lambda t: t.container_id,
    "area": lambda t: t.area_id,
}

DEFAULT_DESCENDING = {"created"}


@dataclass(frozen=True)
class SortOption:
    field: str
    descending: bool = False


def parse_sort(spec: Optional[str]) -> List[SortOption]:
    """Parse ``"due:desc,title"`` into sort options; empty means by id."""
    if not spec or not spec.strip():
        return [SortOption("id")]

    options = []
    for part in spec.split(","):
        name, _, direction = part.strip().lower().partition(":")
        if name not in SORT_FIELDS:
            raise ParseError(spec, f"unknown sort field {name!r} in {spec!r}; "
                                   f"use one of {', '.join(SORT_FIELDS)}")
        if direction not in ("", "asc", "desc"):
            raise ParseError(spec, f"unknown sort direction {direction!r} in {spec!r}; use asc or desc")
        descending = direction == "desc" or (direction == "" and name in DEFAULT_DESCENDING)
        options.append(SortOption(name, descending))
    return options


def sort_tasks(tasks: Iterable[Task], options: List[SortOption]) -> List[Task]:
    """Stable multi-key sort; tasks missing a value always sort last."""
    result = list(tasks)
    # Apply keys from least to most significant
    for option in reversed(options):
        key = SORT_FIELDS[option.field]
        present = [t for t in result if key(t) is not None]
        missing = [t for t in result if key(t) is None]
        present.sort(key=key, reverse=option.descending)
        result = present + missing
    return result
