"""Task data model and lifecycle for the tt application."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import InvalidTransitionError
from .recurring import RecurrenceKind, Rule
from .utils.datetime import (
    ensure_aware,
    now_utc,
    parse_iso_date,
    parse_iso_datetime,
    to_iso_date,
    to_iso_string,
)


class TaskStatus(Enum):
    """Completion status."""
    TODO = "todo"
    DONE = "done"


class TaskState(Enum):
    """Whether a task is scheduled work or parked for later."""
    ACTIVE = "active"
    SOMEDAY = "someday"


class TaskType(Enum):
    """Plain tasks and projects (tasks that contain other tasks)."""
    TASK = "task"
    PROJECT = "project"


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Strip, drop empties and de-duplicate tags, sorted."""
    return sorted({tag.strip() for tag in tags if tag and tag.strip()})


def _read_tags(value: Any) -> List[str]:
    """Coerce stored tags (a list, a single value or nothing) to strings."""
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    return [str(tag) for tag in value if tag is not None]


@dataclass
class Task:
    """A task, project or recurring task instance.

    A task belongs to at most one of a container (project) or an area.
    Recurrence is described by `recur_kind` plus `recur_rule` (rule JSON),
    which are set or cleared together. `recur_lineage_id` points at the root
    task of a chain of regenerated tasks.
    """

    # Core identification
    id: int = 0
    title: str = ""
    description: str = ""
    uuid: str = field(default_factory=lambda: str(uuid.uuid4()))
    task_type: TaskType = TaskType.TASK

    # Organization
    container_id: Optional[int] = None
    area_id: Optional[int] = None
    tags: List[str] = field(default_factory=list)

    # Scheduling
    planned_date: Optional[date] = None
    due_date: Optional[date] = None

    # Lifecycle
    state: TaskState = TaskState.ACTIVE
    status: TaskStatus = TaskStatus.TODO
    created_at: datetime = field(default_factory=now_utc)
    completed_at: Optional[datetime] = None

    # Recurrence
    recur_kind: Optional[RecurrenceKind] = None
    recur_rule: Optional[str] = None
    recur_end: Optional[date] = None
    recur_paused: bool = False
    recur_lineage_id: Optional[int] = None

    def __post_init__(self):
        """Normalize timestamps and tags, and check field pairings."""
        self.created_at = ensure_aware(self.created_at)
        self.completed_at = ensure_aware(self.completed_at)
        self.tags = normalize_tags(self.tags)

        if (self.recur_kind is None) != (self.recur_rule is None):
            raise ValueError("recur_kind and recur_rule must be set together")

        if self.status == TaskStatus.DONE and self.completed_at is None:
            self.completed_at = now_utc()
        elif self.status == TaskStatus.TODO:
            self.completed_at = None

    @property
    def is_container(self) -> bool:
        return self.task_type == TaskType.PROJECT

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    @property
    def has_recurrence(self) -> bool:
        return self.recur_rule is not None

    @property
    def has_container_or_area(self) -> bool:
        return self.container_id is not None or self.area_id is not None

    def rule(self) -> Optional[Rule]:
        """Return the parsed recurrence rule, or None when not recurring.

        Raises:
            ParseError: If the stored rule JSON is malformed.
        """
        if self.recur_rule is None:
            return None
        return Rule.from_json(self.recur_rule)

    # State transitions

    def defer(self):
        """Move to someday; a someday task has no planned date."""
        self.state = TaskState.SOMEDAY
        self.planned_date = None

    def activate(self):
        """Move back to active without touching dates."""
        self.state = TaskState.ACTIVE

    def set_planned_date(self, value: Optional[date]):
        """Set or clear the planned date; a new date activates a someday task."""
        self.planned_date = value
        if value is not None and self.state == TaskState.SOMEDAY:
            self.state = TaskState.ACTIVE

    def set_due_date(self, value: Optional[date]):
        """Set or clear the due date; a new date activates a someday task."""
        self.due_date = value
        if value is not None and self.state == TaskState.SOMEDAY:
            self.state = TaskState.ACTIVE

    def complete(self, completed_at: Optional[datetime] = None):
        """Mark the task as done."""
        if self.status == TaskStatus.DONE:
            raise InvalidTransitionError(f"task {self.id} is already completed")
        self.status = TaskStatus.DONE
        self.completed_at = ensure_aware(completed_at) or now_utc()

    def uncomplete(self):
        """Reopen a completed task."""
        if self.status == TaskStatus.TODO:
            raise InvalidTransitionError(f"task {self.id} is not completed")
        self.status = TaskStatus.TODO
        self.completed_at = None

    # Organization

    def set_container(self, container_id: Optional[int]):
        """Move into a project, leaving any area."""
        self.container_id = container_id
        if container_id is not None:
            self.area_id = None

    def set_area(self, area_id: Optional[int]):
        """Move into an area, leaving any project."""
        self.area_id = area_id
        if area_id is not None:
            self.container_id = None

    def add_tag(self, tag: str):
        self.tags = normalize_tags(self.tags + [tag])

    def remove_tag(self, tag: str):
        self.tags = [t for t in self.tags if t != tag.strip()]

    # Recurrence

    def set_recurrence(self, kind: RecurrenceKind, rule: Rule, end: Optional[date] = None):
        """Attach a recurrence rule; setting a rule always unpauses it."""
        self.recur_kind = kind
        self.recur_rule = rule.to_json()
        self.recur_end = end
        self.recur_paused = False

    def clear_recurrence(self):
        self.recur_kind = None
        self.recur_rule = None
        self.recur_end = None
        self.recur_paused = False

    def pause_recurrence(self):
        self.recur_paused = True

    def resume_recurrence(self):
        self.recur_paused = False

    def set_recurrence_end(self, end: Optional[date]):
        self.recur_end = end

    def recurrence_ended(self, today: date) -> bool:
        """Check whether the recurrence end date is already in the past."""
        return self.recur_end is not None and self.recur_end < today

    def to_dict(self) -> Dict[str, Any]:
        """Convert the Task to a dictionary of plain values."""
        return {
            "id": self.id,
            "uuid": self.uuid,
            "title": self.title,
            "description": self.description,
            "task_type": self.task_type.value,
            "container_id": self.container_id,
            "area_id": self.area_id,
            "tags": list(self.tags),
            "planned_date": to_iso_date(self.planned_date),
            "due_date": to_iso_date(self.due_date),
            "state": self.state.value,
            "status": self.status.value,
            "created_at": to_iso_string(self.created_at),
            "completed_at": to_iso_string(self.completed_at),
            "recur_kind": self.recur_kind.value if self.recur_kind else None,
            "recur_rule": self.recur_rule,
            "recur_end": to_iso_date(self.recur_end),
            "recur_paused": self.recur_paused,
            "recur_lineage_id": self.recur_lineage_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        """Create a Task from a dictionary produced by to_dict."""
        recur_kind = data.get("recur_kind")
        return cls(
            id=data.get("id", 0),
            uuid=data.get("uuid") or str(uuid.uuid4()),
            title=data.get("title", ""),
            description=data.get("description") or "",
            task_type=TaskType(data.get("task_type", "task")),
            container_id=data.get("container_id"),
            area_id=data.get("area_id"),
            tags=_read_tags(data.get("tags")),
            planned_date=parse_iso_date(data.get("planned_date")),
            due_date=parse_iso_date(data.get("due_date")),
            state=TaskState(data.get("state", "active")),
            status=TaskStatus(data.get("status", "todo")),
            created_at=parse_iso_datetime(data.get("created_at")) or now_utc(),
            completed_at=parse_iso_datetime(data.get("completed_at")),
            recur_kind=RecurrenceKind(recur_kind) if recur_kind else None,
            recur_rule=data.get("recur_rule"),
            recur_end=parse_iso_date(data.get("recur_end")),
            recur_paused=bool(data.get("recur_paused", False)),
            recur_lineage_id=data.get("recur_lineage_id"),
        )
