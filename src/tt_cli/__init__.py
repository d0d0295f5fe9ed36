"""tt - a personal task manager with recurring tasks and derived views."""

__version__ = "0.1.0"

from .exceptions import (
    ConstraintError,
    InvalidTransitionError,
    NotFoundError,
    ParseError,
    RegenerationFailed,
    TTError,
)
from .recurring import RecurrenceKind, Rule
from .todo import Task, TaskState, TaskStatus, TaskType

__all__ = [
    "Task",
    "TaskState",
    "TaskStatus",
    "TaskType",
    "Rule",
    "RecurrenceKind",
    "TTError",
    "ParseError",
    "NotFoundError",
    "ConstraintError",
    "InvalidTransitionError",
    "RegenerationFailed",
    "__version__",
]
