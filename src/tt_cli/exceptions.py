"""Error taxonomy for tt."""

from typing import Any, List, Optional


class TTError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        self.message = message
        # Results accumulated by a batch operation before it stopped
        self.partial_results: List[Any] = []
        super().__init__(message)


class ParseError(TTError):
    """Raised when a date or recurrence phrase cannot be parsed."""

    def __init__(self, text: str, message: str, suggestions: Optional[List[str]] = None):
        self.text = text
        self.suggestions = suggestions or []
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestions:
            hints = ", ".join(f"'{s}'" for s in self.suggestions)
            return f"{self.message} (did you mean {hints}?)"
        return self.message


class NotFoundError(TTError):
    """Raised when a task, project or area does not exist."""

    def __init__(self, kind: str, key: Any):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class ConstraintError(TTError):
    """Raised by storage when a task would violate a structural constraint."""


class InvalidTransitionError(TTError):
    """Raised when a status transition is not allowed from the current status."""


class RegenerationFailed(TTError):
    """Raised or recorded when a recurring task could not produce its successor."""

    def __init__(self, task_id: int, cause: Exception):
        self.task_id = task_id
        self.cause = cause
        super().__init__(f"could not regenerate recurring task {task_id}: {cause}")


class StorageError(TTError):
    """Raised when a stored file cannot be read or written."""
