"""Area data model for the tt application."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

from .utils.datetime import ensure_aware, now_utc, parse_iso_datetime, to_iso_string


@dataclass
class Area:
    """A named area of responsibility grouping tasks and projects."""

    id: int
    name: str
    created_at: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        self.created_at = ensure_aware(self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_iso_string(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Area':
        return cls(
            id=data["id"],
            name=data["name"],
            created_at=parse_iso_datetime(data.get("created_at")) or now_utc(),
        )
