# src/aura_tasks/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def to_local_naive(dt: datetime) -> datetime:
    """Convert an aware datetime to local wall clock; naive input is returned as-is."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def parse_instant(raw: str) -> datetime:
    """Parse an ISO-8601 instant ('Z' and offsets allowed) into local wall clock."""
    return to_local_naive(datetime.fromisoformat(raw.strip()))


@dataclass(slots=True, frozen=True)
class Task:
    """
    A scheduled task.

    `id` is None until TaskStore.insert assigns one. `id` and `created` never
    change afterwards; `time` is shifted by conflict resolution and reordering.
    """

    title: str
    time: datetime
    description: str = ""
    created: datetime = field(default_factory=datetime.now)
    id: int | None = None

    def to_record(self) -> dict[str, Any]:
        """Field mapping used for persistence; times as ISO-8601 strings."""
        return {
            "id": self.id,
            "title": self.title,
            "time": self.time.isoformat(),
            "description": self.description,
            "created": self.created.isoformat(),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Task":
        raw_id = data.get("id")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            title=str(data["title"]),
            time=parse_instant(str(data["time"])),
            description=str(data.get("description") or ""),
            created=parse_instant(str(data["created"])),
        )


def sort_key(task: Task) -> tuple[datetime, int]:
    """Sorted view order: time ascending, ties by id (insertion order)."""
    return (task.time, task.id if task.id is not None else -1)


@dataclass(slots=True, frozen=True)
class TaskCandidate:
    """
    A tentative task extracted from AI text, not yet validated or persisted.

    `time` is kept as the raw value the model produced (usually an ISO string);
    it is resolved into a datetime when the candidate becomes a Task.
    """

    title: str
    time: str | None = None
    description: str = ""

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "TaskCandidate":
        title = data.get("title")
        raw_time = data.get("time")
        desc = data.get("description")
        return cls(
            title=str(title).strip() if title is not None else "",
            time=str(raw_time).strip() if raw_time not in (None, "") else None,
            description=str(desc).strip() if desc is not None else "",
        )
