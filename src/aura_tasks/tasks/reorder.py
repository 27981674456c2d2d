# src/aura_tasks/tasks/reorder.py

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

ANCHOR_HOUR = 9
SLOT = timedelta(hours=1)


def reorder_anchor(now: datetime | None = None) -> datetime:
    """09:00 today, local wall clock."""
    now = now or datetime.now()
    return now.replace(hour=ANCHOR_HOUR, minute=0, second=0, microsecond=0)


def reorder(ordered_task_ids: Sequence[int], *, now: datetime | None = None) -> list[tuple[int, datetime]]:
    """
    Re-derive times from a user-chosen order.

    Position 0 gets 09:00 today, each next position one hour later. Prior
    time-of-day is discarded. Ids not in the sequence are not part of the
    result, so callers leave those tasks untouched.
    """
    seen: set[int] = set()
    for task_id in ordered_task_ids:
        if task_id in seen:
            raise ValueError(f"Duplicate task id in reorder sequence: {task_id}")
        seen.add(task_id)

    start = reorder_anchor(now)
    return [(task_id, start + i * SLOT) for i, task_id in enumerate(ordered_task_ids)]
