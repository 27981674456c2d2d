# src/aura_tasks/tasks/conflicts.py

"""
Conflict resolution.

Two tasks conflict when their times are less than one hour apart.
resolve_conflict() is single-pass, first-conflict-wins: the candidate is moved
to exactly one hour after the first conflicting task and scanning stops, even
if the new time collides with a later task. Calling it again (resolve-all
sweep) may move it further; dense schedules are not guaranteed to converge.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from .task_models import Task

logger = logging.getLogger(__name__)

CONFLICT_WINDOW = timedelta(hours=1)


@dataclass(slots=True, frozen=True)
class ConflictNotice:
    """Human-readable report of one time shift."""

    task_title: str
    old_time: datetime
    new_time: datetime
    blocking_task_id: int | None

    @property
    def message(self) -> str:
        return f'Resolved conflict: moved "{self.task_title}" to {self.new_time:%H:%M}'


NoticeSink = Callable[[ConflictNotice], None]


def find_first_conflict(task: Task, existing_sorted: Sequence[Task]) -> Task | None:
    """First task in `existing_sorted` closer than CONFLICT_WINDOW to `task` (itself excluded)."""
    for other in existing_sorted:
        if task.id is not None and other.id == task.id:
            continue
        if abs(task.time - other.time) < CONFLICT_WINDOW:
            return other
    return None


def resolve_conflict(
    new_task: Task,
    existing_sorted: Sequence[Task],
    *,
    notify: NoticeSink | None = None,
) -> Task:
    """
    Return `new_task`, possibly moved to one hour after its first conflict.

    Pure with respect to its inputs: a shifted copy is returned. When a shift
    happens, a ConflictNotice is passed to `notify`.
    """
    blocker = find_first_conflict(new_task, existing_sorted)
    if blocker is None:
        return new_task

    new_time = blocker.time + CONFLICT_WINDOW
    notice = ConflictNotice(
        task_title=new_task.title,
        old_time=new_task.time,
        new_time=new_time,
        blocking_task_id=blocker.id,
    )
    logger.info(
        "Conflict: %r at %s collides with task %s at %s -> moved to %s",
        new_task.title,
        new_task.time.isoformat(),
        blocker.id,
        blocker.time.isoformat(),
        new_time.isoformat(),
    )
    if notify is not None:
        notify(notice)

    return replace(new_task, time=new_time)
