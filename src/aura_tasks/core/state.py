# src/aura_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .ports import AIClient, TaskRepo

if TYPE_CHECKING:
    from ..tasks.orchestrator import SchedulingOrchestrator
    from ..tasks.task_models import Task


@dataclass
class AppState:
    """
    Runtime container shared by adapters.

    `tasks` is the last published sorted view; adapters read it for rendering
    and never mutate it. `settings` is kept as Any so tests can pass a SimpleNamespace.
    """

    settings: Any
    ai: AIClient
    task_store: TaskRepo
    orchestrator: SchedulingOrchestrator | None = None

    tasks: list[Task] = field(default_factory=list)

    def publish_tasks(self, tasks: list[Task]) -> None:
        self.tasks = list(tasks)

    @property
    def scheduler(self) -> SchedulingOrchestrator:
        if self.orchestrator is None:
            raise RuntimeError("AppState has no orchestrator attached")
        return self.orchestrator
