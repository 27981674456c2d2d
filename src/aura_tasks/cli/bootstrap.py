# src/aura_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (AI client, task store, orchestrator) into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import AIClient
from ..core.state import AppState
from ..llm.client import OpenRouterAIClient
from ..llm.offline import OfflineAIClient
from ..tasks.conflicts import ConflictNotice
from ..tasks.orchestrator import SchedulingOrchestrator
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_ai_client(settings) -> AIClient:
    try:
        return OpenRouterAIClient(settings)
    except RuntimeError as e:
        # Demo / local runs without external services.
        logger.info("Using offline AI: %s", e)
        return OfflineAIClient()


def _log_notice(notice: ConflictNotice) -> None:
    # Adapters render notices from AnalysisResult.notices.
    logger.info(
        "Conflict resolved: %r moved %s -> %s (blocked by #%s)",
        notice.task_title,
        notice.old_time.isoformat(),
        notice.new_time.isoformat(),
        notice.blocking_task_id,
    )


def create_initial_state(*, settings=None, ai: AIClient | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and the AI client injectable makes the app easier to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if ai is None:
        ai = create_ai_client(settings)

    state = AppState(settings=settings, ai=ai, task_store=TaskStore(settings.tasks_db_path))
    state.orchestrator = SchedulingOrchestrator(
        state.task_store,
        ai,
        on_tasks=state.publish_tasks,
        on_notice=_log_notice,
        serialize_batches=bool(getattr(settings, "serialize_batches", False)),
    )
    return state
