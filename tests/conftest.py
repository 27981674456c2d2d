# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from aura_tasks.cli.bootstrap import create_initial_state
from aura_tasks.core.state import AppState
from aura_tasks.tasks.task_store import TaskStore

from .fakes import FakeAIClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="aura-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        serialize_batches=False,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def fake_ai() -> FakeAIClient:
    return FakeAIClient()


@pytest.fixture()
def state(settings: SimpleNamespace, fake_ai: FakeAIClient) -> AppState:
    """
    AppState wired with a scripted AI client.

    NOTE: We keep the real SQLite TaskStore here because its ordering and
    durability are part of what we want to test.
    """
    return create_initial_state(settings=settings, ai=fake_ai)
