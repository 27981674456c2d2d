# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from aura_tasks.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("aura_tasks.tasks.orchestrator", logging.INFO, True),
        ("aura_tasks.tasks.task_store", logging.DEBUG, False),
        ("aura_tasks.tasks.task_store", logging.INFO, False),
        ("aura_tasks.tasks.task_store", logging.ERROR, True),
        ("aura_tasks.llm.client", logging.INFO, False),
        ("aura_tasks.llm.client", logging.WARNING, True),
        ("httpx", logging.WARNING, False),
        ("py.warnings", logging.WARNING, False),
        ("openai", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_setup_logging_writes_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs", console_level=logging.WARNING)
        logging.getLogger("aura_tasks.tasks.task_store").debug("row written")
        for h in root.handlers:
            h.flush()
        assert log_file == tmp_path / "logs" / "aura.log"
        assert "row written" in log_file.read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
