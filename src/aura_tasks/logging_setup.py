# src/aura_tasks/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Per-operation chatter that would interleave with the REPL and streamed AI output.
# Full detail still goes to aura.log.
_QUIET_ON_CONSOLE = {
    "aura_tasks.tasks.task_store": logging.WARNING,
    "aura_tasks.tasks.response_parser": logging.WARNING,
    "aura_tasks.llm.client": logging.WARNING,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable:
    - allow aura_tasks logs, except store/parser/AI-client chatter below WARNING
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    - suppress third-party noise unless ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("aura_tasks."):
            floor = _QUIET_ON_CONSOLE.get(name)
            return floor is None or record.levelno >= floor

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/aura",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console handler filtered for the REPL, file handler with everything.
    Returns the log file path.

    Call this once, before the first log call.
    """
    log_file = Path(log_dir) / "aura.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    logfile = logging.FileHandler(str(log_file), encoding="utf-8")
    logfile.setLevel(file_level)
    logfile.setFormatter(fmt)
    root.addHandler(logfile)

    logging.captureWarnings(True)

    # openai/httpx log every request at INFO.
    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log_file
