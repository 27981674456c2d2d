# src/aura_tasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL on the event loop.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.errors import StorageError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(state) -> None:
    """Best-effort shutdown; TaskStore holds no persistent connection."""
    close = getattr(state.ai, "close", None)
    if close is None:
        return
    try:
        await close()
    except Exception:
        logger.debug("AI client close failed.", exc_info=True)


async def _run(settings) -> None:
    state = create_initial_state(settings=settings)
    try:
        if settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled; nothing to run.")
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (log file: %s)...", settings.app_name, log_file)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    except StorageError:
        logger.exception("Task storage is unavailable.")
        raise SystemExit(1) from None

    logger.info("Bye.")


if __name__ == "__main__":
    main()
