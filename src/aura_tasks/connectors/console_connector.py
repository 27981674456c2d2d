# src/aura_tasks/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import format_analysis, format_task_list, format_today
from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def _read_line(prompt: str) -> str | None:
    """input() in a worker thread so the event loop keeps running."""
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, input, prompt)
    except EOFError:
        return None


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (ai=%s).", state.scheduler.source_label())
    _print_ts(f"[CONSOLE] {format_today()} | {state.scheduler.source_label()}")
    _print_ts("[CONSOLE] Describe a task, or use /help for commands. Use /exit to quit.\n")

    tasks = await state.scheduler.list_tasks()
    state.publish_tasks(tasks)
    print(format_task_list(tasks), flush=True)

    while True:
        try:
            line = await _read_line(">>> You: ")
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if line is None:
            logger.info("Console EOF received, exiting.")
            break

        user_input = line.strip()
        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            cmd_response = await command_registry.handle(state, user_input, emit=_print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        # Plain text: stream the AI response, then report what was scheduled.
        _print_ts(f"[{state.scheduler.source_label()}] Analyzing...")
        streamed = False

        def on_chunk(piece: str) -> None:
            nonlocal streamed
            streamed = True
            print(piece, end="", flush=True)

        try:
            result = await state.scheduler.analyze_text(user_input, on_chunk=on_chunk)
        except Exception:
            logger.exception("Console analysis crashed.")
            _print_ts("Internal error while analyzing.")
            continue

        if streamed:
            print()
        _print_ts(format_analysis(result))
        if result.created:
            print(format_task_list(state.tasks), flush=True)

    logger.info("Console connector finished.")
