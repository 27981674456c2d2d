# src/aura_tasks/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import cast

from ..core.errors import AuraError
from ..core.state import AppState
from ..tasks.orchestrator import AnalysisResult
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("Any other text is analyzed for tasks.")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- rendering ----


def format_task_line(task: Task) -> str:
    return f"{task.time:%H:%M}  {task.time.day} {task.time:%b}  #{task.id}  {task.title}"


def format_task_list(tasks: list[Task]) -> str:
    if not tasks:
        return "No tasks scheduled."
    return "\n".join(format_task_line(t) for t in tasks)


def format_today(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"{now:%A}, {now:%B} {now.day}, {now.year}"


def format_analysis(result: AnalysisResult) -> str:
    lines = [result.message]
    lines.extend(n.message for n in result.notices)
    if result.created:
        lines.extend(f"  + {format_task_line(t)}" for t in result.created)
    return "\n".join(lines)


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        return None


# ---- handlers ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = await state.scheduler.list_tasks()
    state.publish_tasks(tasks)
    return format_task_list(tasks)


async def cmd_today(state: AppState, args: list[str]) -> str:
    return format_today()


async def cmd_source(state: AppState, args: list[str]) -> str:
    return f"AI source: {state.scheduler.source_label()}"


async def _cmd_media(state: AppState, args: list[str], emit: CommandEmitter | None, kind: str) -> str:
    if not args:
        return f"Usage: /{kind} <path>"
    path = " ".join(args)
    if emit:
        emit(f"[{state.scheduler.source_label()}] Analyzing {kind}...")
    result = await state.scheduler.analyze_media(path, kind)
    return format_analysis(result)


async def cmd_image(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return await _cmd_media(state, args, emit, "image")


async def cmd_audio(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return await _cmd_media(state, args, emit, "audio")


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <id> <new title...>
    """
    if len(args) < 2 or _parse_id(args[0]) is None:
        return "Usage: /edit <id> <new title>"
    task_id = cast(int, _parse_id(args[0]))
    try:
        task = await state.scheduler.edit_title(task_id, " ".join(args[1:]))
    except AuraError as e:
        return f"Edit failed: {e}"
    return f"Updated: {format_task_line(task)}"


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if len(args) != 1 or _parse_id(args[0]) is None:
        return "Usage: /delete <id>"
    task_id = cast(int, _parse_id(args[0]))
    try:
        await state.scheduler.delete(task_id)
    except AuraError as e:
        return f"Delete failed: {e}"
    return f"Deleted task #{task_id}."


async def cmd_reorder(state: AppState, args: list[str]) -> str:
    """
    /reorder 3 1 2  -> task 3 at 09:00, task 1 at 10:00, task 2 at 11:00 (today)
    """
    ids = [_parse_id(a) for a in args]
    if not ids or any(i is None for i in ids):
        return "Usage: /reorder <id> <id> ..."
    try:
        tasks = await state.scheduler.reorder(cast(list[int], ids))
    except (AuraError, ValueError) as e:
        return f"Reorder failed: {e}"
    return format_task_list(tasks)


async def cmd_resolve(state: AppState, args: list[str]) -> str:
    try:
        notices = await state.scheduler.resolve_all_conflicts()
    except AuraError as e:
        return f"Conflict resolution failed: {e}"
    if not notices:
        return "No conflicts detected."
    return "\n".join(n.message for n in notices)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show tasks in time order.", aliases=["ls"])
registry.register("today", cmd_today, help_text="Show today's date.")
registry.register("source", cmd_source, help_text="Show which AI backend is in use.")
registry.register("image", cmd_image, help_text="Extract tasks from an image: /image <path>.")
registry.register("audio", cmd_audio, help_text="Extract tasks from audio: /audio <path>.")
registry.register("edit", cmd_edit, help_text="Rename a task: /edit <id> <title>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register(
    "reorder", cmd_reorder, help_text="Re-time tasks from 09:00 in this order: /reorder <id> <id> ..."
)
registry.register("resolve", cmd_resolve, help_text="Resolve time conflicts across all tasks.")
