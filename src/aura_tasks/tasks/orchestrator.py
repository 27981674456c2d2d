# src/aura_tasks/tasks/orchestrator.py

"""
Scheduling orchestration.

This module is presentation-agnostic:
- adapters call analyze_text / analyze_media / edit_title / delete / reorder /
  resolve_all_conflicts,
- the orchestrator streams the AI response, parses it, resolves conflicts
  against the live store and persists,
- the sorted task list is published once per batch through `on_tasks`.

Key invariants:
- candidates are resolved and inserted in parser order, each against the
  store as it is *now*, so later candidates see earlier ones,
- nothing is parsed or persisted before the AI stream completed,
- typed failures become an AnalysisResult; they never escape a batch.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path

from ..core.errors import AIBackendError, ParseFailure, StorageError, ValidationError
from ..core.ports import AIClient, MediaPart, TaskRepo
from ..llm.media import load_media
from . import response_parser
from .conflicts import ConflictNotice, resolve_conflict
from .prompts import media_prompt, text_prompt
from .reorder import reorder
from .task_models import Task, TaskCandidate

logger = logging.getLogger(__name__)

TasksListener = Callable[[list[Task]], None]
NoticeListener = Callable[[ConflictNotice], None]
ChunkListener = Callable[[str], None]
Clock = Callable[[], datetime]


class AnalysisStatus(str, Enum):
    OK = "ok"
    NO_TASKS = "no_tasks"
    PARSE_FAILURE = "parse_failure"
    AI_ERROR = "ai_error"
    STORAGE_ERROR = "storage_error"
    INPUT_ERROR = "input_error"


@dataclass(slots=True)
class AnalysisResult:
    """Outcome of one analysis batch, ready to show to the user."""

    status: AnalysisStatus
    message: str
    raw_text: str = ""
    created: list[Task] = field(default_factory=list)
    skipped: int = 0
    notices: list[ConflictNotice] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (AnalysisStatus.OK, AnalysisStatus.NO_TASKS)


def candidate_to_task(candidate: TaskCandidate, *, now: datetime) -> Task:
    """Fill defaults for a candidate. Missing title -> ValidationError."""
    title = (candidate.title or "").strip()
    if not title:
        raise ValidationError("Task candidate has no title")
    return Task(
        title=title,
        time=response_parser.resolve_candidate_time(candidate.time, now),
        description=candidate.description or "",
        created=now,
    )


class SchedulingOrchestrator:
    def __init__(
        self,
        store: TaskRepo,
        ai: AIClient,
        *,
        on_tasks: TasksListener | None = None,
        on_notice: NoticeListener | None = None,
        clock: Clock | None = None,
        serialize_batches: bool = False,
    ) -> None:
        self._store = store
        self._ai = ai
        self._on_tasks = on_tasks
        self._on_notice = on_notice
        self._clock: Clock = clock or datetime.now
        # Without the lock, concurrent batches may interleave resolve/insert
        # and place two tasks in conflict.
        self._batch_lock: asyncio.Lock | None = asyncio.Lock() if serialize_batches else None

    # ---- read side ----

    def source_label(self) -> str:
        return self._ai.source_label()

    async def list_tasks(self) -> list[Task]:
        return list(await self._store.list_sorted())

    async def _publish(self) -> list[Task]:
        tasks = await self.list_tasks()
        if self._on_tasks is not None:
            try:
                self._on_tasks(tasks)
            except Exception:
                logger.exception("Task list listener failed.")
        return tasks

    def _notify(self, notice: ConflictNotice, sink: list[ConflictNotice]) -> None:
        sink.append(notice)
        if self._on_notice is not None:
            try:
                self._on_notice(notice)
            except Exception:
                logger.exception("Conflict notice listener failed.")

    @staticmethod
    def _echo(on_chunk: ChunkListener, chunk: str) -> None:
        try:
            on_chunk(chunk)
        except Exception:
            logger.exception("Chunk listener failed.")

    # ---- analysis ----

    async def analyze_text(self, text: str, *, on_chunk: ChunkListener | None = None) -> AnalysisResult:
        text = (text or "").strip()
        if not text:
            return AnalysisResult(AnalysisStatus.INPUT_ERROR, "Nothing to analyze.")
        return await self.analyze(text_prompt(text), on_chunk=on_chunk)

    async def analyze_media(
        self,
        path: str | Path,
        kind: str,
        *,
        on_chunk: ChunkListener | None = None,
    ) -> AnalysisResult:
        try:
            prompt = media_prompt(kind)
            media = await load_media(path, kind)
        except (OSError, ValueError) as e:
            logger.info("Media input rejected path=%s kind=%s: %s", path, kind, e)
            return AnalysisResult(AnalysisStatus.INPUT_ERROR, f"Cannot read {kind} file: {e}")
        return await self.analyze(prompt, media, on_chunk=on_chunk)

    async def analyze(
        self,
        prompt: str,
        media: MediaPart | None = None,
        *,
        on_chunk: ChunkListener | None = None,
    ) -> AnalysisResult:
        """One batch: stream AI output -> parse -> resolve + insert each -> publish."""
        if self._batch_lock is None:
            return await self._analyze(prompt, media, on_chunk)
        async with self._batch_lock:
            return await self._analyze(prompt, media, on_chunk)

    async def _analyze(
        self,
        prompt: str,
        media: MediaPart | None,
        on_chunk: ChunkListener | None,
    ) -> AnalysisResult:
        try:
            raw_text = await self._collect(prompt, media, on_chunk)
        except AIBackendError as e:
            logger.info("Analysis failed (AI backend): %s", e)
            return AnalysisResult(AnalysisStatus.AI_ERROR, f"Analysis failed: {e}")

        try:
            candidates = response_parser.parse(raw_text, self._clock())
            if candidates is None:
                raise ParseFailure(raw_text=raw_text)
        except ParseFailure as e:
            return AnalysisResult(AnalysisStatus.PARSE_FAILURE, str(e), raw_text=raw_text)

        if not candidates:
            return AnalysisResult(AnalysisStatus.NO_TASKS, "No tasks in the AI response.", raw_text=raw_text)

        result = AnalysisResult(AnalysisStatus.OK, "", raw_text=raw_text)
        try:
            await self._persist_batch(candidates, result)
        except StorageError as e:
            # Tasks inserted before the failure stay persisted; no retry.
            logger.info("Batch stopped after %d insert(s): %s", len(result.created), e)
            result.status = AnalysisStatus.STORAGE_ERROR
            result.message = f"Saving tasks failed after {len(result.created)} of {len(candidates)}: {e}"
            with contextlib.suppress(StorageError):
                await self._publish()
            return result

        try:
            await self._publish()
        except StorageError as e:
            result.status = AnalysisStatus.STORAGE_ERROR
            result.message = f"Tasks were saved but the list could not be reloaded: {e}"
            return result

        if result.created:
            result.message = f"Added {len(result.created)} task(s)."
        else:
            result.status = AnalysisStatus.NO_TASKS
            result.message = "No valid tasks in the AI response."
        if result.skipped:
            result.message += f" Skipped {result.skipped} without a title."
        return result

    async def _collect(self, prompt: str, media: MediaPart | None, on_chunk: ChunkListener | None) -> str:
        parts: list[str] = []
        try:
            async for chunk in self._ai.generate(prompt, media):
                parts.append(chunk)
                if on_chunk is not None:
                    self._echo(on_chunk, chunk)
        except AIBackendError:
            raise
        except Exception as e:
            raise AIBackendError(f"AI request failed: {e}") from e
        return "".join(parts)

    async def _persist_batch(self, candidates: Sequence[TaskCandidate], result: AnalysisResult) -> None:
        for candidate in candidates:
            now = self._clock()
            try:
                task = candidate_to_task(candidate, now=now)
            except ValidationError as e:
                logger.info("Skipping candidate %r: %s", candidate, e)
                result.skipped += 1
                continue

            existing = await self._store.list_sorted()
            resolved = resolve_conflict(task, existing, notify=lambda n: self._notify(n, result.notices))
            task_id = await self._store.insert(resolved)
            result.created.append(replace(resolved, id=task_id))
            logger.info("Task added id=%s time=%s title=%r", task_id, resolved.time.isoformat(), resolved.title)

    # ---- direct edits ----

    async def edit_title(self, task_id: int, new_title: str) -> Task:
        title = (new_title or "").strip()
        if not title:
            raise ValidationError("Title must not be empty")
        task = await self._store.get(task_id)
        if task is None:
            raise StorageError(f"Task {task_id} does not exist")
        updated = replace(task, title=title)
        await self._store.update(updated)
        await self._publish()
        return updated

    async def delete(self, task_id: int) -> None:
        await self._store.delete(task_id)
        await self._publish()

    async def reorder(self, ordered_task_ids: Sequence[int]) -> list[Task]:
        """Re-time tasks from 09:00 today in the given order; other tasks are untouched."""
        current = {t.id: t for t in await self._store.list_sorted()}
        for task_id, new_time in reorder(ordered_task_ids, now=self._clock()):
            task = current.get(task_id)
            if task is None:
                logger.debug("Reorder: unknown task id %s ignored", task_id)
                continue
            await self._store.update(replace(task, time=new_time))
        return await self._publish()

    async def resolve_all_conflicts(self) -> list[ConflictNotice]:
        """
        One sweep over the sorted list: each task is resolved against all other
        tasks as currently stored, and moved if needed. Not iterated to a fixed point.
        """
        notices: list[ConflictNotice] = []
        for task in await self._store.list_sorted():
            existing = await self._store.list_sorted()
            current = next((t for t in existing if t.id == task.id), None)
            if current is None:
                continue
            resolved = resolve_conflict(current, existing, notify=lambda n: self._notify(n, notices))
            if resolved.time != current.time:
                await self._store.update(resolved)
        await self._publish()
        return notices
