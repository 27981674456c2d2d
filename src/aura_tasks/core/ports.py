# src/aura_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the AI backend and the storage swappable and makes testing easier.
"""

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(slots=True, frozen=True)
class MediaPart:
    """Binary input sent to the AI backend next to the prompt."""

    data: bytes
    mime_type: str
    kind: str  # "audio" | "image"


class AIClient(Protocol):
    """Streaming generative backend: prompt (+ optional media) in, text chunks out."""

    def generate(self, prompt: str, media: MediaPart | None = None) -> AsyncIterator[str]: ...

    def source_label(self) -> str: ...


class TaskRepo(Protocol):
    """Durable task table. Every call is committed before it returns."""

    async def insert(self, task: Any) -> int: ...
    async def update(self, task: Any) -> None: ...
    async def delete(self, task_id: int) -> None: ...
    async def get(self, task_id: int) -> Any | None: ...
    async def list_sorted(self) -> Sequence[Any]: ...
