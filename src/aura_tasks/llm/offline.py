# src/aura_tasks/llm/offline.py

from __future__ import annotations

import re
from collections.abc import AsyncIterator

from ..core.ports import MediaPart

_QUOTED_TAIL = re.compile(r'"(.*)"\s*$', re.DOTALL)


class OfflineAIClient:
    """
    Offline deterministic AI client used for demos when no API key is configured.

    Behavior:
    - Text prompts -> echoes the user's text as a "Task: ..." line, which the
      parser's lexical tier understands ("Task: dentist at 3pm").
    - Media prompts -> a notice without any task, so the analysis reports
      that nothing could be extracted.
    """

    def source_label(self) -> str:
        return "Offline AI"

    async def generate(self, prompt: str, media: MediaPart | None = None) -> AsyncIterator[str]:
        yield "Offline demo mode: no external AI is configured.\n"

        if media is not None:
            yield f"Set AURA_API_KEY to enable {media.kind} analysis."
            return

        m = _QUOTED_TAIL.search(prompt or "")
        user_text = (m.group(1) if m else prompt or "").strip()
        if user_text:
            yield f"Task: {user_text}"
