# src/aura_tasks/llm/client.py

from __future__ import annotations

import logging
import os
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ..core.errors import AIBackendError
from ..core.ports import MediaPart
from .media import media_to_content_part

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You extract scheduled tasks from user input. "
    "Answer with JSON only: an array of objects with title, time (ISO 8601, local time) "
    "and description. Use an empty description when there is nothing to add."
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _timeouts_from_env() -> dict[str, float]:
    """
    Timeouts are configurable via env so a slow model cannot hang an analysis.

    - connect timeout: 5s
    - read timeout: 60s (no data from server; media uploads are slow)
    - first token timeout: 30s (no content tokens)
    """
    first_token = _env_float("AURA_AI_FIRST_TOKEN_TIMEOUT_SECONDS", 30.0)
    read_timeout = _env_float("AURA_AI_READ_TIMEOUT_SECONDS", 60.0)
    connect_timeout = _env_float("AURA_AI_CONNECT_TIMEOUT_SECONDS", 5.0)

    read_timeout = max(read_timeout, first_token)

    return {
        "first_token": first_token,
        "read": read_timeout,
        "connect": connect_timeout,
    }


def _is_auth_error(exc: Exception) -> bool:
    return exc.__class__.__name__ in {
        "AuthenticationError",
        "PermissionDeniedError",
        "UnauthorizedError",
    }


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"RateLimitError", "TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TransportError)):
        return True
    return exc.__class__.__name__ in {"APITimeoutError", "TimeoutError", "ReadTimeout", "ConnectTimeout"}


def _is_not_found_error(exc: Exception) -> bool:
    return exc.__class__.__name__ in {"NotFoundError"}


def friendly_error_message(err: Exception) -> str:
    msg = str(err).strip() or "AI error."
    if "API key is not set" in msg:
        return "AI is not configured (missing API key). Set AURA_API_KEY in .env (see config.example.py)."
    if "model list is empty" in msg:
        return "AI is not configured (no models). Set AURA_AI_MODELS in .env (see config.example.py)."
    if "base URL is not set" in msg:
        return "AI is not configured (missing base URL). Set AURA_API_BASE_URL in .env (see config.example.py)."
    return msg


def build_messages(prompt: str, media: MediaPart | None) -> list[dict[str, Any]]:
    if media is None:
        user_content: Any = prompt
    else:
        user_content = [{"type": "text", "text": prompt}, media_to_content_part(media)]
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_content},
    ]


class OpenRouterAIClient:
    """
    Streaming AI collaborator over an OpenAI-compatible API (OpenRouter by default).

    Behavior:
    - Tries models in the configured order (AURA_AI_MODELS).
    - A model that yields no content token within the first-token timeout is skipped.
    - 404 (model not available) -> model parked for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast.
    Once a model has produced content, a failure mid-stream is not retried on
    another model (the partial output would be mixed) and surfaces as AIBackendError.
    """

    def __init__(self, settings: Any) -> None:
        api_key = getattr(settings, "api_key", None)
        base_url = getattr(settings, "api_base_url", "") or ""

        if not api_key or not str(api_key).strip():
            raise RuntimeError("AI API key is not set. Set AURA_API_KEY in your .env.")
        if not base_url.strip():
            raise RuntimeError("AI base URL is not set. Set AURA_API_BASE_URL in your .env.")

        self._models: list[str] = [m.strip() for m in (getattr(settings, "ai_models", None) or []) if m.strip()]
        if not self._models:
            raise RuntimeError("AI model list is empty. Set AURA_AI_MODELS in your .env.")

        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})
        self._timeouts = _timeouts_from_env()
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

        # Retries disabled so a failing model falls through to the next one quickly.
        self._client = AsyncOpenAI(
            base_url=str(base_url),
            api_key=str(api_key),
            timeout=httpx.Timeout(
                connect=self._timeouts["connect"],
                read=self._timeouts["read"],
                write=30.0,
                pool=self._timeouts["connect"],
            ),
            max_retries=0,
        )

    def source_label(self) -> str:
        return "Cloud AI"

    async def generate(self, prompt: str, media: MediaPart | None = None) -> AsyncIterator[str]:
        messages = build_messages(prompt, media)
        first_token_timeout = float(self._timeouts["first_token"])
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("AI: trying model=%s (first_token_timeout=%.1fs)", model, first_token_timeout)
            t0 = time.monotonic()
            deadline = t0 + first_token_timeout
            stream = None
            used_any = False
            timed_out = False

            try:
                stream = await self._client.chat.completions.create(
                    model=model,
                    stream=True,
                    extra_headers=self._headers or None,
                    messages=messages,
                )

                async for chunk in stream:
                    if not used_any and time.monotonic() > deadline:
                        last_error = TimeoutError(f"First token timeout on model: {model}")
                        logger.info("AI: first token timeout on model=%s -> trying next", model)
                        timed_out = True
                        break

                    content = chunk.choices[0].delta.content if chunk.choices else None
                    if content:
                        if not used_any:
                            logger.info("AI: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    logger.debug("AI: completed with model=%s", model)
                    return

                if not timed_out:
                    last_error = RuntimeError(f"Model returned no content: {model}")

            except Exception as e:
                if used_any:
                    raise AIBackendError(f"AI stream broke on model {model}: {e}", model=model) from e

                last_error = e

                if _is_auth_error(e):
                    raise AIBackendError(
                        "AI authentication failed. Check your API key (AURA_API_KEY).", model=model
                    ) from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + 3600.0
                    logger.info("AI: model not available (404): %s", model)
                elif _is_rate_limit_error(e):
                    logger.info("AI: rate-limited on model=%s, trying next", model)
                elif _is_connection_error(e):
                    logger.info("AI: network/timeout error on model=%s, trying next", model)
                else:
                    logger.info("AI: error on model=%s (%s), trying next", model, e.__class__.__name__)

            finally:
                if stream is not None:
                    await stream.close()

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise AIBackendError("AI is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise AIBackendError("AI network/timeout error. Try again later or change models.") from last_error
            raise AIBackendError("All AI models failed.") from last_error

        raise AIBackendError("All AI models failed.")

    async def close(self) -> None:
        await self._client.close()
