# tests/test_llm.py

from __future__ import annotations

import base64
from pathlib import Path
from types import SimpleNamespace

import httpx
import openai
import pytest

from aura_tasks.cli.bootstrap import create_ai_client
from aura_tasks.core.errors import AIBackendError
from aura_tasks.core.ports import MediaPart
from aura_tasks.llm.client import OpenRouterAIClient, build_messages, friendly_error_message
from aura_tasks.llm.media import load_media, media_to_content_part
from aura_tasks.llm.offline import OfflineAIClient
from aura_tasks.tasks import response_parser
from aura_tasks.tasks.prompts import text_prompt

from .fakes import FakeChatStream, ScriptedCompletions


def _ai_settings(**overrides) -> SimpleNamespace:
    base = dict(
        api_key="sk-test",
        api_base_url="https://example.invalid/v1",
        ai_models=["model-a"],
        extra_headers={},
    )
    base.update(overrides)
    return SimpleNamespace(**base)


def test_missing_key_falls_back_to_offline() -> None:
    client = create_ai_client(_ai_settings(api_key=None))
    assert isinstance(client, OfflineAIClient)
    assert client.source_label() == "Offline AI"


def test_configured_key_builds_cloud_client() -> None:
    client = create_ai_client(_ai_settings())
    assert isinstance(client, OpenRouterAIClient)
    assert client.source_label() == "Cloud AI"


def test_empty_model_list_is_a_config_error() -> None:
    with pytest.raises(RuntimeError) as exc:
        OpenRouterAIClient(_ai_settings(ai_models=[" "]))
    assert "AURA_AI_MODELS" in friendly_error_message(exc.value)


def test_build_messages_text_and_media() -> None:
    text_only = build_messages("hello", None)
    assert text_only[-1] == {"role": "user", "content": "hello"}

    media = MediaPart(data=b"abc", mime_type="image/png", kind="image")
    with_media = build_messages("look", media)
    content = with_media[-1]["content"]
    assert content[0] == {"type": "text", "text": "look"}
    assert content[1]["image_url"]["url"] == "data:image/png;base64," + base64.b64encode(b"abc").decode()


def test_audio_content_part() -> None:
    part = media_to_content_part(MediaPart(data=b"RIFF", mime_type="audio/mpeg", kind="audio"))
    assert part["type"] == "input_audio"
    assert part["input_audio"]["format"] == "mp3"


@pytest.mark.asyncio
async def test_load_media_detects_mime(tmp_path: Path) -> None:
    clip = tmp_path / "memo.wav"
    clip.write_bytes(b"RIFFdata")
    media = await load_media(clip, "audio")
    assert media.data == b"RIFFdata"
    assert media.kind == "audio"
    assert media.mime_type.startswith("audio/")
    assert media_to_content_part(media)["input_audio"]["format"] == "wav"

    odd = tmp_path / "scan.bin"
    odd.write_bytes(b"?")
    assert (await load_media(odd, "image")).mime_type == "image/png"

    with pytest.raises(ValueError):
        await load_media(clip, "video")


@pytest.mark.asyncio
async def test_offline_client_output_is_parseable() -> None:
    client = OfflineAIClient()
    chunks = [c async for c in client.generate(text_prompt("take the cat to the vet at 11am"))]
    raw = "".join(chunks)

    candidates = response_parser.parse(raw)
    assert candidates is not None
    assert candidates[0].title == "take the cat to the vet"
    assert candidates[0].time is not None and candidates[0].time.endswith("T11:00:00")


@pytest.mark.asyncio
async def test_offline_client_media_yields_no_task() -> None:
    client = OfflineAIClient()
    media = MediaPart(data=b"x", mime_type="image/png", kind="image")
    raw = "".join([c async for c in client.generate("anything", media)])
    assert response_parser.parse(raw) is None


# ---- model fallback (scripted chat.completions) ----

_REQUEST = httpx.Request("POST", "https://example.invalid/v1/chat/completions")


def _status_error(cls: type[openai.APIStatusError], status: int) -> openai.APIStatusError:
    return cls(f"HTTP {status}", response=httpx.Response(status, request=_REQUEST), body=None)


def _scripted_client(outcomes: dict) -> tuple[OpenRouterAIClient, ScriptedCompletions]:
    client = OpenRouterAIClient(_ai_settings(ai_models=list(outcomes)))
    completions = ScriptedCompletions(outcomes)
    client._client = completions.as_client()
    return client, completions


async def _drain(client: OpenRouterAIClient, seen: list[str] | None = None) -> list[str]:
    pieces = seen if seen is not None else []
    async for piece in client.generate("plan my day"):
        pieces.append(piece)
    return pieces


@pytest.mark.asyncio
async def test_unavailable_model_falls_through_and_is_parked() -> None:
    client, completions = _scripted_client(
        {"a": _status_error(openai.NotFoundError, 404), "b": FakeChatStream(["hel", None, "lo"])}
    )

    assert await _drain(client) == ["hel", "lo"]
    assert completions.models == ["a", "b"]

    completions.models.clear()
    completions.outcomes["b"] = FakeChatStream(["again"])
    assert await _drain(client) == ["again"]
    assert completions.models == ["b"]


@pytest.mark.asyncio
async def test_auth_error_fails_fast() -> None:
    client, completions = _scripted_client(
        {"a": _status_error(openai.AuthenticationError, 401), "b": FakeChatStream(["never"])}
    )

    with pytest.raises(AIBackendError) as exc:
        await _drain(client)

    assert "authentication failed" in str(exc.value)
    assert exc.value.model == "a"
    assert isinstance(exc.value.__cause__, openai.AuthenticationError)
    assert completions.models == ["a"]


@pytest.mark.asyncio
async def test_stream_breaking_after_content_is_not_retried() -> None:
    broken = FakeChatStream(["par"], fail_with=httpx.ReadError("boom", request=_REQUEST))
    client, completions = _scripted_client({"a": broken, "b": FakeChatStream(["other"])})
    seen: list[str] = []

    with pytest.raises(AIBackendError) as exc:
        await _drain(client, seen)

    assert seen == ["par"]
    assert str(exc.value) == "AI stream broke on model a: boom"
    assert completions.models == ["a"]
    assert broken.closed


@pytest.mark.asyncio
async def test_rate_limit_then_network_error_reports_last_cause() -> None:
    client, completions = _scripted_client(
        {
            "a": _status_error(openai.RateLimitError, 429),
            "b": openai.APIConnectionError(request=_REQUEST),
        }
    )

    with pytest.raises(AIBackendError) as exc:
        await _drain(client)

    assert str(exc.value).startswith("AI network/timeout error")
    assert isinstance(exc.value.__cause__, openai.APIConnectionError)
    assert completions.models == ["a", "b"]


@pytest.mark.asyncio
async def test_rate_limited_last_model() -> None:
    client, _ = _scripted_client({"a": FakeChatStream([]), "b": _status_error(openai.RateLimitError, 429)})

    with pytest.raises(AIBackendError) as exc:
        await _drain(client)

    assert str(exc.value) == "AI is rate-limited. Try again later."
    assert isinstance(exc.value.__cause__, openai.RateLimitError)


@pytest.mark.asyncio
async def test_models_without_content_all_fail() -> None:
    empty_a, empty_b = FakeChatStream([None]), FakeChatStream([""])
    client, completions = _scripted_client({"a": empty_a, "b": empty_b})

    with pytest.raises(AIBackendError) as exc:
        await _drain(client)

    assert str(exc.value) == "All AI models failed."
    assert str(exc.value.__cause__) == "Model returned no content: b"
    assert completions.models == ["a", "b"]
    assert empty_a.closed and empty_b.closed
