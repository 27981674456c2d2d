# src/aura_tasks/llm/media.py

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path
from typing import Any

from ..core.ports import MediaPart

logger = logging.getLogger(__name__)

_DEFAULT_MIME = {
    "audio": "audio/wav",
    "image": "image/png",
}

# input_audio only accepts a short format name.
_AUDIO_FORMATS = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/vnd.wave": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
}


def guess_mime_type(path: Path, kind: str) -> str:
    mime, _ = mimetypes.guess_type(path.name)
    if mime and mime.split("/", 1)[0] == kind:
        return mime
    return _DEFAULT_MIME[kind]


async def load_media(path: str | Path, kind: str) -> MediaPart:
    """Read a media file without blocking the event loop."""
    if kind not in _DEFAULT_MIME:
        raise ValueError(f"Unknown media kind: {kind!r} (expected audio or image)")

    p = Path(path).expanduser()
    data = await asyncio.to_thread(p.read_bytes)
    mime = guess_mime_type(p, kind)
    logger.debug("Loaded %s media %s (%d bytes, %s)", kind, p, len(data), mime)
    return MediaPart(data=data, mime_type=mime, kind=kind)


def media_to_content_part(media: MediaPart) -> dict[str, Any]:
    """OpenAI-style chat content part for a media payload."""
    b64 = base64.b64encode(media.data).decode("ascii")
    if media.kind == "audio":
        return {
            "type": "input_audio",
            "input_audio": {"data": b64, "format": _AUDIO_FORMATS.get(media.mime_type, "wav")},
        }
    return {
        "type": "image_url",
        "image_url": {"url": f"data:{media.mime_type};base64,{b64}"},
    }
