# src/aura_tasks/tasks/prompts.py

from __future__ import annotations

AUDIO_PROMPT = (
    "Analyze this audio to extract task information like meeting schedules, appointments, "
    "or reminders. Return JSON with title, time (ISO string), and description."
)

IMAGE_PROMPT = (
    "Analyze this image to extract task information like event details, schedules, or "
    "appointments from tickets, flyers, or calendars. Return JSON with title, time "
    "(ISO string), and description."
)

MEDIA_PROMPTS = {
    "audio": AUDIO_PROMPT,
    "image": IMAGE_PROMPT,
}


def text_prompt(user_text: str) -> str:
    return (
        "Analyze this task description and extract task information in JSON format "
        f'with title, time (ISO string), and description: "{user_text}"'
    )


def media_prompt(kind: str) -> str:
    try:
        return MEDIA_PROMPTS[kind]
    except KeyError:
        raise ValueError(f"Unknown media kind: {kind!r} (expected audio or image)") from None
