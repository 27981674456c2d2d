# src/aura_tasks/core/errors.py

"""
Error taxonomy shared by the core.

All of these are recoverable: the orchestrator catches them at the batch
boundary and turns them into a status message for the presentation layer.
"""

from __future__ import annotations


class AuraError(Exception):
    """Base class for every error the scheduling core raises on purpose."""


class ParseFailure(AuraError):
    """No task could be extracted from the AI response text."""

    def __init__(self, message: str = "No task found in the AI response.", raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class AIBackendError(AuraError):
    """The AI request or its stream failed."""

    def __init__(self, message: str, *, model: str | None = None) -> None:
        super().__init__(message)
        self.model = model


class StorageError(AuraError):
    """A TaskStore operation failed or was rejected."""


class ValidationError(AuraError):
    """A candidate or edit is missing required data (e.g. an empty title)."""
