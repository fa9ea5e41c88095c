"""
Deterministic fallback commit messages.

Used whenever the text-generation service fails irrecoverably or a parsed
response omits a file, so that message generation never blocks
committing. No network access is involved.
"""

from __future__ import annotations

from typing import Union

from commitsmith.models import FileDiff, SanitizedDiff, Suggestion


FALLBACK_CONFIDENCE = 0.3
GENERIC_FALLBACK_MESSAGE = "Implemented code changes"


def generate_fallback_message(diff: Union[FileDiff, SanitizedDiff]) -> str:
    """Return a message derived only from the status and size of ``diff``."""
    name = diff.path.replace("\\", "/").rsplit("/", 1)[-1] or diff.path
    if diff.is_new:
        return f"Created new {name} file with initial implementation"
    if diff.is_deleted:
        return f"Removed {name} file as it is no longer needed"
    if diff.additions > diff.deletions * 2:
        return f"Added new functionality to {name} file"
    if diff.deletions > diff.additions * 2:
        return f"Removed unused code from {name} file"
    return f"Updated {name} file with code improvements"


def fallback_suggestion(diff: Union[FileDiff, SanitizedDiff], reason: str = "") -> Suggestion:
    description = "Generated fallback commit message"
    if reason:
        description = f"{description} ({reason})"
    return Suggestion(
        message=generate_fallback_message(diff),
        description=description,
        confidence=FALLBACK_CONFIDENCE,
    )


def generic_fallback_suggestion() -> Suggestion:
    return Suggestion(
        message=GENERIC_FALLBACK_MESSAGE,
        description="Generated fallback commit message for code implementation",
        confidence=FALLBACK_CONFIDENCE,
    )
