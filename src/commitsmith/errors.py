"""
Exception hierarchy for commitsmith.

Every error raised by the pipeline derives from :class:`CommitsmithError`.
The ``recoverable`` flag tells the retry policy in
:mod:`commitsmith.llm.retry` whether an operation may be attempted again:
only timeouts and transient network failures are recoverable. Validation
and security failures are surfaced immediately.
"""

from __future__ import annotations


class CommitsmithError(Exception):
    """Base class for all commitsmith errors."""

    def __init__(self, message: str = "", recoverable: bool = False) -> None:
        super().__init__(message)
        self.recoverable = recoverable


class ValidationError(CommitsmithError):
    """Raised when input has the wrong shape (empty diff set, oversized prompt)."""

    pass


class PromptTooLargeError(ValidationError):
    """Raised when an assembled prompt exceeds the configured request size."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Prompt size {size} exceeds limit of {limit} characters")
        self.size = size
        self.limit = limit


class SecurityError(CommitsmithError):
    """Raised for sensitive content or paths escaping the repository."""

    pass


class LLMError(CommitsmithError):
    """Raised when communication with the text-generation service fails."""

    pass


class ResponseParseError(CommitsmithError):
    """Raised internally when a model response cannot be decoded."""

    pass
