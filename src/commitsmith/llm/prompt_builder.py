"""
Prompt construction for the text-generation service.

The prompt is a single JSON document describing the role, the task, the
style requirements, worked examples, the sanitized files and the exact
shape of the expected answer. The expected answer carries an explicit
``kind`` tag (``"suggestions"`` or ``"files"``) which
:mod:`commitsmith.llm.response_parser` uses to decode it.

Only :class:`~commitsmith.models.SanitizedDiff` objects are accepted, so
raw diff content can never reach a prompt by accident.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Sequence

from commitsmith.errors import PromptTooLargeError, ValidationError
from commitsmith.models import SanitizedDiff


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_MAX_REQUEST_SIZE = 100_000
DEFAULT_EXCERPT_LIMIT = 3000

KIND_SUGGESTIONS = "suggestions"
KIND_FILES = "files"

ROLE = "You are an expert commit message generator for software development."

REQUIREMENTS = [
    "Describe WHAT WAS BUILT or changed: the functionality, feature or fix introduced.",
    "Start with a past tense action verb such as Implemented, Added, Created, Refactored, Fixed or Optimized.",
    "Explain the purpose or value of the change where it is visible in the code.",
    "Be specific; avoid vague statements like 'updated files' or 'improved code'.",
    "Do not use conventional prefixes such as 'feat:', 'fix:' or 'chore:'.",
    "Keep each message between 7 and 25 words and under 120 characters.",
    "Return JSON only, with no text before or after the document.",
]

GOOD_EXAMPLES = [
    "Implemented schema validation for configuration files to reject malformed settings early",
    "Added retry with exponential backoff to the HTTP client for transient network failures",
    "Created a centralized error hierarchy so callers can distinguish validation from network errors",
    "Refactored the diff parser to stream hunks instead of loading whole files into memory",
]

BAD_EXAMPLES = [
    {"message": "Major updates to validation.py (+279/-0 lines)", "problem": "focuses on metrics, not functionality"},
    {"message": "Updated files for better functionality", "problem": "too vague, lacks specifics"},
    {"message": "Improved code quality and maintainability", "problem": "generic, not descriptive of concrete changes"},
    {"message": "Added 15 new functions and 3 classes", "problem": "counts things instead of describing purpose"},
]


class PromptBuilder:
    """Build single-file and batch prompts.

    Parameters
    ----------
    max_request_size : int, optional
        Maximum number of characters of the assembled prompt. Larger
        prompts raise :class:`~commitsmith.errors.PromptTooLargeError`.
    excerpt_limit : int, optional
        Maximum number of diff characters included per file.
    """

    def __init__(
        self,
        max_request_size: int = DEFAULT_MAX_REQUEST_SIZE,
        excerpt_limit: int = DEFAULT_EXCERPT_LIMIT,
    ) -> None:
        self.max_request_size = max_request_size
        self.excerpt_limit = excerpt_limit

    def _file_section(self, index: int, diff: SanitizedDiff) -> Dict[str, Any]:
        content = diff.changes or ""
        section: Dict[str, Any] = {
            "id": index,
            "name": diff.path,
            "status": diff.status,
            "additions": diff.additions,
            "deletions": diff.deletions,
            "excerpt": content[: self.excerpt_limit],
            "truncated": len(content) > self.excerpt_limit,
        }
        if diff.is_renamed and diff.old_path:
            section["previous_name"] = diff.old_path
        return section

    def _document(self, task: str, diffs: Sequence[SanitizedDiff], response_format: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "role": ROLE,
            "task": task,
            "requirements": REQUIREMENTS,
            "examples": {"good": GOOD_EXAMPLES, "bad": BAD_EXAMPLES},
            "files": [self._file_section(index, diff) for index, diff in enumerate(diffs, start=1)],
            "response_format": response_format,
        }

    def _render(self, document: Dict[str, Any]) -> str:
        prompt = json.dumps(document, indent=2, ensure_ascii=False)
        if len(prompt) > self.max_request_size:
            logger.error(
                "Prompt of %d characters exceeds the limit of %d", len(prompt), self.max_request_size
            )
            raise PromptTooLargeError(len(prompt), self.max_request_size)
        return prompt

    def build_single(self, diffs: Sequence[SanitizedDiff]) -> str:
        """Build a prompt asking for a short ranked list of suggestions."""
        if not diffs:
            raise ValidationError("Cannot build a prompt without diffs")
        response_format = {
            "kind": KIND_SUGGESTIONS,
            "description": "Up to 3 commit message suggestions, best first.",
            "example": {
                "kind": KIND_SUGGESTIONS,
                "suggestions": [
                    {"message": "...", "description": "...", "confidence": 0.95},
                ],
            },
        }
        task = (
            "Analyze the code changes below and write a single, concise commit message "
            "that clearly describes the functional change."
        )
        return self._render(self._document(task, diffs, response_format))

    def build_batch(self, diffs: Sequence[SanitizedDiff]) -> str:
        """Build a prompt asking for one suggestion per file, keyed by file name."""
        if not diffs:
            raise ValidationError("Cannot build a prompt without diffs")
        files: Dict[str, Dict[str, Any]] = {
            diff.path: {"message": "...", "description": "...", "confidence": 0.95} for diff in diffs
        }
        response_format = {
            "kind": KIND_FILES,
            "description": (
                "One suggestion object for EACH file, keyed by the exact file name shown "
                "in the 'name' field."
            ),
            "example": {"kind": KIND_FILES, "files": files},
        }
        task = (
            f"You are analyzing {len(diffs)} changed files. For EACH file, write a specific "
            "commit message describing what was implemented in that file."
        )
        return self._render(self._document(task, diffs, response_format))
