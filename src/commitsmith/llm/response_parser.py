"""
Parsing and validation of responses from the text-generation service.

The service is asked for a JSON document tagged with ``kind``:

* ``{"kind": "suggestions", "suggestions": [...]}`` for single-file
  requests, decoded into :class:`SuggestionListResponse`;
* ``{"kind": "files", "files": {"<name>": {...}}}`` for batch requests,
  decoded into :class:`FileMapResponse`.

Decoding follows the tag; when a model omits it, the shape that was
requested is assumed. A document whose payload does not match its tag is
rejected rather than guessed at. When no document can be decoded the
parser falls back to line-oriented text parsing and finally to
deterministic fallback messages, so parsing never fails outright.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from commitsmith.errors import ResponseParseError
from commitsmith.llm.fallback import fallback_suggestion, generic_fallback_suggestion
from commitsmith.llm.prompt_builder import KIND_FILES, KIND_SUGGESTIONS
from commitsmith.models import SanitizedDiff, Suggestion


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


MIN_WORDS = 7
MAX_WORDS = 25
MAX_MESSAGE_CHARS = 120
MAX_SCHEMA_CHARS = 200
MAX_SUGGESTIONS = 3
DEFAULT_CONFIDENCE = 0.8
SHORT_MESSAGE_PENALTY = 0.4
SHORT_MESSAGE_FLOOR = 0.3
LONG_MESSAGE_PENALTY = 0.1
LONG_MESSAGE_FLOOR = 0.6

SUSPICIOUS_MESSAGE_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"\bon(load|error|click)\s*=", re.IGNORECASE),
)

NUMBERED_LINE = re.compile(r"^\s*\d+[.)]\s*")
CONVENTIONAL_PREFIX = re.compile(r"^\s*(feat|fix|chore|docs|refactor|perf|test|build|ci|style)(\([^)]*\))?:", re.IGNORECASE)
ACTION_VERB = re.compile(
    r"^\s*[-*]?\s*[\"']?(Added|Implemented|Created|Fixed|Updated|Removed|Refactored|Optimized|"
    r"Improved|Introduced|Renamed|Replaced|Moved|Extracted|Simplified|Integrated|Built)\b"
)


@dataclass(frozen=True)
class SuggestionListResponse:
    """A ranked list of suggestions (single-file shape)."""

    suggestions: List[Suggestion] = field(default_factory=list)


@dataclass(frozen=True)
class FileMapResponse:
    """Suggestions keyed by file name (batch shape)."""

    files: Dict[str, List[Suggestion]] = field(default_factory=dict)


ParsedResponse = Union[SuggestionListResponse, FileMapResponse]


def extract_document(text: str) -> Dict[str, Any]:
    """Locate and decode the JSON object embedded in ``text``.

    Raises
    ------
    ResponseParseError
        If no object is found or it is not valid JSON.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ResponseParseError("No JSON found in response")
    try:
        document = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Invalid JSON in response: {exc}") from exc
    if not isinstance(document, dict):
        raise ResponseParseError("Response JSON is not an object")
    return document


def _to_suggestion(item: Any) -> Suggestion:
    if not isinstance(item, Mapping):
        raise ResponseParseError(f"Suggestion entry is not an object: {item!r}")
    confidence = item.get("confidence", DEFAULT_CONFIDENCE)
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = DEFAULT_CONFIDENCE
    return Suggestion(
        message=item.get("message") if isinstance(item.get("message"), str) else "",
        description=str(item.get("description") or ""),
        type=str(item.get("type") or ""),
        scope=str(item.get("scope") or ""),
        confidence=float(confidence),
    )


def decode_response(document: Mapping[str, Any], expected_kind: str) -> ParsedResponse:
    """Decode ``document`` into one variant of :data:`ParsedResponse`."""
    kind = document.get("kind", expected_kind)
    if kind == KIND_SUGGESTIONS:
        items = document.get("suggestions")
        if not isinstance(items, list):
            raise ResponseParseError("'suggestions' response without a suggestion list")
        return SuggestionListResponse([_to_suggestion(item) for item in items])
    if kind == KIND_FILES:
        files = document.get("files")
        if not isinstance(files, Mapping):
            raise ResponseParseError("'files' response without a file mapping")
        decoded: Dict[str, List[Suggestion]] = {}
        for name, entry in files.items():
            entries = entry if isinstance(entry, list) else [entry]
            decoded[str(name)] = [_to_suggestion(item) for item in entries]
        return FileMapResponse(decoded)
    raise ResponseParseError(f"Unknown response kind: {kind!r}")


def parse_text_response(text: str) -> List[Suggestion]:
    """Extract suggestions from free-form text, one per qualifying line."""
    suggestions: List[Suggestion] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        if not (NUMBERED_LINE.match(line) or CONVENTIONAL_PREFIX.match(line) or ACTION_VERB.match(line)):
            continue
        message = NUMBERED_LINE.sub("", line, count=1).strip().lstrip("-* ").strip("\"'` ")
        if len(message) > 5:
            suggestions.append(Suggestion(message=message, confidence=DEFAULT_CONFIDENCE))
        if len(suggestions) >= MAX_SUGGESTIONS:
            break
    return suggestions


def _schema_error(suggestion: Suggestion) -> Optional[str]:
    message = suggestion.message
    if not isinstance(message, str) or not message.strip():
        return "Commit message is required"
    if len(message.strip()) > MAX_SCHEMA_CHARS:
        return f"Commit message must be {MAX_SCHEMA_CHARS} characters or less"
    if not 0.0 <= suggestion.confidence <= 1.0:
        return "Confidence must be between 0 and 1"
    if any(pattern.search(message) for pattern in SUSPICIOUS_MESSAGE_PATTERNS):
        return "Commit message contains potentially malicious content"
    return None


def validate_suggestions(suggestions: Iterable[Suggestion]) -> List[Suggestion]:
    """Enforce message shape constraints.

    Suggestions failing the minimal schema are dropped and logged. Short
    messages keep their text but lose confidence; long messages are cut to
    :data:`MAX_WORDS` words. The final text is capped at
    :data:`MAX_MESSAGE_CHARS` characters plus an ellipsis.
    """
    validated: List[Suggestion] = []
    for suggestion in suggestions:
        error = _schema_error(suggestion)
        if error:
            logger.warning("Skipping invalid suggestion %r: %s", suggestion.message, error)
            continue

        message = suggestion.message.strip()
        confidence = suggestion.confidence
        words = message.split()
        if len(words) < MIN_WORDS:
            confidence = max(SHORT_MESSAGE_FLOOR, confidence - SHORT_MESSAGE_PENALTY)
        elif len(words) > MAX_WORDS:
            message = " ".join(words[:MAX_WORDS])
            confidence = max(LONG_MESSAGE_FLOOR, confidence - LONG_MESSAGE_PENALTY)

        if len(message) > MAX_MESSAGE_CHARS:
            message = f"{message[:MAX_MESSAGE_CHARS]}..."

        validated.append(
            Suggestion(
                message=message,
                description=suggestion.description,
                type=suggestion.type,
                scope=suggestion.scope,
                confidence=round(confidence, 4),
            )
        )
    return validated


def parse_single_response(text: str) -> List[Suggestion]:
    """Parse a single-file response; always returns at least one suggestion."""
    try:
        parsed = decode_response(extract_document(text), KIND_SUGGESTIONS)
    except ResponseParseError as exc:
        logger.warning("Failed to parse JSON response (%s); falling back to text parsing", exc)
        candidates = parse_text_response(text)
    else:
        if isinstance(parsed, FileMapResponse):
            candidates = [item for items in parsed.files.values() for item in items]
        else:
            candidates = parsed.suggestions

    suggestions = validate_suggestions(candidates)[:MAX_SUGGESTIONS]
    if not suggestions:
        logger.warning("No usable suggestion in response; using generic fallback")
        return [generic_fallback_suggestion()]
    return suggestions


def parse_batch_response(text: str, diffs: Mapping[str, SanitizedDiff]) -> Dict[str, List[Suggestion]]:
    """Parse a batch response.

    Parameters
    ----------
    text : str
        Raw model output.
    diffs : Mapping[str, SanitizedDiff]
        Result key (normally the original file path) mapped to the
        sanitized diff whose ``path`` was shown to the model.

    Returns
    -------
    Dict[str, List[Suggestion]]
        Exactly one non-empty suggestion list per key of ``diffs``.
    """
    try:
        parsed = decode_response(extract_document(text), KIND_FILES)
    except ResponseParseError as exc:
        logger.warning("Failed to parse batch response (%s); using fallbacks", exc)
        return {key: [fallback_suggestion(diff, "parsing error")] for key, diff in diffs.items()}

    results: Dict[str, List[Suggestion]] = {}
    if isinstance(parsed, SuggestionListResponse):
        shared = validate_suggestions(parsed.suggestions)[:MAX_SUGGESTIONS]
        for key, diff in diffs.items():
            results[key] = copy.deepcopy(shared) if shared else [fallback_suggestion(diff)]
        return results

    for key, diff in diffs.items():
        entries = parsed.files.get(diff.path)
        validated = validate_suggestions(entries)[:MAX_SUGGESTIONS] if entries else []
        if validated:
            results[key] = validated
        else:
            logger.info("No suggestion for %s in response; using fallback", diff.path)
            results[key] = [fallback_suggestion(diff)]
    return results


class ResponseParser:
    """Injectable wrapper around :func:`parse_single_response` and :func:`parse_batch_response`."""

    def parse_single(self, text: str) -> List[Suggestion]:
        return parse_single_response(text)

    def parse_batch(self, text: str, diffs: Mapping[str, SanitizedDiff]) -> Dict[str, List[Suggestion]]:
        return parse_batch_response(text, diffs)
