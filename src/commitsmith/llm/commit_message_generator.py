"""
Commit message generation using a text-generation service.

This module provides the :class:`CommitMessageGenerator` class, which
turns a set of :class:`~commitsmith.models.FileDiff` objects into ranked
:class:`~commitsmith.models.Suggestion` lists. Every call:

1. drops files that must not leave the machine and sanitizes the rest;
2. returns a cached result for identical input;
3. builds a prompt, sizes a timeout and calls the service under a retry
   policy;
4. parses and validates the response, then caches it.

Parsing problems never surface as errors; they resolve to fallback
messages inside :mod:`commitsmith.llm.response_parser`.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from commitsmith.errors import SecurityError, ValidationError
from commitsmith.llm.cache import SuggestionCache, fingerprint
from commitsmith.llm.ollama_client import OllamaClient
from commitsmith.llm.prompt_builder import PromptBuilder
from commitsmith.llm.response_parser import ResponseParser
from commitsmith.llm.retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_ATTEMPTS, with_retry
from commitsmith.llm.timeouts import calculate_generation_timeout
from commitsmith.models import FileDiff, SanitizedDiff, SkippedFile, Suggestion
from commitsmith.privacy.sanitizer import (
    PrivacyReport,
    create_privacy_report,
    ensure_within_repository,
    sanitize_diff,
    should_skip_file,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class CommitMessageGenerator:
    """Generate commit message suggestions for file diffs.

    Parameters
    ----------
    client : OllamaClient
        Transport used to reach the text-generation service. Anything with
        a ``generate(prompt, timeout=None) -> str`` method works.
    repo_root : str or Path
        Repository root used to sanitize paths.
    prompt_builder, cache, parser : optional
        Collaborators; defaults are created when omitted.
    max_attempts : int, optional
        Attempts per call, including the first.
    retry_delay : float, optional
        Delay in seconds before the first retry; doubles afterwards.
    sleep : callable, optional
        Used between retries. Tests pass a no-op.
    """

    def __init__(
        self,
        client: OllamaClient,
        repo_root: Union[str, Path],
        prompt_builder: Optional[PromptBuilder] = None,
        cache: Optional[SuggestionCache] = None,
        parser: Optional[ResponseParser] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.repo_root = Path(repo_root)
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.cache = cache if cache is not None else SuggestionCache()
        self.parser = parser or ResponseParser()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self.skipped: List[SkippedFile] = []
        self.last_privacy_report: Optional[PrivacyReport] = None

    def _prepare(self, diffs: Sequence[FileDiff]) -> List[Tuple[FileDiff, SanitizedDiff]]:
        """Apply the skip decision and sanitize every remaining diff."""
        if not diffs:
            raise ValidationError("No diffs provided for commit message generation")
        self.skipped = []
        prepared: List[Tuple[FileDiff, SanitizedDiff]] = []
        for diff in diffs:
            try:
                ensure_within_repository(diff.path, self.repo_root)
            except SecurityError as exc:
                logger.warning("Skipping %s: %s", diff.file_name, exc)
                self.skipped.append(SkippedFile(diff.path, str(exc)))
                continue
            decision = should_skip_file(diff.path, diff.changes)
            if decision.skip:
                logger.warning("Skipping sensitive file %s: %s", diff.path, decision.reason)
                self.skipped.append(SkippedFile(diff.path, decision.reason or "Sensitive file"))
                continue
            prepared.append((diff, sanitize_diff(diff, self.repo_root)))

        report = create_privacy_report(sanitized for _, sanitized in prepared)
        self.last_privacy_report = report
        if report.sanitized_files:
            logger.warning(
                "Sanitized sensitive content in %d of %d file(s)",
                report.sanitized_files,
                report.total_files,
            )
            for warning in report.warnings:
                logger.info("Privacy: %s", warning)

        if not prepared:
            raise ValidationError("All files were skipped for privacy reasons")
        return prepared

    def _request(self, prompt: str, sanitized: Sequence[SanitizedDiff], parse: Callable[[str], object]):
        timeout = calculate_generation_timeout(
            len(prompt),
            file_count=len(sanitized),
            total_changes=sum(diff.total_changes for diff in sanitized),
        )
        logger.debug("Requesting suggestions for %d file(s) with %.1fs timeout", len(sanitized), timeout)

        def attempt():
            return parse(self.client.generate(prompt, timeout=timeout))

        return with_retry(
            attempt,
            "Commit message generation",
            max_attempts=self.max_attempts,
            base_delay=self.retry_delay,
            sleep=self._sleep,
        )

    def generate(self, diffs: Sequence[FileDiff]) -> List[Suggestion]:
        """Return ranked suggestions describing ``diffs`` as one change.

        Raises
        ------
        ValidationError
            If ``diffs`` is empty, every file was skipped, or the prompt is
            too large.
        LLMError
            If the service stays unreachable after all retries or answers
            with an error.
        """
        prepared = self._prepare(diffs)
        key = fingerprint([diff for diff, _ in prepared])
        cached = self.cache.get_single(key)
        if cached is not None:
            logger.debug("Cache hit for %d file(s)", len(prepared))
            return cached

        sanitized = [item for _, item in prepared]
        prompt = self.prompt_builder.build_single(sanitized)
        suggestions = self._request(prompt, sanitized, self.parser.parse_single)
        self.cache.put_single(key, suggestions)
        return suggestions

    def generate_batch(self, diffs: Sequence[FileDiff]) -> Dict[str, List[Suggestion]]:
        """Return suggestions for each file, keyed by its original path.

        Files skipped for privacy or security reasons are absent from the
        result and listed in :attr:`skipped`.
        """
        prepared = self._prepare(diffs)
        key = fingerprint([diff for diff, _ in prepared])
        cached = self.cache.get_batch(key)
        if cached is not None:
            logger.debug("Batch cache hit for %d file(s)", len(prepared))
            return cached

        by_path: Dict[str, SanitizedDiff] = {diff.path: sanitized for diff, sanitized in prepared}
        sanitized = list(by_path.values())
        prompt = self.prompt_builder.build_batch(sanitized)
        results = self._request(prompt, sanitized, lambda text: self.parser.parse_batch(text, by_path))
        self.cache.put_batch(key, results)
        return results
