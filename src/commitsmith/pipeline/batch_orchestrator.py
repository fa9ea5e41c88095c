"""
Batch commit orchestration.

:class:`BatchCommitOrchestrator` turns every pending file into its own
commit. A run moves through four phases:

Analyze
    Diffs are retrieved in chunks of :data:`DEFAULT_CHUNK_SIZE` files, each
    chunk concurrently. Sensitive paths are skipped before their content is
    read, empty files are skipped, and the rest are classified into
    AI-eligible and summary-eligible files.
Generate
    One batch request produces messages for all AI-eligible files. Any
    failure degrades to deterministic fallback messages.
Commit
    Files are staged and committed one by one, each Git call waiting for
    ``.git/index.lock`` to clear first. A failure affects only the file it
    happened on.
Report
    A :class:`~commitsmith.models.BatchReport` describes the outcome.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterator, List, Optional, Sequence, TypeVar, Union

from commitsmith.analysis.change_classifier import classify
from commitsmith.analysis.summary_messages import generate_summary_message
from commitsmith.llm.commit_message_generator import CommitMessageGenerator
from commitsmith.llm.fallback import generate_fallback_message
from commitsmith.models import (
    BatchReport,
    BatchStatus,
    ClassificationResult,
    FileDiff,
    SkippedFile,
)
from commitsmith.privacy.sanitizer import check_sensitive_path
from commitsmith.vcs.git_client import INDEX_LOCK_TIMEOUT, GitClient, GitLockError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_CHUNK_SIZE = 10

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of ``items`` with at most ``size`` elements."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class BatchCommitOrchestrator:
    """Create one commit per changed file.

    Parameters
    ----------
    vcs : GitClient
        Version-control collaborator.
    generator_factory : callable
        Returns the :class:`CommitMessageGenerator` to use. Called at most
        once, and only when AI-eligible files exist, so that configuration
        problems surface as fallback messages instead of aborting the run.
    chunk_size : int, optional
        Number of diffs retrieved concurrently.
    dry_run : bool, optional
        Compute messages without staging or committing anything.
    lock_timeout : float, optional
        Seconds to wait for ``.git/index.lock`` to clear before each staging
        and commit call.
    """

    def __init__(
        self,
        vcs: GitClient,
        generator_factory: Callable[[], CommitMessageGenerator],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        dry_run: bool = False,
        lock_timeout: float = INDEX_LOCK_TIMEOUT,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.vcs = vcs
        self.generator_factory = generator_factory
        self.chunk_size = chunk_size
        self.dry_run = dry_run
        self.lock_timeout = lock_timeout
        self._generator: Optional[CommitMessageGenerator] = None

    # ------------------------------------------------------------------
    # Analyze
    # ------------------------------------------------------------------
    def _retrieve(self, path: str) -> Union[FileDiff, SkippedFile]:
        diff = self.vcs.get_file_diff(path)
        if diff.total_changes == 0 and not diff.changes.strip() and not diff.is_deleted:
            reason = "empty new file" if diff.is_new else "no changes"
            return SkippedFile(path, reason)
        return diff

    def analyze(self, files: Sequence[str]) -> ClassificationResult:
        """Retrieve diffs chunk by chunk and partition the files."""
        result = ClassificationResult()
        pending: List[str] = []
        for path in files:
            decision = check_sensitive_path(path)
            if decision.skip:
                logger.warning("Skipping %s: %s", path, decision.reason)
                result.skipped.append(SkippedFile(path, decision.reason or "Sensitive file"))
            else:
                pending.append(path)

        for index, chunk in enumerate(chunked(pending, self.chunk_size), start=1):
            logger.info("Analyzing chunk %d (%d file(s))", index, len(chunk))
            with ThreadPoolExecutor(max_workers=self.chunk_size) as executor:
                futures = [(path, executor.submit(self._retrieve, path)) for path in chunk]
                for path, future in futures:
                    try:
                        outcome = future.result()
                    except Exception as exc:
                        logger.error("Failed to analyze %s: %s", path, exc)
                        result.skipped.append(SkippedFile(path, f"analysis failed: {exc}"))
                        continue
                    if isinstance(outcome, SkippedFile):
                        logger.info("Skipping %s: %s", outcome.path, outcome.reason)
                        result.skipped.append(outcome)
                        continue
                    decision = classify(outcome.path, outcome.total_changes)
                    if decision.use_summary:
                        logger.debug("%s uses a summary message (%s)", outcome.path, decision.rule)
                        result.summary_eligible.append(outcome)
                    else:
                        result.ai_eligible.append(outcome)
        return result

    # ------------------------------------------------------------------
    # Generate
    # ------------------------------------------------------------------
    def _get_generator(self) -> CommitMessageGenerator:
        if self._generator is None:
            self._generator = self.generator_factory()
        return self._generator

    def generate_messages(self, diffs: Sequence[FileDiff], report: BatchReport) -> Dict[str, str]:
        """Return one message per file in ``diffs`` not excluded for privacy.

        Files the generator refuses to send are added to ``report.skipped``.
        """
        if not diffs:
            return {}
        generator: Optional[CommitMessageGenerator] = None
        results = {}
        try:
            generator = self._get_generator()
            results = generator.generate_batch(diffs)
        except Exception as exc:
            logger.error("Commit message generation failed (%s); using fallback messages", exc)

        excluded = set()
        if generator is not None:
            report.privacy_report = generator.last_privacy_report
            for item in generator.skipped:
                excluded.add(item.path)
                report.skipped.append(item)

        messages: Dict[str, str] = {}
        for diff in diffs:
            if diff.path in excluded:
                continue
            suggestions = results.get(diff.path) or []
            if suggestions and suggestions[0].message.strip():
                messages[diff.path] = suggestions[0].message
            else:
                messages[diff.path] = generate_fallback_message(diff)
        return messages

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def commit_file(self, diff: FileDiff, message: str) -> None:
        """Stage and commit a single file.

        Raises
        ------
        GitError
            If staging or committing fails, or the index lock lingers.
        """
        paths = [diff.path]
        if diff.is_renamed and diff.old_path:
            paths.append(diff.old_path)
        # Every Git call below takes .git/index.lock itself.
        for path in paths:
            self.vcs.wait_for_index_lock(timeout=self.lock_timeout)
            self.vcs.stage_file(path)
        self.vcs.wait_for_index_lock(timeout=self.lock_timeout)
        self.vcs.commit(message, paths=paths)

    def _commit_all(self, diffs: Sequence[FileDiff], messages: Dict[str, str], report: BatchReport) -> None:
        for diff in diffs:
            message = messages.get(diff.path)
            if message is None:
                continue
            report.attempted += 1
            if self.dry_run:
                logger.info("[dry run] %s: %s", diff.path, message)
                report.committed.append((diff.path, message))
                continue
            try:
                self.commit_file(diff, message)
            except GitLockError as exc:
                logger.error("Index lock contention while committing %s. %s", diff.path, exc)
                report.failed.append((diff.path, str(exc)))
            except Exception as exc:
                logger.error("Failed to commit %s: %s", diff.path, exc)
                report.failed.append((diff.path, str(exc)))
            else:
                logger.info("Committed %s: %s", diff.path, message)
                report.committed.append((diff.path, message))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    def run(self, files: Optional[Sequence[str]] = None) -> BatchReport:
        """Process ``files`` (default: every unstaged file) and report."""
        if files is None:
            files = self.vcs.get_unstaged_files()
        files = list(files)
        if not files:
            logger.info("No changes detected")
            return BatchReport(status=BatchStatus.NO_CHANGES)

        report = BatchReport(status=BatchStatus.COMPLETED, total_files=len(files), dry_run=self.dry_run)
        classification = self.analyze(files)
        report.skipped.extend(classification.skipped)
        if not classification.actionable:
            logger.info("All %d file(s) were filtered out; nothing to do", len(files))
            report.status = BatchStatus.NOTHING_TO_DO
            return report

        messages = self.generate_messages(classification.ai_eligible, report)
        for diff in classification.summary_eligible:
            messages[diff.path] = generate_summary_message(diff)

        self._commit_all(classification.ai_eligible + classification.summary_eligible, messages, report)
        logger.info("Processed %d of %d file(s)", report.processed, report.total_files)
        return report
