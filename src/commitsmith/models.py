"""
Data models shared by the commit pipeline.

A :class:`FileDiff` is the unit of work for every stage. It is produced by
the Git client, sanitized into a :class:`SanitizedDiff` before anything is
sent to the text-generation service, and turned into one or more
:class:`Suggestion` objects by the response parser. The batch orchestrator
partitions diffs into a :class:`ClassificationResult` and reports its
outcome as a :class:`BatchReport`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from commitsmith.privacy.sanitizer import PrivacyReport


@dataclass(frozen=True)
class FileDiff:
    """A single file's recorded change.

    Attributes
    ----------
    path : str
        Path of the file relative to the repository root.
    additions : int
        Number of added lines.
    deletions : int
        Number of deleted lines.
    changes : str
        Raw unified diff text.
    is_new, is_deleted, is_renamed : bool
        Status flags reported by the version-control system.
    old_path : str, optional
        Previous path for renamed files.
    """

    path: str
    additions: int = 0
    deletions: int = 0
    changes: str = ""
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    old_path: Optional[str] = None

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.path.replace("\\", "/")).name or self.path

    @property
    def status(self) -> str:
        if self.is_new:
            return "new"
        if self.is_deleted:
            return "deleted"
        if self.is_renamed:
            return "renamed"
        return "modified"


@dataclass(frozen=True)
class SanitizedDiff:
    """A :class:`FileDiff` with its path rewritten and its content redacted."""

    path: str
    additions: int
    deletions: int
    changes: str
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    old_path: Optional[str] = None
    sanitized: bool = False
    warnings: Tuple[str, ...] = ()

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @property
    def status(self) -> str:
        if self.is_new:
            return "new"
        if self.is_deleted:
            return "deleted"
        if self.is_renamed:
            return "renamed"
        return "modified"


@dataclass
class Suggestion:
    """A candidate commit message.

    Suggestions are ordered by preference; the first one in a list is the
    one used for committing.
    """

    message: str
    description: str = ""
    type: str = ""
    scope: str = ""
    confidence: float = 0.8


@dataclass(frozen=True)
class SkippedFile:
    """A file excluded from the pipeline together with the reason why."""

    path: str
    reason: str


@dataclass
class ClassificationResult:
    """Partition of a file set into AI-eligible, summary and skipped files."""

    ai_eligible: List[FileDiff] = field(default_factory=list)
    summary_eligible: List[FileDiff] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)

    @property
    def skipped_paths(self) -> List[str]:
        return [item.path for item in self.skipped]

    @property
    def actionable(self) -> int:
        return len(self.ai_eligible) + len(self.summary_eligible)


class BatchStatus(Enum):
    """Overall outcome of a batch run."""

    NO_CHANGES = "no_changes"
    NOTHING_TO_DO = "nothing_to_do"
    COMPLETED = "completed"


@dataclass
class BatchReport:
    """Summary of a batch run returned by the orchestrator."""

    status: BatchStatus
    total_files: int = 0
    attempted: int = 0
    committed: List[Tuple[str, str]] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)
    dry_run: bool = False
    privacy_report: Optional[PrivacyReport] = None

    @property
    def processed(self) -> int:
        return len(self.committed)
