"""
Git client implementation for commitsmith.

This module wraps the Git operations the batch orchestrator needs: status
and diff retrieval, staging, committing and pushing. All subprocess calls
go through :meth:`GitClient._run` so that unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from commitsmith.errors import CommitsmithError
from commitsmith.models import FileDiff


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


INDEX_LOCK_TIMEOUT = 0.25
INDEX_LOCK_POLL_INTERVAL = 0.01

LOCK_GUIDANCE = (
    "Another Git process seems to be running. Wait for it to finish, or if "
    "no Git process is running, remove the stale lock file: {lock}"
)


class GitError(CommitsmithError):
    """Raised when a Git command fails."""

    pass


class GitLockError(GitError):
    """Raised when ``.git/index.lock`` does not clear in time."""

    def __init__(self, lock_path: Path) -> None:
        super().__init__(LOCK_GUIDANCE.format(lock=lock_path))
        self.lock_path = lock_path


@dataclass
class RepoStatus:
    """Working tree state as reported by ``git status --porcelain``."""

    staged: List[str] = field(default_factory=list)
    unstaged: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    renamed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.staged) + len(self.unstaged) + len(self.untracked)

    def renamed_from(self, path: str) -> Optional[str]:
        for old, new in self.renamed:
            if new == path:
                return old
        return None


def _unquote(path: str) -> str:
    if len(path) >= 2 and path[0] == path[-1] == '"':
        return path[1:-1]
    return path


def count_changed_lines(diff_text: str) -> Tuple[int, int]:
    """Count added and deleted lines in unified diff text, ignoring headers."""
    additions = deletions = 0
    in_hunk = False
    for line in diff_text.splitlines():
        if line.startswith("diff "):
            in_hunk = False
        elif line.startswith("@@"):
            in_hunk = True
        elif in_hunk and line.startswith("+"):
            additions += 1
        elif in_hunk and line.startswith("-"):
            deletions += 1
    return additions, deletions


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = Path(repo_root)

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is the root of a Git repository."""
        return (path / ".git").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = Path(start).resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            logger.error("Failed to execute Git: %s", exc)
            raise GitError(f"Failed to execute Git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Status and diffs
    # ------------------------------------------------------------------
    def get_status(self) -> RepoStatus:
        """Parse ``git status --porcelain`` into a :class:`RepoStatus`."""
        result = self._run(["status", "--porcelain", "--untracked-files=all"], check=True)
        status = RepoStatus()
        for line in result.stdout.splitlines():
            if len(line) < 4:
                continue
            index_code, tree_code, path = line[0], line[1], line[3:]
            if index_code == "?" and tree_code == "?":
                status.untracked.append(_unquote(path))
                continue
            if index_code == "R" and " -> " in path:
                old, path = path.split(" -> ", 1)
                status.renamed.append((_unquote(old), _unquote(path)))
            path = _unquote(path)
            if index_code not in " ?":
                status.staged.append(path)
            if tree_code == "M":
                status.unstaged.append(path)
            if "D" in (index_code, tree_code):
                status.deleted.append(path)
        return status

    def get_unstaged_files(self) -> List[str]:
        """Return modified, untracked and deleted files, each once."""
        status = self.get_status()
        files: List[str] = []
        for path in status.unstaged + status.untracked + status.deleted:
            if path not in files:
                files.append(path)
        return files

    def get_file_diff(self, path: str, staged: bool = False) -> FileDiff:
        """Return the :class:`FileDiff` for ``path``.

        Untracked files are diffed against ``/dev/null`` so that their whole
        content counts as added.
        """
        status = self.get_status()
        is_untracked = path in status.untracked
        if is_untracked:
            # --no-index exits with 1 when the files differ.
            result = self._run(["diff", "--no-index", "--", "/dev/null", path], check=False)
            if result.returncode not in (0, 1):
                raise GitError(result.stderr.strip() or f"Failed to diff {path}")
            diff_text = result.stdout
        else:
            args = ["diff", "--cached", "--", path] if staged else ["diff", "--", path]
            diff_text = self._run(args, check=True).stdout
        additions, deletions = count_changed_lines(diff_text)
        old_path = status.renamed_from(path)
        return FileDiff(
            path=path,
            additions=additions,
            deletions=deletions,
            changes=diff_text,
            is_new=is_untracked or "new file mode" in diff_text,
            is_deleted=path in status.deleted,
            is_renamed=old_path is not None,
            old_path=old_path,
        )

    # ------------------------------------------------------------------
    # Staging, committing, pushing
    # ------------------------------------------------------------------
    def stage_file(self, path: str) -> None:
        """Stage ``path``; ``git rm`` is used when the file no longer exists."""
        if (self.repo_root / path).exists():
            self._run(["add", "--", path], check=True)
        else:
            self._run(["rm", "--ignore-unmatch", "--", path], check=True)

    def wait_for_index_lock(
        self,
        timeout: float = INDEX_LOCK_TIMEOUT,
        poll_interval: float = INDEX_LOCK_POLL_INTERVAL,
    ) -> None:
        """Block until ``.git/index.lock`` is gone.

        Raises
        ------
        GitLockError
            If the lock file still exists after ``timeout`` seconds.
        """
        lock_path = self.repo_root / ".git" / "index.lock"
        deadline = time.monotonic() + timeout
        while lock_path.exists():
            if time.monotonic() >= deadline:
                logger.error("Git index lock %s did not clear within %.0fms", lock_path, timeout * 1000)
                raise GitLockError(lock_path)
            time.sleep(poll_interval)

    def commit(self, message: str, paths: Optional[Sequence[str]] = None) -> None:
        """Create a commit with the given message.

        When ``paths`` is given only those paths are committed, leaving any
        other staged changes in the index.
        """
        args = ["commit", "-m", message]
        if paths:
            args += ["--"] + list(paths)
        self._run(args, check=True)

    def get_current_branch(self) -> str:
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], check=True)
        return result.stdout.strip()

    def push(self, set_upstream: bool = False) -> None:
        """Push the current branch to ``origin``.

        Raises
        ------
        GitError
            If pushing fails.
        """
        if set_upstream:
            self._run(["push", "--set-upstream", "origin", self.get_current_branch()], check=True)
        else:
            self._run(["push"], check=True)
