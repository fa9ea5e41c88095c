"""
Privacy sanitization applied before any diff leaves the machine.

Two independent steps protect the user's data:

* :func:`should_skip_file` decides whether a file may be sent at all.
  Sensitive file types, sensitive JSON files, files located in sensitive
  directories and files whose content matches a credential-like pattern
  are skipped outright.
* :func:`sanitize_diff` rewrites the path of every remaining file to a
  repository-relative (or home-relative) form and redacts its content.

Redaction is a fixed point: :func:`sanitize_diff_content` repeats its
passes until one changes nothing, and none of the replacement markers
match any of the patterns, so running it over its own output is a no-op.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Iterable, List, Optional, Pattern, Tuple, Union

from commitsmith.errors import SecurityError
from commitsmith.models import FileDiff, SanitizedDiff


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


REDACTION_MARKER = "[REDACTED]"
COMMENT_REDACTION_MARKER = "/* [REDACTED COMMENT] */"
SENSITIVE_FILE_MARKER = "[SENSITIVE_FILE]"

# (category, pattern) pairs; the category ends up in the warning text.
# Tokens with a fixed prefix come first so the generic digit patterns
# below never split one of them.
SENSITIVE_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    (
        "private key",
        re.compile(
            r"-----BEGIN\s+(?:RSA\s+|EC\s+|DSA\s+|OPENSSH\s+)?PRIVATE\s+KEY-----"
            r"[\s\S]*?"
            r"-----END\s+(?:RSA\s+|EC\s+|DSA\s+|OPENSSH\s+)?PRIVATE\s+KEY-----"
        ),
    ),
    (
        "credential assignment",
        re.compile(
            r"(api[_-]?key|token|secret|password|pwd)\s*[:=]\s*['\"]?[a-zA-Z0-9+/=]{20,}['\"]?",
            re.IGNORECASE,
        ),
    ),
    ("credentialed URL", re.compile(r"https?://[^:\s]+:[^@\s]+@[^\s]+")),
    (
        "database connection string",
        re.compile(r"(mongodb(\+srv)?|postgres(ql)?|mysql|redis)://[^\s]+", re.IGNORECASE),
    ),
    ("JWT token", re.compile(r"eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+")),
    ("AWS access key", re.compile(r"AKIA[0-9A-Z]{16}")),
    ("email address", re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")),
    ("card number", re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b")),
    ("social security number", re.compile(r"\b\d{3}-\d{2}-\d{4}\b")),
    ("phone number", re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")),
    ("IP address", re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b")),
)

# Block comments may not span past their own terminator.
SECRET_COMMENT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(
        r"/\*(?:(?!\*/)[\s\S])*?(?:password|secret|key|token)(?:(?!\*/)[\s\S])*?\*/",
        re.IGNORECASE,
    ),
    re.compile(r"//.*?(?:password|secret|key|token).*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"#.*?(?:password|secret|key|token).*$", re.IGNORECASE | re.MULTILINE),
)

SENSITIVE_FILE_REFERENCE = re.compile(
    r"(?:^|(?<=[\s'\"/=(+-]))"
    r"(\.env(?:\.[\w-]+)?|[\w-]+\.(?:pem|key|p12|pfx)|(?:secrets|credentials)\.json)\b",
    re.IGNORECASE | re.MULTILINE,
)

SENSITIVE_EXTENSIONS = frozenset(
    {
        ".env",
        ".pem",
        ".key",
        ".p12",
        ".pfx",
        ".crt",
        ".cer",
        ".der",
        ".jks",
        ".keystore",
        ".kdbx",
        ".ppk",
        ".gpg",
        ".asc",
    }
)

SENSITIVE_FILE_NAMES = frozenset(
    {".env", ".npmrc", ".pypirc", ".netrc", ".htpasswd", "id_rsa", "id_dsa", "id_ecdsa", "id_ed25519"}
)

SENSITIVE_JSON_FILES = frozenset(
    {
        "secrets.json",
        "secret.json",
        "credentials.json",
        "service-account.json",
        "service_account.json",
        "serviceaccount.json",
        "keyfile.json",
        "auth.json",
        "token.json",
    }
)

SENSITIVE_DIRECTORIES = frozenset(
    {"secrets", "secret", "keys", "credentials", "private", ".ssh", ".aws", ".gnupg"}
)


@dataclass(frozen=True)
class SkipDecision:
    """Result of :func:`should_skip_file`."""

    skip: bool
    reason: Optional[str] = None


@dataclass
class PrivacyReport:
    """Aggregated view of what the sanitizer changed in a set of diffs."""

    total_files: int
    sanitized_files: int
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def sanitize_file_path(
    file_path: str,
    repo_root: Union[str, Path],
    home: Optional[Union[str, Path]] = None,
) -> str:
    """Rewrite ``file_path`` so it reveals nothing about the local machine.

    Returns the repository-relative POSIX path when the file lies inside
    ``repo_root``, ``~/<path>`` when it lies under the home directory, and
    the bare file name otherwise or when the path cannot be resolved.
    """
    try:
        root = Path(repo_root).resolve()
        candidate = Path(file_path)
        if not candidate.is_absolute():
            candidate = root / candidate
        candidate = Path(os.path.normpath(str(candidate)))
        try:
            return candidate.relative_to(root).as_posix()
        except ValueError:
            pass
        home_dir = Path(home) if home is not None else Path.home()
        try:
            return "~/" + candidate.relative_to(home_dir).as_posix()
        except ValueError:
            return candidate.name
    except (OSError, RuntimeError, ValueError) as exc:
        logger.debug("Could not resolve path %s: %s", file_path, exc)
        return PurePath(file_path).name


def ensure_within_repository(file_path: str, repo_root: Union[str, Path]) -> None:
    """Raise :class:`SecurityError` if ``file_path`` escapes ``repo_root``."""
    root = Path(os.path.normpath(str(Path(repo_root).resolve())))
    candidate = Path(file_path)
    if not candidate.is_absolute():
        candidate = root / candidate
    candidate = Path(os.path.normpath(str(candidate)))
    try:
        candidate.relative_to(root)
    except ValueError:
        raise SecurityError(
            f"Path traversal detected: {PurePath(file_path).name} is outside the repository"
        ) from None


def sanitize_diff_content(content: str) -> Tuple[str, List[str]]:
    """Redact sensitive data from diff text.

    Parameters
    ----------
    content : str
        Raw diff text.

    Returns
    -------
    tuple of (str, list of str)
        The redacted text and one warning per pattern category that
        matched. Warnings never include the matched text itself.
    """
    warnings: List[str] = []
    sanitized = content

    # A replacement can expose a match that an earlier pattern missed.
    while True:
        sanitized, found = _redaction_pass(sanitized)
        if not found:
            return sanitized, warnings
        warnings.extend(warning for warning in found if warning not in warnings)


def _redaction_pass(content: str) -> Tuple[str, List[str]]:
    found: List[str] = []
    sanitized = content

    for category, pattern in SENSITIVE_PATTERNS:
        sanitized, count = pattern.subn(REDACTION_MARKER, sanitized)
        if count:
            found.append(f"Potential sensitive data detected: {category}")

    comment_hits = 0
    for pattern in SECRET_COMMENT_PATTERNS:
        sanitized, count = pattern.subn(COMMENT_REDACTION_MARKER, sanitized)
        comment_hits += count
    if comment_hits:
        found.append("Potential secrets detected in comments")

    sanitized, count = SENSITIVE_FILE_REFERENCE.subn(SENSITIVE_FILE_MARKER, sanitized)
    if count:
        found.append("Sensitive file pattern detected")

    return sanitized, found


def sanitize_diff(diff: FileDiff, repo_root: Union[str, Path]) -> SanitizedDiff:
    """Produce the :class:`SanitizedDiff` for ``diff``."""
    sanitized_changes, warnings = sanitize_diff_content(diff.changes)
    return SanitizedDiff(
        path=sanitize_file_path(diff.path, repo_root),
        additions=diff.additions,
        deletions=diff.deletions,
        changes=sanitized_changes,
        is_new=diff.is_new,
        is_deleted=diff.is_deleted,
        is_renamed=diff.is_renamed,
        old_path=sanitize_file_path(diff.old_path, repo_root) if diff.old_path else None,
        sanitized=bool(warnings),
        warnings=tuple(warnings),
    )


def check_sensitive_path(file_path: str) -> SkipDecision:
    """Path-only part of :func:`should_skip_file`; needs no file content."""
    pure = PurePath(file_path.replace("\\", "/"))
    name = pure.name.lower()
    suffix = pure.suffix.lower()

    if suffix in SENSITIVE_EXTENSIONS or name in SENSITIVE_FILE_NAMES or name.startswith(".env."):
        return SkipDecision(True, "Sensitive file type")

    if suffix == ".json" and name in SENSITIVE_JSON_FILES:
        return SkipDecision(True, "Sensitive file type")

    for part in pure.parts[:-1]:
        if part.lower() in SENSITIVE_DIRECTORIES:
            return SkipDecision(True, "Located in sensitive directory")

    return SkipDecision(False)


def should_skip_file(file_path: str, content: str) -> SkipDecision:
    """Decide whether a file must not be sent to the text-generation service."""
    decision = check_sensitive_path(file_path)
    if decision.skip:
        return decision
    for _category, pattern in SENSITIVE_PATTERNS:
        if pattern.search(content):
            return SkipDecision(True, "Contains potential sensitive data")
    return decision


def create_privacy_report(sanitized_diffs: Iterable[SanitizedDiff]) -> PrivacyReport:
    """Summarise sanitizer activity across ``sanitized_diffs``."""
    diffs = list(sanitized_diffs)
    sanitized_files = sum(1 for diff in diffs if diff.sanitized)
    warnings = [warning for diff in diffs for warning in diff.warnings]

    recommendations: List[str] = []
    if sanitized_files:
        recommendations.append(
            "Consider using .gitignore to exclude sensitive files from version control"
        )
        recommendations.append("Use environment variables for sensitive configuration")
        recommendations.append("Review sanitized content before committing")
    lowered = [warning.lower() for warning in warnings]
    if any("credential" in w or "token" in w or "access key" in w for w in lowered):
        recommendations.append(
            "Ensure API keys are stored in environment variables, not in code"
        )
    if any("comments" in w for w in lowered):
        recommendations.append(
            "Use secure password management solutions instead of hardcoded passwords"
        )

    return PrivacyReport(
        total_files=len(diffs),
        sanitized_files=sanitized_files,
        warnings=warnings,
        recommendations=recommendations,
    )
