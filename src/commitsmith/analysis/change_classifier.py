"""
Heuristics deciding which files need an AI-authored commit message.

Some changes carry no information a language model could summarise
usefully: dependency lock files, generated or minified bundles, build
output, changelogs, logs, very large diffs and data files. Those files get
a deterministic summary message instead (see
:mod:`commitsmith.analysis.summary_messages`) and never leave the machine.

The decision is an ordered list of :class:`ClassificationRule` records.
The first rule whose predicate matches decides the outcome, so lock-file
and generated-file rules must stay ahead of the generic size and file-type
rules: a huge generated JSON file is reported as ``generated-file``
rather than ``large-change``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Optional, Tuple


PACKAGE_FILE_CHANGE_THRESHOLD = 20
LARGE_FILE_THRESHOLD = 1000

LOCK_FILES = frozenset(
    {
        "package-lock.json",
        "npm-shrinkwrap.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        "bun.lockb",
        "composer.lock",
        "gemfile.lock",
        "cargo.lock",
        "poetry.lock",
        "pipfile.lock",
        "pdm.lock",
        "uv.lock",
        "go.sum",
        "flake.lock",
        "mix.lock",
        "podfile.lock",
        "packages.lock.json",
        "pubspec.lock",
    }
)

GENERATED_MARKERS = (".generated.", ".auto.", ".min.", ".bundle.", ".chunk.")
GENERATED_SUFFIXES = ("_pb2.py", "_pb2_grpc.py", ".pb.go", ".g.dart", ".designer.cs")

COMPILED_EXTENSIONS = frozenset(
    {
        ".pyc",
        ".pyo",
        ".class",
        ".jar",
        ".o",
        ".obj",
        ".a",
        ".lib",
        ".so",
        ".dylib",
        ".dll",
        ".exe",
        ".wasm",
    }
)

BUILD_DIRECTORIES = frozenset(
    {
        "dist",
        "build",
        "out",
        "target",
        ".next",
        ".nuxt",
        ".output",
        "coverage",
        "node_modules",
        "__pycache__",
        "bin",
        "obj",
    }
)

SOURCE_EXTENSIONS = frozenset(
    {
        ".py",
        ".pyi",
        ".ts",
        ".tsx",
        ".js",
        ".jsx",
        ".mjs",
        ".cjs",
        ".java",
        ".kt",
        ".scala",
        ".go",
        ".rs",
        ".c",
        ".h",
        ".cc",
        ".cpp",
        ".hpp",
        ".cs",
        ".rb",
        ".php",
        ".swift",
        ".vue",
        ".svelte",
        ".sh",
    }
)

CHANGELOG_PATTERN = re.compile(
    r"^(changelog|changes|history|news|releases|release[-_]?notes)(\.(md|txt|rst|adoc))?$"
)

LOG_SUFFIXES = (".log", ".cache", ".tmp", ".temp", ".swp", ".bak")
LOG_DIRECTORIES = frozenset({"logs", "log", "tmp", "temp", ".cache"})

BUNDLE_SUFFIXES = (".map",)
BUNDLE_MARKERS = (".bundle", ".chunk", ".vendor", "vendor.")

PACKAGE_FILES = frozenset(
    {
        "package.json",
        "composer.json",
        "pyproject.toml",
        "setup.cfg",
        "pipfile",
        "gemfile",
        "cargo.toml",
        "go.mod",
        "pom.xml",
        "build.gradle",
        "build.gradle.kts",
        "pubspec.yaml",
    }
)
REQUIREMENTS_PATTERN = re.compile(r"^requirements([-_.].*)?\.(txt|in)$")

FILE_TYPES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
    ".md": "markdown",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".xml": "xml",
    ".css": "css",
    ".scss": "scss",
    ".sass": "scss",
    ".less": "less",
    ".html": "html",
    ".htm": "html",
    ".vue": "vue",
    ".svelte": "svelte",
}

DATA_OR_STYLE_TYPES = frozenset({"json", "xml", "css", "scss", "less"})
DOCUMENTATION_TYPES = frozenset({"markdown", "unknown"})
DOCUMENTATION_EXTENSIONS = frozenset({".md", ".txt", ".rst"})


@dataclass(frozen=True)
class PathInfo:
    """Normalised view of a file path used by the rule predicates."""

    path: str
    name: str
    suffix: str
    directories: Tuple[str, ...]

    @classmethod
    def from_path(cls, file_path: str) -> "PathInfo":
        normalised = file_path.replace("\\", "/").lower()
        pure = PurePosixPath(normalised)
        return cls(
            path=normalised,
            name=pure.name,
            suffix=pure.suffix,
            directories=tuple(pure.parts[:-1]),
        )


@dataclass(frozen=True)
class ClassificationRule:
    """One entry of the ordered rule list.

    ``predicate`` receives the normalised path and the total number of
    changed lines. ``use_summary`` is the outcome when it matches.
    """

    name: str
    predicate: Callable[[PathInfo, int], bool]
    use_summary: bool = True


@dataclass(frozen=True)
class ClassificationDecision:
    use_summary: bool
    rule: Optional[str] = None


def file_type_from_extension(file_path: str) -> str:
    """Return a coarse file type name for ``file_path`` (``"unknown"`` if unmapped)."""
    return FILE_TYPES.get(PathInfo.from_path(file_path).suffix, "unknown")


def _is_lock_file(info: PathInfo, _total: int) -> bool:
    return info.name in LOCK_FILES


def _is_generated(info: PathInfo, _total: int) -> bool:
    return any(marker in info.name for marker in GENERATED_MARKERS) or info.name.endswith(
        GENERATED_SUFFIXES
    )


def _is_compiled(info: PathInfo, _total: int) -> bool:
    return info.suffix in COMPILED_EXTENSIONS


def _is_build_output(info: PathInfo, _total: int) -> bool:
    # Source files checked into a build directory are treated as real source.
    in_build_dir = any(part in BUILD_DIRECTORIES for part in info.directories)
    return in_build_dir and info.suffix not in SOURCE_EXTENSIONS


def _is_changelog(info: PathInfo, _total: int) -> bool:
    return bool(CHANGELOG_PATTERN.match(info.name))


def _is_log_or_temp(info: PathInfo, _total: int) -> bool:
    if info.name.endswith(LOG_SUFFIXES) or ".log." in info.name:
        return True
    return any(part in LOG_DIRECTORIES for part in info.directories)


def _is_bundle(info: PathInfo, _total: int) -> bool:
    if info.name.endswith(BUNDLE_SUFFIXES):
        return True
    return any(marker in info.name for marker in BUNDLE_MARKERS)


def _is_busy_package_file(info: PathInfo, total: int) -> bool:
    is_package = info.name in PACKAGE_FILES or bool(REQUIREMENTS_PATTERN.match(info.name))
    return is_package and total > PACKAGE_FILE_CHANGE_THRESHOLD


def _is_large_change(_info: PathInfo, total: int) -> bool:
    return total > LARGE_FILE_THRESHOLD


def _is_data_or_style(info: PathInfo, _total: int) -> bool:
    return FILE_TYPES.get(info.suffix, "unknown") in DATA_OR_STYLE_TYPES


def _is_documentation(info: PathInfo, _total: int) -> bool:
    file_type = FILE_TYPES.get(info.suffix, "unknown")
    return file_type in DOCUMENTATION_TYPES and info.suffix in DOCUMENTATION_EXTENSIONS


CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("lock-file", _is_lock_file),
    ClassificationRule("generated-file", _is_generated),
    ClassificationRule("compiled-artifact", _is_compiled),
    ClassificationRule("build-output", _is_build_output),
    ClassificationRule("changelog", _is_changelog),
    ClassificationRule("log-or-temp", _is_log_or_temp),
    ClassificationRule("bundle", _is_bundle),
    ClassificationRule("package-manifest", _is_busy_package_file),
    ClassificationRule("large-change", _is_large_change),
    ClassificationRule("data-or-style", _is_data_or_style),
    ClassificationRule("documentation", _is_documentation),
)


def classify(
    file_path: str,
    total_changes: int,
    rules: Tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> ClassificationDecision:
    """Run the ordered rule list against a file.

    Parameters
    ----------
    file_path : str
        Path of the changed file relative to the repository root.
    total_changes : int
        Added plus deleted lines.
    rules : tuple of ClassificationRule, optional
        Rule list to evaluate; defaults to :data:`CLASSIFICATION_RULES`.

    Returns
    -------
    ClassificationDecision
        The outcome and the name of the matching rule, or an AI-eligible
        decision with ``rule=None`` when nothing matched.
    """
    info = PathInfo.from_path(file_path)
    for rule in rules:
        if rule.predicate(info, total_changes):
            return ClassificationDecision(use_summary=rule.use_summary, rule=rule.name)
    return ClassificationDecision(use_summary=False)


def should_use_summary(file_path: str, total_changes: int) -> bool:
    """Return True if the file gets a deterministic summary instead of an AI message."""
    return classify(file_path, total_changes).use_summary
