"""
Deterministic commit messages for summary-eligible files.

Files routed away from the text-generation service by
:mod:`commitsmith.analysis.change_classifier` still need a commit
message. The message is chosen from the rule that matched, so a lock file
always mentions its dependencies and a changelog always says it was
updated.
"""

from __future__ import annotations

from commitsmith.analysis.change_classifier import classify
from commitsmith.models import FileDiff


def _dependency_message(diff: FileDiff) -> str:
    name = diff.file_name
    if diff.additions > diff.deletions * 2:
        return f"Added new dependencies to {name}"
    if diff.deletions > diff.additions * 2:
        return f"Removed dependencies from {name}"
    return f"Updated dependencies in {name}"


def generate_summary_message(diff: FileDiff) -> str:
    """Build the summary commit message for ``diff``.

    Deleted files are reported as removals regardless of their kind.
    Files that no summary rule matches get a generic message, which lets
    callers use this function for any file.
    """
    name = diff.file_name
    if diff.is_deleted:
        return f"Removed {name}"

    rule = classify(diff.path, diff.total_changes).rule
    if rule in ("lock-file", "package-manifest"):
        return _dependency_message(diff)
    if rule == "changelog":
        return "Updated changelog with latest changes"
    if rule == "generated-file":
        return f"Updated generated file {name}"
    if rule == "compiled-artifact":
        return f"Updated compiled artifact {name}"
    if rule == "build-output":
        return f"Updated build output {name}"
    if rule == "log-or-temp":
        return f"Updated {name}"
    if rule == "bundle":
        return f"Updated bundled {name}"
    if rule == "large-change":
        if diff.is_new:
            return f"Added {name} with {diff.additions} lines"
        return f"Implemented comprehensive functionality in {name}"
    if rule == "data-or-style":
        if diff.path.lower().endswith((".css", ".scss", ".sass", ".less")):
            return f"Updated {name} styles"
        return f"Updated {name} configuration"
    if rule == "documentation":
        return f"Updated {name} documentation"
    return f"Updated {name} functionality"
