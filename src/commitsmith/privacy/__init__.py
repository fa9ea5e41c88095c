"""
Privacy protection for commitsmith.

Everything sent to the text-generation service passes through
:mod:`commitsmith.privacy.sanitizer` first.
"""

from .sanitizer import (  # noqa: F401
    PrivacyReport,
    SkipDecision,
    check_sensitive_path,
    create_privacy_report,
    sanitize_diff,
    sanitize_diff_content,
    should_skip_file,
)
