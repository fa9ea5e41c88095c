"""
Change analysis for commitsmith.

This package decides, per file, whether a commit message should be
written by the text-generation service or derived deterministically. See
:mod:`commitsmith.analysis.change_classifier` and
:mod:`commitsmith.analysis.summary_messages` for details.
"""

from .change_classifier import classify, should_use_summary  # noqa: F401
from .summary_messages import generate_summary_message  # noqa: F401
