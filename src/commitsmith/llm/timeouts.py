"""
Request timeout calculation for the text-generation service.

Bigger prompts, more files and more changed lines get more time, within
fixed bounds.
"""

from __future__ import annotations


BASE_TIMEOUT = 20.0
MAX_TIMEOUT = 90.0
SECONDS_PER_10_KIB = 1.0
SECONDS_PER_CHANGED_LINE = 0.1
MAX_CHANGE_ALLOWANCE = 30.0
SECONDS_PER_EXTRA_FILE = 2.0


def calculate_generation_timeout(prompt_length: int, file_count: int = 1, total_changes: int = 0) -> float:
    """Return the timeout in seconds for one generation request.

    Parameters
    ----------
    prompt_length : int
        Size of the prompt in characters.
    file_count : int, optional
        Number of files described by the prompt.
    total_changes : int, optional
        Added plus deleted lines across all files.

    Returns
    -------
    float
        A value between :data:`BASE_TIMEOUT` and :data:`MAX_TIMEOUT`.
    """
    timeout = BASE_TIMEOUT
    if prompt_length > 0:
        timeout += (prompt_length // (10 * 1024)) * SECONDS_PER_10_KIB
    if total_changes > 0:
        timeout += min(total_changes * SECONDS_PER_CHANGED_LINE, MAX_CHANGE_ALLOWANCE)
    if file_count > 1:
        timeout += (file_count - 1) * SECONDS_PER_EXTRA_FILE
    return max(BASE_TIMEOUT, min(timeout, MAX_TIMEOUT))
