"""
Retry with exponential backoff for calls to the text-generation service.

Only errors flagged ``recoverable`` (timeouts, transient network errors)
are retried. Everything else, including validation and security failures,
propagates on the first attempt.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from commitsmith.errors import CommitsmithError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 2.0

T = TypeVar("T")


def is_recoverable(exc: BaseException) -> bool:
    return isinstance(exc, CommitsmithError) and exc.recoverable


def with_retry(
    operation: Callable[[], T],
    operation_name: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Run ``operation`` until it succeeds or retries are exhausted.

    The delay before attempt ``n + 1`` is ``base_delay * 2 ** (n - 1)``,
    i.e. 2s then 4s with the defaults.

    Raises
    ------
    Exception
        The last error raised by ``operation``.
    """
    sleep = sleep or time.sleep
    attempt = 1
    while True:
        try:
            result = operation()
        except Exception as exc:
            if not is_recoverable(exc) or attempt >= max_attempts:
                if attempt > 1:
                    logger.error(
                        "%s failed after %d attempt(s): %s", operation_name, attempt, exc
                    )
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                operation_name,
                attempt,
                max_attempts,
                exc,
                delay,
            )
            sleep(delay)
            attempt += 1
            continue
        if attempt > 1:
            logger.info("%s succeeded on attempt %d", operation_name, attempt)
        return result
