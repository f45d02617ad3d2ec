from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from app.core.errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retry(
    attempts: int,
    op: Callable[[], T],
    *,
    retry_on: Tuple[Type[BaseException], ...],
    backoff_seconds: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
    description: Optional[str] = None,
) -> T:
    """Run ``op`` until it succeeds, retrying only on ``retry_on`` errors.

    The wait before retry ``n`` is ``backoff_seconds * n``. Exceptions outside
    ``retry_on`` propagate immediately. Once ``attempts`` calls have failed a
    ``RetryExhaustedError`` carrying the last error is raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    label = description or getattr(op, "__name__", "operation")
    last_error: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        try:
            return op()
        except retry_on as exc:
            last_error = exc
            if attempt >= attempts:
                break
            logger.warning(
                "%s failed on attempt %s/%s: %s; retrying",
                label,
                attempt,
                attempts,
                exc,
            )
            delay = backoff_seconds * attempt
            if delay > 0:
                sleep(delay)

    raise RetryExhaustedError(attempts, last_error, description=label)


__all__ = ["with_retry"]
