"""Async exponential backoff retry decorator."""

from __future__ import annotations

import asyncio
import functools
import random
from typing import Any, Callable, TypeVar

from dossier.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _status_code(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    return status if isinstance(status, int) else None


def async_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    non_retryable_status_codes: tuple[int, ...] = (400, 401, 403, 404, 422),
) -> Callable[[F], F]:
    """Retry an async callable with exponential backoff and jitter.

    Client errors (4xx other than 429) are re-raised immediately. After the
    last attempt the original exception propagates unchanged.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    status = _status_code(exc)
                    if status in non_retryable_status_codes:
                        logger.warning("retry_skipped_client_error", func=func.__name__, status=status)
                        raise
                    if attempt == max_attempts:
                        raise

                    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                    total_delay = delay + random.uniform(0, delay * 0.5)
                    logger.warning(
                        "retry_attempt",
                        func=func.__name__,
                        attempt=attempt,
                        delay=round(total_delay, 2),
                        error=str(exc),
                    )
                    await asyncio.sleep(total_delay)
            raise AssertionError("unreachable")

        return wrapper  # type: ignore[return-value]

    return decorator
