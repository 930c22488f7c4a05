"""
utils/retry.py — Exponential-backoff retry for the PSGC Cloud client.

Wraps tenacity. Each scheduled retry is logged with the error that caused
it; when the attempts run out (or the error is not retryable) the final
exception is logged with its traceback and re-raised unchanged, so
callers see the real httpx error rather than a tenacity wrapper.

Usage:
    from psgc_pipeline.utils.retry import with_retry

    @with_retry(max_attempts=3, base_delay=1.0, retry_on=(httpx.HTTPError,))
    async def fetch_level(client: httpx.AsyncClient, path: str) -> list[dict]:
        r = await client.get(path)
        r.raise_for_status()
        return r.json()
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Coroutine[Any, Any, Any]])


def _log_before_sleep(call_log: Any, max_attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        call_log.warning(
            "retry_scheduled",
            attempt=state.attempt_number,
            max_attempts=max_attempts,
            delay_s=round(state.next_action.sleep, 3) if state.next_action else None,
            last_error=repr(error),
        )

    return before_sleep


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retry_on: type[Exception] | tuple[type[Exception], ...] = Exception,
) -> Callable[[F], F]:
    """
    Decorator that retries an async function with exponential backoff.

    Delays: base_delay * 2^(attempt-1), capped at max_delay.
    Default: 1 s, 2 s, 4 s.

    Args:
        max_attempts: Total attempts before raising.
        base_delay:   Initial delay in seconds.
        max_delay:    Maximum delay cap in seconds.
        retry_on:     Exception type(s) that trigger a retry; anything else
                      is raised on the first attempt.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            call_log = log.bind(function=fn.__qualname__)
            retrying = AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=base_delay, max=max_delay),
                retry=retry_if_exception_type(retry_on),
                before_sleep=_log_before_sleep(call_log, max_attempts),
                reraise=True,
            )
            try:
                return await retrying(fn, *args, **kwargs)
            except retry_on as exc:
                call_log.error(
                    "retry_exhausted",
                    max_attempts=max_attempts,
                    error=repr(exc),
                    exc_info=True,
                )
                raise
            except Exception as exc:
                call_log.error("call_failed", error=repr(exc), exc_info=True)
                raise

        return wrapper  # type: ignore[return-value]

    return decorator
