"""Fixed-schedule retry policy shared by the init, stage, commit and dump call sites.

Usage:
    from site_backup.retry import RetryPolicy, call_with_retry

    policy = RetryPolicy(max_attempts=3, delay=5)
    await call_with_retry(policy, backend.export, "shop", "root", "pw", path,
                          description="database dump")
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from site_backup.adapters.process import CommandError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryHook = Callable[[int, BaseException], Awaitable[None] | None]


class RetryPolicy(BaseModel):
    """Bounded retry with a fixed backoff schedule.

    ``first_delay`` replaces ``delay`` for the wait after the first failed
    attempt only.  All other waits use ``delay``.

    Example:
        >>> policy = RetryPolicy(max_attempts=5, delay=5, first_delay=10)
        >>> [policy.backoff(n) for n in range(1, 5)]
        [10.0, 5.0, 5.0, 5.0]
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(ge=1)
    delay: float = Field(default=0.0, ge=0)
    first_delay: float | None = Field(default=None, ge=0)

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        if attempt == 1 and self.first_delay is not None:
            return self.first_delay
        return self.delay


REPOSITORY_INIT_POLICY = RetryPolicy(max_attempts=3, delay=3)
STAGE_FILE_POLICY = RetryPolicy(max_attempts=5, delay=1)
COMMIT_POLICY = RetryPolicy(max_attempts=5, delay=5, first_delay=10)
DUMP_POLICY = RetryPolicy(max_attempts=3, delay=5)


async def call_with_retry(
    policy: RetryPolicy,
    operation: Callable[..., Awaitable[T]],
    *args: Any,
    retry_on: tuple[type[BaseException], ...] = (CommandError,),
    on_retry: RetryHook | None = None,
    description: str = "operation",
    quiet: bool = False,
    **kwargs: Any,
) -> T:
    """Await ``operation`` until it succeeds or the policy is exhausted.

    Args:
        policy: Attempt bound and backoff schedule.
        operation: Async callable to invoke.
        *args: Positional arguments forwarded to ``operation``.
        retry_on: Exception types that count as a failed attempt.  Anything
            else propagates immediately.
        on_retry: Optional hook called with ``(attempt, error)`` after a
            failed attempt that will be retried, before the backoff wait.
            May be a coroutine function.
        description: Human-readable name used in log messages.
        quiet: When ``True``, retry notices are logged at DEBUG level.
        **kwargs: Keyword arguments forwarded to ``operation``.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        The last ``retry_on`` exception once ``policy.max_attempts`` attempts
        have failed.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation(*args, **kwargs)
        except retry_on as e:
            if attempt >= policy.max_attempts:
                raise

            wait = policy.backoff(attempt)
            logger.log(
                logging.DEBUG if quiet else logging.WARNING,
                f"{description} failed, retrying "
                f"(attempt {attempt} of {policy.max_attempts}): {e}",
            )

            if on_retry is not None:
                result = on_retry(attempt, e)
                if inspect.isawaitable(result):
                    await result

            if wait > 0:
                await asyncio.sleep(wait)
