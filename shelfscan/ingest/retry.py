"""Bounded retry and bounded poll primitives shared by the scrape pipeline."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shelfscan.ingest.base import ProbeTimeout

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def retry_with_backoff(
    operation: Callable[[], Awaitable[Any]],
    max_attempts: int,
    base_delay: float,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "operation",
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """
    Run an async operation with bounded retries and linear backoff.

    After failed attempt N (1-based) the wait is base_delay * N. The error
    from the final attempt is re-raised unchanged.

    Args:
        operation: Zero-argument coroutine factory to attempt
        max_attempts: Total attempts, including the first
        base_delay: Backoff unit in seconds
        retry_on: Exception types that trigger a retry; others propagate
        description: Label used in log messages
        sleep: Awaitable sleep function (injectable for tests)

    Returns:
        Whatever the operation returns on its first successful attempt
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            last_error = e
            if attempt < max_attempts:
                wait_time = base_delay * attempt
                logger.warning(
                    f"Retry {attempt}/{max_attempts} for {description} "
                    f"after {wait_time:.1f}s: {type(e).__name__}: {e}"
                )
                await sleep(wait_time)
            else:
                logger.error(
                    f"All {max_attempts} attempts failed for {description}: {e}"
                )

    raise last_error


async def poll_until(
    read: Callable[[], Awaitable[Any]],
    predicate: Callable[[Any], bool],
    timeout: float,
    interval: float,
    description: str = "condition",
) -> Any:
    """
    Poll a reader until its result satisfies a predicate or the ceiling passes.

    The reader runs at least once, so an already-satisfied condition returns
    immediately without sleeping.

    Args:
        read: Zero-argument coroutine factory returning the observed value
        predicate: Returns True when the observed value is acceptable
        timeout: Ceiling in seconds
        interval: Pause between reads in seconds
        description: Label used in the ProbeTimeout message

    Returns:
        The first result that satisfied the predicate

    Raises:
        ProbeTimeout: If the ceiling is reached first
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        value = await read()
        if predicate(value):
            return value

        remaining = deadline - loop.time()
        if remaining <= 0:
            raise ProbeTimeout(description, timeout)

        await asyncio.sleep(min(interval, remaining))
