"""Retry handler with exponential backoff for transient connection failures."""

import asyncio
import random
import logging
from functools import wraps
from typing import Callable, TypeVar, Tuple


T = TypeVar('T')

# Errors worth retrying when reaching the SDK endpoint
NETWORK_ERRORS = (ConnectionError, TimeoutError, OSError)


class RetryHandler:
    """
    Retries a call with exponential backoff and jitter.

    Blocking callables are run in the default thread pool so the event loop
    (and the scheduler running on it) is not stalled.
    """

    @staticmethod
    async def with_retry(
        func: Callable[[], T],
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exceptions: Tuple[type, ...] = NETWORK_ERRORS,
        logger: logging.Logger = None
    ) -> T:
        """
        Execute func, retrying on the given exception types.

        Args:
            func: Async or blocking callable without arguments
            max_attempts: Maximum attempts (default 3)
            base_delay: Initial delay in seconds (default 1.0)
            max_delay: Maximum delay in seconds (default 60.0)
            exceptions: Exception types that trigger a retry
            logger: Optional logger for retry events

        Returns:
            Result of the first successful call

        Raises:
            Exception: Last exception once all attempts are exhausted
        """
        logger = logger or logging.getLogger(__name__)
        loop = asyncio.get_running_loop()

        for attempt in range(1, max_attempts + 1):
            try:
                if asyncio.iscoroutinefunction(func):
                    return await func()
                return await loop.run_in_executor(None, func)

            except exceptions as e:
                if attempt == max_attempts:
                    logger.error(f"All {max_attempts} attempts exhausted: {e}")
                    raise

                delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                total_delay = delay + random.uniform(0, delay * 0.1)

                logger.warning(
                    f"Attempt {attempt}/{max_attempts} failed: {e}. "
                    f"Retrying in {total_delay:.2f}s..."
                )
                await asyncio.sleep(total_delay)

        raise RuntimeError("max_attempts must be at least 1")


def retry_network_errors(max_attempts: int = 3, base_delay: float = 1.0):
    """
    Decorator retrying an async method on network errors.

    Usage:
        @retry_network_errors(max_attempts=3)
        async def connect(self):
            ...
    """
    def decorator(func: Callable) -> Callable:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"{func.__name__} must be a coroutine function")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            async def execute():
                return await func(*args, **kwargs)

            return await RetryHandler.with_retry(
                execute,
                max_attempts=max_attempts,
                base_delay=base_delay,
                exceptions=NETWORK_ERRORS,
                logger=logging.getLogger(func.__module__)
            )

        return wrapper

    return decorator
