"""
Bounded retry with linear backoff.

Both network dependencies (the contracts API and the classifier) go through
the same policy: one initial attempt plus up to ``max_retries`` retries, with
a delay of ``base_delay * (attempt + 1)`` before each retry (1x, 2x, 3x).
The sleep function is injected so tests can record the schedule instead of
waiting.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from core.config import MAX_RETRIES, RATE_LIMIT_DELAY
from core.exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class RetryPolicy:
    """
    Explicit retry loop with an attempt counter.

    Attributes:
        max_retries: Retries after the first attempt (default: 3)
        base_delay: Delay unit in seconds (default: RATE_LIMIT_DELAY)
        retry_on: Exception types that trigger a retry; anything else propagates
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        base_delay: float = RATE_LIMIT_DELAY,
        sleep: Optional[SleepFunc] = None,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep or asyncio.sleep
        self.retry_on = retry_on

    def delay_for(self, attempt: int) -> float:
        """Delay before retrying after failed attempt ``attempt`` (0-based)."""
        return self.base_delay * (attempt + 1)

    async def run(
        self,
        operation: Callable[[], Awaitable[Any]],
        description: str = "operation"
    ) -> Any:
        """
        Await ``operation()`` until it succeeds or the retries run out.

        Raises:
            RetryExhaustedError: After ``max_retries + 1`` failed attempts,
                chained to the last error.
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except self.retry_on as e:
                if attempt >= self.max_retries:
                    raise RetryExhaustedError(
                        f"{description} failed after {self.max_retries} retries",
                        attempts=attempt + 1,
                        context={"operation": description},
                        original_exception=e
                    ) from e

                delay = self.delay_for(attempt)
                logger.warning(
                    f"Retry {attempt + 1}/{self.max_retries} for {description} "
                    f"in {delay:g}s after error: {e}"
                )
                await self.sleep(delay)
                attempt += 1
