"""Bounded exponential backoff around a single transport attempt."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from leaderboard.errors import RetryExhausted, TransportError

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Retry TransportError up to `max_retries` times, waiting 1s, 2s, 4s, ...

    Any other exception (FormatError, AmbiguousResponseError, ...) is terminal
    and propagates on the first occurrence. The attempt counter lives in
    `run`, so every logical operation starts from zero.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_sec: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.base_delay_sec = base_delay_sec
        self.sleep = sleep

    def delay(self, retry_number: int) -> float:
        return self.base_delay_sec * (2 ** (retry_number - 1))

    async def run(self, attempt: Callable[[], Awaitable[Any]], label: str = "operation") -> Any:
        retries = 0
        while True:
            try:
                return await attempt()
            except TransportError as e:
                if retries >= self.max_retries:
                    logger.error("%s failed after %d attempts: %s", label, retries + 1, e)
                    raise RetryExhausted(e, retries + 1) from e
                retries += 1
                delay = self.delay(retries)
                logger.warning("%s failed (%s), retry %d/%d in %.1fs", label, e, retries, self.max_retries, delay)
                await self.sleep(delay)
