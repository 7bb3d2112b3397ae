"""At most one in-flight task per key; late callers share its result."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Hashable


class SingleFlight:
    def __init__(self):
        self._tasks: dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._tasks

    def keys(self) -> list[Hashable]:
        return list(self._tasks)

    async def do(
        self,
        key: Hashable,
        factory: Callable[[], Awaitable[Any]],
        wait_timeout: float | None = None,
    ) -> Any:
        """Run `factory()` under `key`, or join the run already in progress.

        Only joiners are bounded by `wait_timeout` (asyncio.TimeoutError);
        the owner's own attempts carry their own timeouts. A caller being
        cancelled never cancels the shared task.
        """
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
            return await asyncio.shield(task)
        return await asyncio.wait_for(asyncio.shield(task), timeout=wait_timeout)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
