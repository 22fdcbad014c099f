"""
Lazy one-time values shared across concurrent requests.

The first caller starts the computation; callers arriving while it runs await
the same task instead of recomputing. The result is recorded by the task itself,
so it survives even when every waiter was cancelled. Failures are not memoized,
so the next caller retries.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LazyResource(Generic[T]):
    def __init__(self, name: str) -> None:
        self.name = name
        self._value: T | None = None
        self._ready = False
        self._task: asyncio.Task | None = None
        self.computations = 0

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def value(self) -> T | None:
        return self._value

    async def get(self, factory: Callable[[], Awaitable[T]]) -> T:
        if self._ready:
            return self._value  # type: ignore[return-value]
        if self._task is None:
            logger.info("[lazy:%s] warming", self.name)
            self.computations += 1
            self._task = asyncio.ensure_future(factory())
            self._task.add_done_callback(self._settle)
        # shield: a cancelled waiter must not cancel the shared computation
        return await asyncio.shield(self._task)

    def _settle(self, task: asyncio.Task) -> None:
        """Record the outcome of a finished computation, awaited or not."""
        if task is not self._task:
            return
        self._task = None
        if task.cancelled():
            logger.warning("[lazy:%s] computation cancelled", self.name)
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("[lazy:%s] computation failed: %s", self.name, exc)
            return
        self._value = task.result()
        self._ready = True
        logger.info("[lazy:%s] ready", self.name)

    def reset(self) -> None:
        self._value = None
        self._ready = False
        self._task = None
