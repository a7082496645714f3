"""
Post-commit task dispatcher.

Receipt generation and confirmation emails run here once the payment
transition has been committed. Each task gets its own timeout and its own
failure boundary; nothing raised inside a task reaches the request that
dispatched it.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Set

from society.config import settings

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[None]]


class PostCommitDispatcher:
    """Fire-and-forget runner for best-effort side effects."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls) -> "PostCommitDispatcher":
        return cls(timeout=settings.side_effect_timeout_seconds)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, name: str, factory: TaskFactory) -> asyncio.Task:
        """Schedule ``factory()``; the caller must not await the returned task."""
        task = asyncio.create_task(self._run(name, factory), name=f"post-commit:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, factory: TaskFactory) -> bool:
        try:
            await asyncio.wait_for(factory(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(
                f"Side effect {name} timed out after {self.timeout}s",
                extra={"side_effect": name},
            )
            return False
        except Exception as e:
            logger.error(
                f"Side effect {name} failed: {e}",
                exc_info=True,
                extra={"side_effect": name},
            )
            return False
        logger.info(f"Side effect {name} done", extra={"side_effect": name})
        return True

    async def drain(self) -> None:
        """Wait for in-flight tasks (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
