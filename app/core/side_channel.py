"""
Best-effort background work.

Calls to sibling services that the primary operation does not depend on
(avatar cleanup, file linking) are spawned as detached asyncio tasks. Every
task is bounded by a timeout; failures and timeouts are logged and never
reach the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class NonCriticalTaskRunner:
    """Spawn-and-forget runner for side-channel coroutines"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, name: str, factory: Callable[[], Awaitable[object]]) -> asyncio.Task:
        """
        Start a side-channel task without awaiting it.

        Must be called from a running event loop (async route handlers).

        Args:
            name: Label used in log messages
            factory: Zero-argument callable returning the coroutine to run

        Returns:
            The detached task
        """
        task = asyncio.create_task(self._run(name, factory), name=name)
        # Event loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, factory: Callable[[], Awaitable[object]]) -> None:
        try:
            await asyncio.wait_for(factory(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Side-channel task %s timed out after %.1fs", name, self.timeout)
        except Exception:
            logger.warning("Side-channel task %s failed", name, exc_info=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all in-flight tasks (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
