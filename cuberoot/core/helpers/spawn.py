import asyncio
import logging
from typing import Any, Coroutine


class TaskSpawner:
    """
    Spawns background asyncio tasks and counts them until they complete.

    The spawner is the completion tracker of a server: one task is
    registered per accepted connection, and shutdown waits for the count to
    drop to zero. Every task is removed from the registry by its done
    callback, whatever the way it ended (return, exception, cancellation),
    so the count cannot leak.

    Unhandled exceptions are logged by the done callback. The spawner does
    not impose any scheduling policy; it delegates execution to the loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self._logger = logging.getLogger("core.helpers.spawn")

    @property
    def remaining_tasks(self) -> int:
        """Number of tasks spawned that have not completed yet."""
        return len(self._tasks)

    @property
    def tasks(self) -> frozenset[asyncio.Task[Any]]:
        return frozenset(self._tasks)

    def on_done(self, task: asyncio.Task[Any]) -> None:
        if not task.cancelled() and (ex := task.exception()):
            self._logger.error(
                f"Error occurred in task {task.get_name()}: {str(ex)}",
                exc_info=ex
            )

        self._tasks.discard(task)
        if not self._tasks:
            self._idle.set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule `coro` on the loop and track it until completion."""
        task = self._loop.create_task(coro, name=name)
        task.add_done_callback(self.on_done)
        self._tasks.add(task)
        self._idle.clear()
        return task

    async def wait_idle(self) -> None:
        """Block until every spawned task has completed."""
        await self._idle.wait()

    def cancel_all(self, msg: str | None = None) -> int:
        """Request cancellation of every remaining task. Returns how many."""
        for task in self._tasks:
            task.cancel(msg)
        return len(self._tasks)
