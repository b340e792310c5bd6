import asyncio
import logging
from typing import Any, Coroutine


class TaskSpawner:
    """
    Spawns and tracks the background tasks of a running messenger (transport
    loop, heartbeat).

    Tracked tasks are forgotten as soon as they complete. A task that ends
    with an exception has it logged, since nothing else awaits it.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = logging.getLogger("core.helpers.spawn")

    @property
    def remaining_tasks(self) -> int:
        return len(self._tasks)

    def on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            return

        if ex := task.exception():
            self._logger.error(
                f"Error occurred in task {task.get_name()}: {ex}",
                exc_info=ex
            )

    def spawn(self, coro: Coroutine[Any, Any, None], name: str | None = None) -> asyncio.Task[Any]:
        task = self._loop.create_task(coro, name=name)
        task.add_done_callback(self.on_done)
        self._tasks.add(task)
        return task

    async def shutdown(self, timeout: float) -> None:
        """
        Wait up to `timeout` seconds for the tracked tasks, then cancel the
        ones still running.
        """
        tasks = list(self._tasks)
        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
