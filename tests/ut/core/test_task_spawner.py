import asyncio
import logging

import pytest

from messenger.core.helpers.spawn import TaskSpawner


@pytest.mark.ut
@pytest.mark.asyncio
async def test_spawned_task_is_tracked_until_done():
    spawner = TaskSpawner(asyncio.get_running_loop())
    release = asyncio.Event()

    task = spawner.spawn(release.wait(), name="waiter")
    assert spawner.remaining_tasks == 1

    release.set()
    await task
    await asyncio.sleep(0)
    assert spawner.remaining_tasks == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_failing_task_is_logged(caplog):
    caplog.set_level(logging.ERROR, logger="core.helpers.spawn")
    spawner = TaskSpawner(asyncio.get_running_loop())

    async def boom():
        raise RuntimeError("boom")

    task = spawner.spawn(boom(), name="boom")
    await asyncio.gather(task, return_exceptions=True)
    await asyncio.sleep(0)

    assert "Error occurred in task boom: boom" in caplog.text


@pytest.mark.ut
@pytest.mark.asyncio
async def test_shutdown_cancels_stragglers():
    spawner = TaskSpawner(asyncio.get_running_loop())
    task = spawner.spawn(asyncio.sleep(60))

    await spawner.shutdown(timeout=0.01)

    assert task.cancelled()
    await asyncio.sleep(0)
    assert spawner.remaining_tasks == 0
