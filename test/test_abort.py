import asyncio

import pytest

from fch import AbortController


def test_abort_is_idempotent():
    controller = AbortController()

    assert controller.aborted is False
    controller.abort()
    controller.abort()
    assert controller.aborted is True


@pytest.mark.asyncio
async def test_abort_cancels_tracked_tasks():
    controller = AbortController()
    task = controller.track(asyncio.ensure_future(asyncio.sleep(10)))

    controller.abort()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()


@pytest.mark.asyncio
async def test_track_after_abort_cancels_immediately():
    controller = AbortController()
    controller.abort()

    task = controller.track(asyncio.ensure_future(asyncio.sleep(10)))

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_sleep_returns_early_on_abort():
    controller = AbortController()
    loop = asyncio.get_running_loop()
    loop.call_later(0.05, controller.abort)

    started = loop.time()
    await controller.sleep(10)

    assert loop.time() - started < 5


@pytest.mark.asyncio
async def test_sleep_after_abort_does_not_wait():
    controller = AbortController()
    controller.abort()

    await asyncio.wait_for(controller.sleep(10), timeout=1)
