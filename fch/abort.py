import asyncio


class AbortController:
    """Cancels the in-flight work of one or more requests.

    Once aborted a controller stays aborted; create a new one (or clone the
    request) to send again.
    """

    def __init__(self):
        self._aborted = False
        self._tasks: set[asyncio.Future] = set()

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self):
        if self._aborted:
            return
        self._aborted = True
        for task in list(self._tasks):
            task.cancel()

    def track(self, task: asyncio.Future) -> asyncio.Future:
        if self._aborted:
            task.cancel()
            return task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def sleep(self, delay: float):
        if self._aborted or delay <= 0:
            return
        waiter = self.track(asyncio.ensure_future(asyncio.sleep(delay)))
        try:
            await waiter
        except asyncio.CancelledError:
            # Cancelled by abort(): just wake up. Anything else propagates.
            if not waiter.cancelled() or not self._aborted:
                raise
