import asyncio
import logging

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async callable every ``interval`` seconds until cancelled."""

    def __init__(self, interval, func, is_active=None, run_immediately=True):
        self.interval = interval
        self.func = func
        self.is_active = is_active or (lambda: True)
        self.run_immediately = run_immediately
        self._task = None

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    def cancel(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self):
        if not self.run_immediately:
            await asyncio.sleep(self.interval)
        while True:
            if self.is_active():
                try:
                    await self.func()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Periodic task %r failed", self.func)
            await asyncio.sleep(self.interval)
