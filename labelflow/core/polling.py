import asyncio
from typing import Any, Awaitable, Callable

from labelflow.util import logging

POLL_INTERVAL = 10.0


class PollingTask:
    """
    Self rescheduling refresh loop.

    The next cycle is scheduled only once the current refresh finished, so
    refreshes never overlap. At most one cycle is running or scheduled at
    any time.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[Any]],
        interval: float = POLL_INTERVAL,
    ):
        self.refresh = refresh
        self.interval = interval

        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return self._timer is not None or self._task is not None

    def start(self) -> bool:
        if self.active:
            # A refresh still in flight after cancel() picks up again
            self._cancelled = False
            return False

        self._cancelled = False
        self._run_cycle()
        return True

    def cancel(self):
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _run_cycle(self):
        self._timer = None
        self._task = asyncio.get_running_loop().create_task(self._cycle())

    async def _cycle(self):
        try:
            await self.refresh()
        except asyncio.CancelledError:
            self._cancelled = True
            raise
        except Exception:
            logging.exception("Polling refresh failed")
        finally:
            self._task = None
            if not self._cancelled:
                logging.debug15(f"Next poll in {self.interval}s")
                self._timer = asyncio.get_running_loop().call_later(
                    self.interval, self._run_cycle
                )
