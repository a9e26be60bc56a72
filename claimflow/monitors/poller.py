"""
Poller

Fixed-interval polling for integration code (unread-count refresh, queue
reloads). The workflow core never polls; callers start a Poller and keep the
handle to cancel it.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from claimflow.config import settings

logger = logging.getLogger(__name__)

PollCallback = Callable[[], Union[Any, Awaitable[Any]]]


class PollHandle:
    """Cancel handle for a running poller."""

    def __init__(self, task: "asyncio.Task[None]"):
        self._task = task

    def cancel(self) -> None:
        self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    async def wait(self) -> None:
        """Wait for the polling task to finish after cancel()."""
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class Poller:
    """
    Calls ``callback`` every ``interval_seconds`` until cancelled.

    The callback may be sync or async. A failing poll is logged and the next
    one runs on schedule; the latest successful read wins.
    """

    def __init__(self, callback: PollCallback, interval_seconds: Optional[float] = None):
        interval = settings.poll_interval_seconds if interval_seconds is None else interval_seconds
        if interval <= 0:
            raise ValueError("interval_seconds must be positive")
        self.callback = callback
        self.interval = interval
        self.run_count = 0
        self.last_result: Any = None

    async def poll_once(self) -> Any:
        result = self.callback()
        if inspect.isawaitable(result):
            result = await result
        self.run_count += 1
        self.last_result = result
        return result

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Poll callback failed; retrying at next interval")
            await asyncio.sleep(self.interval)

    def start(self) -> PollHandle:
        """Start polling on the running event loop."""
        task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Started poller every {self.interval}s")
        return PollHandle(task)
