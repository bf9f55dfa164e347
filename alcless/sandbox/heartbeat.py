"""Keeps cached sudo credentials alive during long batches."""

from __future__ import annotations

import asyncio
import contextlib
from types import TracebackType
from typing import TYPE_CHECKING

from loguru import logger

from alcless.core.constants import DEFAULT_HEARTBEAT_INTERVAL


if TYPE_CHECKING:
    from alcless.sandbox.provider import CommandRunner


class PrivilegeHeartbeat:
    """Periodically refreshes the sudo timestamp in the background.

    Homebrew installs can outlast the sudo credential cache; without the
    refresh every later ``sudo -n`` would fail mid-batch. Use as an async
    context manager so the task stops on every exit path.
    """

    def __init__(
        self,
        runner: CommandRunner,
        interval: float = DEFAULT_HEARTBEAT_INTERVAL,
    ) -> None:
        """Initialize the heartbeat.

        Args:
            runner: Runner used to refresh the credentials.
            interval: Seconds between refreshes (default: 45).
        """
        self._runner = runner
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the refresh loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._refresh_loop())
        logger.debug("PrivilegeHeartbeat started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the refresh loop."""
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.debug("PrivilegeHeartbeat stopped")

    async def _refresh_loop(self) -> None:
        """Refresh credentials until cancelled, sleeping between refreshes."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._runner.refresh_credentials()
            except Exception as e:
                logger.warning(
                    "Sudo credential refresh failed - continuing loop",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def __aenter__(self) -> PrivilegeHeartbeat:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
