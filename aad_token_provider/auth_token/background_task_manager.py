"""Background task management for token refresh."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..utils import format_duration
from .types import SchedulerState

if TYPE_CHECKING:
    from .provider import TokenProvider


class BackgroundTaskManager:
    """Owns the asyncio task that runs the refresh schedule."""

    def __init__(
        self,
        provider: TokenProvider,
        *,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.provider = provider
        self.task: asyncio.Task[Any] | None = None
        self.running = False
        self._sleep = sleep

    async def start(self) -> None:
        """Start the background refresh loop."""
        if self.running:
            return
        if self.task and not self.task.done():
            logging.debug("Cancelling stale background task before restart")
            await self._cancel_and_join(self.task)
        self.running = True
        self.task = asyncio.create_task(self._background_refresh_loop())
        logging.debug(f"▶️ Started background token refresh loop audience={self.provider.audience}")

    async def stop(self) -> None:
        """Signal cancellation and wait for the loop to finish."""
        self.running = False
        task, self.task = self.task, None
        if task is None:
            return
        await self._cancel_and_join(task)
        logging.debug(f"⏹️ Stopped background token refresh loop audience={self.provider.audience}")

    @staticmethod
    async def _cancel_and_join(task: asyncio.Task[Any]) -> None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            # Propagate only if the caller itself is being cancelled.
            if current is not None and current.cancelling():
                raise

    async def _background_refresh_loop(self) -> None:
        """Wait for the scheduled duration, refresh, repeat.

        A failed refresh is retried after the fallback duration recorded on
        the snapshot, unless the config asks to terminate on failure. An
        unexpected exception ends the loop and is published as the last error.
        """
        provider = self.provider
        try:
            while self.running:
                provider._set_state(SchedulerState.WAITING)
                delay = provider.snapshot.refresh_duration.total_seconds()
                logging.debug(
                    f"⌛ Next token refresh in {format_duration(delay)} audience={provider.audience}"
                )
                await (self._sleep or asyncio.sleep)(delay)
                if not self.running:
                    break

                provider._set_state(SchedulerState.REFRESHING)
                ok = await provider.refresher.refresh()
                if not ok and provider.config.terminate_on_failure:
                    logging.warning(
                        f"🛑 Background token refresh terminated after failure audience={provider.audience}"
                    )
                    break
        except asyncio.CancelledError:
            logging.debug("Background token refresh loop cancelled")
            raise
        except Exception as e:  # noqa: BLE001
            provider.refresher.record_crash(e)
        finally:
            self.running = False
            provider._set_state(SchedulerState.TERMINATED)
