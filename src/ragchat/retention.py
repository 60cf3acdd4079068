"""Scheduled retention cleanup.

Once a day, at a fixed local wall-clock time, chunks whose
``ingestion_timestamp`` is older than the retention window are deleted.
The sweep is fire-and-forget: failures are logged and the next attempt
happens at the next scheduled time.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

import anyio

from ragchat.config import Settings, settings as default_settings
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.models import now_millis

logger = logging.getLogger(__name__)

MILLIS_PER_DAY = 24 * 60 * 60 * 1000


def seconds_until_next_run(now: datetime, hour: int, minute: int = 0) -> float:
    """Seconds from *now* until the next ``hour:minute`` (strictly in the future)."""
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class RetentionSweeper:
    """Deletes chunks that outlived ``retention_period_days``.

    Parameters
    ----------
    store:
        The vector store to sweep.
    config:
        Supplies the retention window and the daily run time.
    clock:
        Returns epoch milliseconds; injectable for tests.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        config: Settings | None = None,
        *,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        config = config or default_settings
        self._store = store
        self._retention_days = config.retention_period_days
        self._hour = config.retention_sweep_hour
        self._minute = config.retention_sweep_minute
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    def cutoff(self, now_ms: int | None = None) -> int:
        now_ms = self._clock() if now_ms is None else now_ms
        return now_ms - self._retention_days * MILLIS_PER_DAY

    def sweep(self, now_ms: int | None = None) -> int | None:
        """Run one cleanup pass.  Never raises; returns ``None`` on failure."""
        cutoff = self.cutoff(now_ms)
        try:
            deleted = self._store.delete_older_than(cutoff)
        except Exception:
            logger.exception("Scheduled cleanup failed (cutoff=%d); will retry at the next run", cutoff)
            return None
        logger.info("Scheduled cleanup: deleted %d chunk(s) older than %d", deleted, cutoff)
        return deleted

    # -- lifecycle ------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the daily loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run_forever(), name="retention-sweeper")
        logger.info(
            "Retention sweeper started (daily at %02d:%02d, retention=%d day(s))",
            self._hour,
            self._minute,
            self._retention_days,
        )

    async def stop(self) -> None:
        """Cancel the daily loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Retention sweeper stopped")

    async def _run_forever(self) -> None:
        while True:
            delay = seconds_until_next_run(datetime.now(), self._hour, self._minute)
            logger.debug("Next retention sweep in %.0fs", delay)
            await asyncio.sleep(delay)
            await anyio.to_thread.run_sync(self.sweep)
