"""Interval ticker using APScheduler."""

import logging
from typing import Callable, Optional, Protocol, runtime_checkable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


@runtime_checkable
class Ticker(Protocol):
    """Calls a callback at a fixed interval until stopped."""

    def start(self, callback: Callable[[], None], interval: float) -> None:
        ...

    def stop(self) -> None:
        ...


class IntervalTicker:
    """Ticker backed by an ``AsyncIOScheduler`` interval job.

    The callback runs on the event loop. Must be started from within a
    running loop.
    """

    def __init__(self, job_id: str = "poll", timezone: str = "UTC") -> None:
        self._job_id = job_id
        self._timezone = timezone
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self, callback: Callable[[], None], interval: float) -> None:
        if self.is_running:
            logger.warning(f"Ticker {self._job_id} already running")
            return

        async def fire() -> None:
            callback()

        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._scheduler.add_job(
            fire,
            trigger=IntervalTrigger(seconds=interval, timezone=self._timezone),
            id=self._job_id,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.debug(f"Ticker {self._job_id} started every {interval}s")

    def stop(self) -> None:
        if not self.is_running:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.debug(f"Ticker {self._job_id} stopped")
