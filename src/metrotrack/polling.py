"""Periodic refresh of live and scheduled arrivals for one station."""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional

from .merge import Arrival, merge_arrivals
from .models import LiveArrival, ScheduledArrival

logger = logging.getLogger(__name__)


class StationMonitor:
    """
    Polls live predictions and recomputes the schedule for a station.

    Live predictions refresh every live_interval seconds. Scheduled arrivals
    are recomputed every schedule_interval seconds since their minutes_away
    values change even when the feed does not. Each loop waits for its
    current tick to finish before sleeping, so ticks never overlap. A tick
    whose refresh or on_update call raises is logged and the loop carries on.
    """

    def __init__(
        self,
        tracker,
        station: str,
        on_update: Callable[[List[Arrival]], Optional[Awaitable[None]]],
        window_minutes: int = 90,
        live_interval: float = 30.0,
        schedule_interval: float = 60.0,
    ):
        """
        Args:
            tracker: StationTracker used to fetch arrivals.
            station: Station code or comma-separated codes.
            on_update: Called with the merged arrival list after every
                successful tick. May be a plain function or a coroutine function.
            window_minutes: Scheduled arrival window.
            live_interval: Seconds between live prediction refreshes.
            schedule_interval: Seconds between schedule recomputations.
        """
        self.tracker = tracker
        self.station = station
        self.on_update = on_update
        self.window_minutes = window_minutes
        self.live_interval = live_interval
        self.schedule_interval = schedule_interval

        self.live: List[LiveArrival] = []
        self.scheduled: List[ScheduledArrival] = []
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    @property
    def arrivals(self) -> List[Arrival]:
        """Latest merged arrivals."""
        return merge_arrivals(self.live, self.scheduled)

    async def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.ensure_future(self._poll("live", self._refresh_live, self.live_interval)),
            asyncio.ensure_future(self._poll("schedule", self._refresh_schedule, self.schedule_interval)),
        ]
        logger.info(f"Started monitoring {self.station}")

    async def stop(self) -> None:
        """Cancel both polling loops and wait for them to finish."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info(f"Stopped monitoring {self.station}")

    async def change_station(self, station: str) -> None:
        """Switch to another station, discarding results for the old one."""
        await self.stop()
        self.station = station
        self.live = []
        self.scheduled = []
        await self.start()

    async def _poll(self, name: str, refresh: Callable[[], Awaitable[None]], interval: float) -> None:
        while True:
            try:
                await refresh()
            except Exception as e:
                logger.warning(f"{name} refresh failed for {self.station}: {e}")
            else:
                try:
                    await self._publish()
                except Exception as e:
                    logger.warning(f"Update callback failed for {self.station}: {e}")
            await asyncio.sleep(interval)

    async def _refresh_live(self) -> None:
        self.live = await self.tracker.get_live_arrivals(self.station)

    async def _refresh_schedule(self) -> None:
        self.scheduled = await self.tracker.get_scheduled_arrivals(self.station, self.window_minutes)

    async def _publish(self) -> None:
        result = self.on_update(self.arrivals)
        if inspect.isawaitable(result):
            await result
