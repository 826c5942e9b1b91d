"""Scheduler for the periodic aggregate refresh."""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from coinwatch.core.valuation.aggregate import AggregateComputer

logger = logging.getLogger(__name__)

JOB_ID = "aggregate_refresh"
MIN_INTERVAL_SECONDS = 1


class AggregateScheduler:
    """Republishes the portfolio total on a fixed interval.

    Every mutation already publishes a fresh total; this refresh only picks
    up tick-driven changes for observers that do not listen to the feed.
    """

    def __init__(self, aggregate: AggregateComputer, interval_seconds: int = 5):
        """Initialize the scheduler.

        Args:
            aggregate: Aggregate computer to publish from
            interval_seconds: Seconds between refreshes (at least 1)
        """
        if interval_seconds < MIN_INTERVAL_SECONDS:
            raise ValueError(
                f"Refresh interval must be at least {MIN_INTERVAL_SECONDS}s, got {interval_seconds}"
            )
        self.aggregate = aggregate
        self.interval = interval_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._cycle_count = 0

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def _run_cycle(self) -> None:
        """Publish one refresh."""
        self._cycle_count += 1
        try:
            total = self.aggregate.publish()
            logger.debug(
                f"[Refresh {self._cycle_count}] quote={total.quote_sum} "
                f"secondary={total.secondary_sum} ({total.priced}/{total.tracked} priced)"
            )
        except Exception as e:
            logger.error(f"[Refresh {self._cycle_count}] Error: {e}")

    def start(self) -> None:
        """Start the scheduler on the running event loop."""
        if self.running:
            return
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._run_cycle,
            trigger=IntervalTrigger(seconds=self.interval),
            id=JOB_ID,
            name="Aggregate Refresh",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.start()
        logger.info(f"Started aggregate refresh every {self.interval}s")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Aggregate refresh stopped")
        self.scheduler = None
