from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from loguru import logger

from app.config import settings
from app.models.stats import QueryStatsState
from app.services import logger as log_service
from app.services.stats_tracker import QueryStatsTracker


def top_queries(state: QueryStatsState, limit: int = 10) -> list[tuple[str, int]]:
    """Most frequent queries, ties kept in first-recorded order."""
    ranked = sorted(state.popular_queries.items(), key=lambda item: item[1], reverse=True)
    return ranked[: max(limit, 0)]


def generate_analytics_report(tracker: QueryStatsTracker, limit: int | None = None) -> list[tuple[str, int]]:
    report = top_queries(tracker.snapshot(), limit or settings.analytics_report_top_n)
    log_service.log_event(
        event_type="analytics_report",
        message=f"Top {len(report)} popular queries",
        top_queries=report,
    )
    return report


def seconds_until_next_run(now: datetime, hour_utc: int) -> float:
    now = now.astimezone(timezone.utc)
    target = now.replace(hour=hour_utc % 24, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class ReportScheduler:
    """Runs the analytics report once a day in the background."""

    def __init__(self, tracker: QueryStatsTracker, *, hour_utc: int | None = None):
        self.tracker = tracker
        self.hour_utc = settings.analytics_report_hour_utc if hour_utc is None else hour_utc
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="analytics-report")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            delay = seconds_until_next_run(datetime.now(timezone.utc), self.hour_utc)
            logger.debug(f"Next analytics report in {delay:.0f}s")
            await asyncio.sleep(delay)
            try:
                generate_analytics_report(self.tracker)
            except Exception as e:
                logger.exception(f"Analytics report failed: {e}")
