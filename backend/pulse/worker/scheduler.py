"""APScheduler jobs that keep every planner ticking inside the API process."""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from pulse.core.config import settings
from pulse.observability.metrics import log_metric
from pulse.services.planner_registry import PlannerRegistry


logger = logging.getLogger(__name__)


def build_scheduler(registry: PlannerRegistry) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=settings.scheduler_timezone)
    scheduler.add_job(
        run_planner_ticks,
        trigger="interval",
        seconds=settings.planner_tick_seconds,
        args=[registry],
        id="planner_tick_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        run_calendar_refresh,
        trigger="interval",
        minutes=settings.calendar_refresh_minutes,
        args=[registry],
        id="calendar_refresh_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        "Registered planner jobs (tick=%ss, calendar refresh=%smin, tz=%s)",
        settings.planner_tick_seconds,
        settings.calendar_refresh_minutes,
        settings.scheduler_timezone,
    )
    return scheduler


async def run_planner_ticks(registry: PlannerRegistry) -> int:
    processed = 0
    for user_id, planner in registry.items():
        try:
            await planner.tick()
        except Exception:  # pragma: no cover - engine already guards its own failures
            logger.exception("Planner tick failed for user %s", user_id)
            continue
        processed += 1
    log_metric("planner.tick.users", processed)
    return processed


async def run_calendar_refresh(registry: PlannerRegistry) -> int:
    refreshed = 0
    for user_id, planner in registry.items():
        if await planner.refresh_calendar_events():
            refreshed += 1
        else:
            logger.debug("Calendar refresh skipped or failed for user %s", user_id)
    log_metric("planner.calendar_refresh.users", refreshed)
    return refreshed
