from __future__ import annotations

import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from billshare.config import Settings
from billshare.logging import get_logger
from billshare.services.uploads import ReceiptStorage


def setup_scheduler(storage: ReceiptStorage, settings: Settings) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=settings.tz)
    scheduler.add_job(
        _cleanup_job,
        IntervalTrigger(minutes=settings.cleanup_interval_minutes),
        kwargs={"storage": storage, "max_age_days": settings.cleanup_max_age_days},
        id="upload-cleanup",
        replace_existing=True,
    )
    scheduler.start()
    return scheduler


async def _cleanup_job(storage: ReceiptStorage, max_age_days: int) -> None:
    log = get_logger(__name__)
    deleted = await asyncio.to_thread(storage.cleanup_old_files, max_age_days)
    log.info("cleanup.job", deleted=deleted)
