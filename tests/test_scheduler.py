import threading

import pytest

from billshare.config import Settings
from billshare.scheduler import _cleanup_job, setup_scheduler
from billshare.services.uploads import ReceiptStorage


class CountingStorage:
    def __init__(self) -> None:
        self.calls: list[int] = []
        self.threads: list[int] = []

    def cleanup_old_files(self, max_age_days: int) -> int:
        self.calls.append(max_age_days)
        self.threads.append(threading.get_ident())
        return 3


@pytest.mark.asyncio
async def test_setup_scheduler_registers_cleanup(tmp_path):
    settings = Settings(cleanup_interval_minutes=15, cleanup_max_age_days=2, tz="UTC")
    scheduler = setup_scheduler(ReceiptStorage(tmp_path, 1024), settings)
    try:
        job = scheduler.get_job("upload-cleanup")
        assert job is not None
        assert job.kwargs["max_age_days"] == 2
        assert job.trigger.interval.total_seconds() == 15 * 60
    finally:
        scheduler.shutdown(wait=False)


@pytest.mark.asyncio
async def test_cleanup_job_uses_configured_age():
    storage = CountingStorage()

    await _cleanup_job(storage, max_age_days=5)  # type: ignore[arg-type]

    assert storage.calls == [5]
    assert storage.threads != [threading.get_ident()]
