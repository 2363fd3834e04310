"""Scheduled maintenance window and key reload jobs."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from t53upload.core.config import Settings
from t53upload.uploads.pipeline import UploadApi

logger = logging.getLogger(__name__)

START_MAINTENANCE_JOB_ID = "start_maintenance"
END_MAINTENANCE_JOB_ID = "end_maintenance"
RELOAD_KEY_JOB_ID = "reload_key"


def start_maintenance(api: UploadApi) -> None:
    api.set_maintenance_mode(True)


def end_maintenance(api: UploadApi) -> None:
    api.set_maintenance_mode(False)


def reload_key(api: UploadApi) -> None:
    api.reload_credential()


def build_scheduler(settings: Settings, api: UploadApi) -> AsyncIOScheduler:
    """Create a scheduler with one job per configured cron schedule.

    The scheduler is returned unstarted; the application lifespan
    starts and stops it.
    """
    scheduler = AsyncIOScheduler()

    jobs = [
        (START_MAINTENANCE_JOB_ID, settings.T53_START_MAINTENANCE, start_maintenance),
        (END_MAINTENANCE_JOB_ID, settings.T53_END_MAINTENANCE, end_maintenance),
        (RELOAD_KEY_JOB_ID, settings.T53_RELOAD_KEY, reload_key),
    ]

    for job_id, expression, func in jobs:
        if expression is None:
            continue
        scheduler.add_job(
            func,
            CronTrigger.from_crontab(expression),
            args=[api],
            id=job_id,
            coalesce=True,
            max_instances=1,
        )
        logger.info(f"Scheduled {job_id} with cron '{expression}'")

    return scheduler
