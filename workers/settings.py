"""
ARQ Worker Settings

Configuration for the async Redis queue worker.
"""

import logging

from arq import cron
from arq.connections import ArqRedis

from config.logging_config import setup_logging
from config.settings import settings
from database.connection import configure, init_db, close_db
from workers.analysis import run_proposal_analysis_job, scheduled_inbox_sync
from workers.components import build_components
from workers.queue import ArqAnalysisQueue, get_redis_settings

logger = logging.getLogger("rfp_intake.workers")


def _cron_jobs() -> list:
    if not settings.sync_cron_enabled:
        return []
    return [
        cron(
            scheduled_inbox_sync,
            minute=set(range(0, 60, 15)),
            run_at_startup=False,
            unique=True
        )
    ]


async def on_startup(ctx: dict):
    """Build the pipeline once per worker process."""
    setup_logging(log_level="INFO", log_to_file=True, logs_dir=settings.logs_dir)
    logger.info("ARQ Worker starting...")

    session_factory = configure(settings)
    await init_db()

    redis: ArqRedis = ctx["redis"]
    ctx["components"] = build_components(
        settings,
        session_factory,
        # Records created by the scheduled sync go back through this Redis
        queue_factory=lambda app_settings, handler: ArqAnalysisQueue(app_settings, redis)
    )


async def on_shutdown(ctx: dict):
    logger.info("ARQ Worker shutting down...")
    await close_db()


class WorkerSettings:
    """
    ARQ Worker configuration.

    Usage:
        arq workers.settings.WorkerSettings
    """

    # Redis connection
    redis_settings = get_redis_settings(settings)

    # Job functions to register
    functions = [run_proposal_analysis_job]
    cron_jobs = _cron_jobs()

    on_startup = on_startup
    on_shutdown = on_shutdown

    # Worker behavior
    max_jobs = 5  # Max concurrent jobs
    job_timeout = 600  # 10 minutes max per job
    keep_result = 3600  # Keep results for 1 hour

    # Jobs report failures in their result instead of raising
    max_tries = 1

    # Health check
    health_check_interval = 30
