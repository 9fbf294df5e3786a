"""
Analysis Queue

Hand-off point between record creation and background analysis. Producers
call `submit(response_id)` and move on; they never wait for or see the
analysis outcome.

Two backends:
- InProcessAnalysisQueue: asyncio.Queue drained by consumer tasks inside the
  API process (default; no Redis needed)
- ArqAnalysisQueue: enqueues `run_proposal_analysis_job` on Redis for the ARQ
  worker

Enqueue failures are logged, never raised: the record already exists and can
be re-analyzed on demand.
"""

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Optional, Protocol

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from redis.exceptions import RedisError

from config.settings import AnalysisQueueBackend, Settings

logger = logging.getLogger("rfp_intake.workers.queue")

ANALYSIS_JOB = "run_proposal_analysis_job"

AnalysisHandler = Callable[[uuid.UUID], Awaitable[object]]


class AnalysisQueue(Protocol):
    async def submit(self, response_id: uuid.UUID) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


# ============================================================================
# Redis connection
# ============================================================================

def get_redis_settings(app_settings: Settings) -> RedisSettings:
    """Redis connection settings from REDIS_URL (redis://[:password@]host:port/db)."""
    return RedisSettings.from_dsn(app_settings.redis_url)


_redis_pool: Optional[ArqRedis] = None


async def get_redis_pool(app_settings: Settings) -> ArqRedis:
    """Get or create the Redis connection pool."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = await create_pool(get_redis_settings(app_settings))
    return _redis_pool


async def close_redis_pool():
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.close()
        _redis_pool = None


# ============================================================================
# Backends
# ============================================================================

class InProcessAnalysisQueue:
    """asyncio.Queue with a fixed number of consumer tasks."""

    def __init__(self, handler: AnalysisHandler, workers: int = 2):
        self.handler = handler
        self.workers = workers
        self._queue: asyncio.Queue = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._consume(n), name=f"analysis-consumer-{n}")
            for n in range(self.workers)
        ]
        logger.info(f"Started {self.workers} analysis consumer(s)")

    async def submit(self, response_id: uuid.UUID) -> None:
        self._queue.put_nowait(response_id)
        logger.info(f"Queued analysis for response {response_id}")

    async def join(self) -> None:
        """Wait until every submitted item has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def _consume(self, n: int) -> None:
        while True:
            response_id = await self._queue.get()
            try:
                await self.handler(response_id)
            except Exception:
                logger.exception(f"Analysis consumer {n} failed on response {response_id}")
            finally:
                self._queue.task_done()


class ArqAnalysisQueue:
    """Enqueues analysis jobs for the ARQ worker."""

    def __init__(
        self,
        app_settings: Settings,
        redis: Optional[ArqRedis] = None
    ):
        self.settings = app_settings
        self._redis = redis

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        if self._redis is None:
            await close_redis_pool()

    async def submit(self, response_id: uuid.UUID) -> None:
        try:
            redis = self._redis or await get_redis_pool(self.settings)
            await redis.enqueue_job(
                ANALYSIS_JOB,
                str(response_id),
                _job_id=f"analysis:{response_id}"
            )
        except (RedisError, OSError) as e:
            logger.error(f"Could not enqueue analysis for response {response_id}: {e}")
            return
        logger.info(f"Enqueued analysis job for response {response_id}")


def create_analysis_queue(
    app_settings: Settings,
    handler: AnalysisHandler
) -> AnalysisQueue:
    """Build the queue selected by ANALYSIS_QUEUE_BACKEND."""
    if app_settings.analysis_queue_backend == AnalysisQueueBackend.ARQ:
        return ArqAnalysisQueue(app_settings)
    return InProcessAnalysisQueue(handler, workers=app_settings.analysis_workers)
