"""
Workers Package

Background analysis hand-off and the ARQ (async Redis queue) worker.

WorkerSettings is not re-exported here: importing it resolves Redis settings
from the environment. Use `arq workers.settings.WorkerSettings`.
"""

from workers.analysis import (
    analyze_and_record,
    run_proposal_analysis_job,
    scheduled_inbox_sync
)
from workers.queue import (
    AnalysisQueue,
    InProcessAnalysisQueue,
    ArqAnalysisQueue,
    create_analysis_queue,
    get_redis_pool,
    close_redis_pool
)
from workers.components import Components, build_components

__all__ = [
    # Jobs
    "analyze_and_record",
    "run_proposal_analysis_job",
    "scheduled_inbox_sync",
    # Queue
    "AnalysisQueue",
    "InProcessAnalysisQueue",
    "ArqAnalysisQueue",
    "create_analysis_queue",
    "get_redis_pool",
    "close_redis_pool",
    # Wiring
    "Components",
    "build_components",
]
