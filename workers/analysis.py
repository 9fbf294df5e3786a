"""
Analysis Worker

Background jobs: vendor response analysis and the scheduled inbox sync.

`analyze_and_record` is shared by both queue backends. The in-process queue
calls it directly; the ARQ job below calls it with the components built at
worker startup.
"""

import logging
import uuid
from typing import Union

from sqlalchemy.ext.asyncio import async_sessionmaker

from services.errors import (
    AnalysisFailure,
    AnalysisUnavailable,
    MailboxConnectionError,
    RecordNotFound,
)

logger = logging.getLogger("rfp_intake.workers.analysis")


async def analyze_and_record(
    session_factory: async_sessionmaker,
    proposals,
    response_id: Union[uuid.UUID, str]
) -> dict:
    """
    Analyze one vendor response in its own session and store the result.

    Failures are logged and reported in the returned dict; the record stays
    as it was and can be re-analyzed on demand.
    """
    if isinstance(response_id, str):
        response_id = uuid.UUID(response_id)

    try:
        async with session_factory() as session:
            response, analysis = await proposals.analyze_response(session, response_id)
    except AnalysisUnavailable as e:
        logger.warning(f"Skipping analysis of response {response_id}: {e.message}")
        return {"status": "skipped", "response_id": str(response_id), "error": e.message}
    except (AnalysisFailure, RecordNotFound) as e:
        logger.error(f"Background AI analysis failed for response {response_id}: {e.message}")
        return {"status": "failed", "response_id": str(response_id), "error": e.message}

    return {
        "status": "completed",
        "response_id": str(response_id),
        "vendor_email": response.vendor_email,
        "score": analysis.score,
    }


async def run_proposal_analysis_job(ctx: dict, response_id: str) -> dict:
    """
    ARQ job: analyze one vendor response.

    Args:
        ctx: ARQ context; `components` is set by WorkerSettings.on_startup
        response_id: Vendor response to analyze
    """
    components = ctx["components"]
    logger.info(f"Starting analysis job for response {response_id}")
    return await analyze_and_record(
        components.session_factory,
        components.proposals,
        response_id
    )


async def scheduled_inbox_sync(ctx: dict) -> dict:
    """ARQ cron job: one inbox sync pass."""
    components = ctx["components"]
    try:
        summary = await components.synchronizer.run()
    except MailboxConnectionError as e:
        logger.error(f"Scheduled inbox sync failed: {e.message}")
        return {"status": "failed", "error": e.message}

    return {"status": "completed", **summary.model_dump(by_alias=True)}
