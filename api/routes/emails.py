"""
Emails Router

Manual mailbox sync and inbox statistics.
"""

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_components
from api.middleware.rate_limit import limiter, LIMIT_SYNC
from workers.components import Components


router = APIRouter(prefix="/emails", tags=["Emails"])


@router.post("/sync")
@limiter.limit(LIMIT_SYNC)
async def sync_emails(
    request: Request,
    components: Components = Depends(get_components)
):
    """
    Pull vendor replies from the mailbox into vendor responses.

    Runs one full pass and returns its counters. Responds 502 when the
    mailbox cannot be reached.
    """
    summary = await components.synchronizer.run()
    return {
        "success": True,
        "message": "Email sync completed",
        "data": summary.model_dump(by_alias=True)
    }


@router.get("/stats")
async def email_stats(components: Components = Depends(get_components)):
    """Total, new and unseen message counts; read-only."""
    stats = await components.synchronizer.stats()
    return {
        "success": True,
        "data": stats.model_dump()
    }
