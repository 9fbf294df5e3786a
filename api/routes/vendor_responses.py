"""
Vendor Responses Router

Web submission, listing, on-demand analysis and comparison, acceptance,
status changes and attachment download.
"""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_components, get_proposals, get_session
from api.middleware.rate_limit import limiter, LIMIT_ANALYSIS
from schemas.vendor_response import (
    ResponseStatusUpdate,
    VendorResponseCreate,
    VendorResponseRead,
)
from services.proposals import ProposalService
from workers.components import Components


router = APIRouter(prefix="/vendor-responses", tags=["Vendor Responses"])


def _serialize(response) -> dict:
    return VendorResponseRead.model_validate(response).model_dump(mode="json")


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_response(
    payload: VendorResponseCreate,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    """
    Submit a proposal through the web form (JSON body).

    403 when the RFP has an invite list that does not include the vendor.
    Analysis runs in the background.
    """
    response = await proposals.submit_response(db, payload)
    return {
        "success": True,
        "message": "Vendor response submitted successfully. AI analysis in progress.",
        "data": _serialize(response)
    }


@router.get("")
async def list_responses(
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    responses = await proposals.list_responses(db)
    return {
        "success": True,
        "count": len(responses),
        "data": [_serialize(response) for response in responses]
    }


@router.get("/rfp/{rfp_id}")
async def list_responses_for_rfp(
    rfp_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    responses = await proposals.list_responses(db, rfp_id)
    return {
        "success": True,
        "count": len(responses),
        "data": [_serialize(response) for response in responses]
    }


@router.get("/attachment/{key:path}")
async def download_attachment(
    key: str,
    components: Components = Depends(get_components)
):
    """
    Stream a stored attachment.

    403 when the key points outside the attachments root, 404 when the file
    does not exist.
    """
    path = components.store.resolve(key)
    return FileResponse(
        path,
        media_type="application/octet-stream",
        filename=path.name
    )


@router.post("/compare/{rfp_id}")
@limiter.limit(LIMIT_ANALYSIS)
async def compare_responses(
    request: Request,
    rfp_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    """Rank the analyzed responses for an RFP (at least two required)."""
    comparison = await proposals.compare_responses(db, rfp_id)
    return {
        "success": True,
        "message": "Vendor comparison completed",
        "data": {
            "comparison": comparison.model_dump(mode="json", by_alias=True),
            "comparedAt": datetime.now(timezone.utc).isoformat()
        }
    }


@router.get("/{response_id}")
async def get_response(
    response_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    response = await proposals.get_response(db, response_id)
    return {
        "success": True,
        "data": _serialize(response)
    }


@router.post("/{response_id}/analyze")
@limiter.limit(LIMIT_ANALYSIS)
async def analyze_response(
    request: Request,
    response_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    """(Re)run the analysis for one response and wait for the result."""
    response, _ = await proposals.analyze_response(db, response_id)
    return {
        "success": True,
        "message": "AI analysis completed",
        "data": _serialize(response)
    }


@router.post("/{response_id}/accept")
async def accept_response(
    response_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    """
    Accept a response and mark its RFP accepted.

    409 when the RFP already has an accepted proposal or the response was
    rejected. The vendor notification is best effort.
    """
    response, notified = await proposals.accept(db, response_id)
    if notified:
        message = "Vendor response accepted and notification email sent"
    else:
        message = "Vendor response accepted; notification email not sent"
    return {
        "success": True,
        "message": message,
        "data": _serialize(response)
    }


@router.put("/{response_id}/status")
async def update_response_status(
    response_id: uuid.UUID,
    payload: ResponseStatusUpdate,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    response = await proposals.update_response_status(db, response_id, payload.status)
    return {
        "success": True,
        "message": "Status updated",
        "data": _serialize(response)
    }
