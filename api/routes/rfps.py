"""
RFPs Router

RFP creation, listing and status management.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_components, get_proposals, get_session
from schemas.rfp import RFPCreate, RFPRead, RFPStatusUpdate
from services.proposals import ProposalService
from workers.components import Components


router = APIRouter(prefix="/rfps", tags=["RFPs"])


@router.get("/vendors")
async def list_vendors(components: Components = Depends(get_components)):
    """Vendor directory offered when composing an RFP."""
    return {
        "success": True,
        "data": components.settings.vendor_directory
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_rfp(
    payload: RFPCreate,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    """
    Create an RFP and invite its vendors by email.

    An empty `selected_vendors` list leaves the RFP open to all vendors.
    Invitation delivery problems never fail the request.
    """
    rfp = await proposals.create_rfp(db, payload)
    return {
        "success": True,
        "message": "RFP submitted successfully",
        "data": RFPRead.model_validate(rfp).model_dump(mode="json")
    }


@router.get("")
async def list_rfps(
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    summaries = await proposals.list_rfps(db)
    return {
        "success": True,
        "count": len(summaries),
        "data": [summary.model_dump(mode="json") for summary in summaries]
    }


@router.get("/{rfp_id}")
async def get_rfp(
    rfp_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    rfp = await proposals.get_rfp(db, rfp_id)
    return {
        "success": True,
        "data": RFPRead.model_validate(rfp).model_dump(mode="json")
    }


@router.put("/{rfp_id}/status")
async def update_rfp_status(
    rfp_id: uuid.UUID,
    payload: RFPStatusUpdate,
    db: AsyncSession = Depends(get_session),
    proposals: ProposalService = Depends(get_proposals)
):
    """Change RFP status; an accepted RFP cannot be changed again."""
    rfp = await proposals.update_rfp_status(db, rfp_id, payload.status)
    return {
        "success": True,
        "message": "RFP status updated",
        "data": RFPRead.model_validate(rfp).model_dump(mode="json")
    }
