"""
Proposal Lifecycle

RFP and vendor response operations behind the HTTP boundary: creation, the
status state machines, analysis write-back, comparison and acceptance.

Every method takes the caller's AsyncSession and commits its own changes.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crew.analysis_orchestrator import AnalysisOrchestrator
from database.models import RFP, RFPVendor, VendorResponse
from schemas.analysis import VendorAnalysis, VendorComparison
from schemas.rfp import RFPCreate, RFPRead, RFPStatus, RFPSummary
from schemas.vendor_response import (
    ResponseSource,
    ResponseStatus,
    VendorResponseCreate,
)
from services.errors import (
    InsufficientData,
    InvalidStatusTransition,
    RecordNotFound,
    VendorNotInvited,
)
from services.notifications import DELIVERY_ERRORS, Notifier

logger = logging.getLogger("rfp_intake.services.proposals")


# Allowed status changes; anything else raises InvalidStatusTransition
RFP_TRANSITIONS: dict[RFPStatus, set[RFPStatus]] = {
    RFPStatus.PENDING: {RFPStatus.CLOSED, RFPStatus.ACCEPTED},
    RFPStatus.CLOSED: {RFPStatus.PENDING},
    RFPStatus.ACCEPTED: set(),
}

RESPONSE_TRANSITIONS: dict[ResponseStatus, set[ResponseStatus]] = {
    ResponseStatus.PENDING: {
        ResponseStatus.ANALYZED,
        ResponseStatus.ACCEPTED,
        ResponseStatus.REJECTED,
    },
    ResponseStatus.ANALYZED: {ResponseStatus.ACCEPTED, ResponseStatus.REJECTED},
    ResponseStatus.ACCEPTED: set(),
    ResponseStatus.REJECTED: set(),
}

# Statuses a completed analysis may move a response out of
ANALYZABLE_STATUSES = {ResponseStatus.PENDING, ResponseStatus.ANALYZED}


def check_rfp_transition(current: str, target: RFPStatus) -> None:
    current = RFPStatus(current)
    if target != current and target not in RFP_TRANSITIONS[current]:
        raise InvalidStatusTransition(
            f"RFP cannot move from {current.value} to {target.value}"
        )


def check_response_transition(current: str, target: ResponseStatus) -> None:
    current = ResponseStatus(current)
    if target != current and target not in RESPONSE_TRANSITIONS[current]:
        raise InvalidStatusTransition(
            f"Vendor response cannot move from {current.value} to {target.value}"
        )


class ProposalService:
    """
    Lifecycle operations for RFPs and vendor responses.

    `analysis_queue` receives the id of every newly submitted web response;
    it is assigned after construction when the queue itself needs this
    service to run its jobs.
    """

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        notifier: Optional[Notifier] = None,
        analysis_queue=None
    ):
        self.orchestrator = orchestrator
        self.notifier = notifier
        self.analysis_queue = analysis_queue

    # ========================================================================
    # RFPs
    # ========================================================================

    async def create_rfp(self, session: AsyncSession, payload: RFPCreate) -> RFP:
        rfp = RFP(
            company_name=payload.company_name,
            contact_person=payload.contact_person,
            email=payload.email,
            phone=payload.phone,
            project_title=payload.project_title,
            project_description=payload.project_description,
            budget=payload.budget,
            deadline=payload.deadline,
            requirements=payload.requirements,
            status=RFPStatus.PENDING.value,
            vendors=[
                RFPVendor(position=position, vendor_email=address)
                for position, address in enumerate(payload.selected_vendors)
            ],
        )
        session.add(rfp)
        await session.commit()
        logger.info(f"Created RFP {rfp.id}: {rfp.project_title}")

        if self.notifier is not None:
            try:
                await self.notifier.send_rfp_invitation(rfp)
            except DELIVERY_ERRORS as e:
                logger.warning(f"Failed to send RFP invitation email: {e}")
        return rfp

    async def list_rfps(self, session: AsyncSession) -> list[RFPSummary]:
        """All RFPs, newest first, with total and accepted response counts."""
        result = await session.execute(select(RFP).order_by(RFP.created_at.desc()))
        rfps = list(result.scalars().all())

        counts = await session.execute(
            select(
                VendorResponse.rfp_id,
                func.count(VendorResponse.id),
                func.sum(
                    case((VendorResponse.status == ResponseStatus.ACCEPTED.value, 1), else_=0)
                ),
            ).group_by(VendorResponse.rfp_id)
        )
        by_rfp = {rfp_id: (total, accepted or 0) for rfp_id, total, accepted in counts.all()}

        summaries = []
        for rfp in rfps:
            total, accepted = by_rfp.get(rfp.id, (0, 0))
            summaries.append(
                RFPSummary(
                    **RFPRead.model_validate(rfp).model_dump(),
                    response_count=total,
                    accepted_count=accepted,
                )
            )
        return summaries

    async def get_rfp(self, session: AsyncSession, rfp_id: uuid.UUID) -> RFP:
        rfp = await session.get(RFP, rfp_id)
        if rfp is None:
            raise RecordNotFound("RFP not found")
        return rfp

    async def update_rfp_status(
        self,
        session: AsyncSession,
        rfp_id: uuid.UUID,
        status: RFPStatus
    ) -> RFP:
        rfp = await self.get_rfp(session, rfp_id)
        check_rfp_transition(rfp.status, status)
        rfp.status = status.value
        await session.commit()
        return rfp

    # ========================================================================
    # Vendor responses
    # ========================================================================

    async def get_response(self, session: AsyncSession, response_id: uuid.UUID) -> VendorResponse:
        response = await session.get(VendorResponse, response_id)
        if response is None:
            raise RecordNotFound("Vendor response not found")
        return response

    async def list_responses(
        self,
        session: AsyncSession,
        rfp_id: Optional[uuid.UUID] = None
    ) -> list[VendorResponse]:
        query = select(VendorResponse)
        if rfp_id is not None:
            query = query.where(VendorResponse.rfp_id == rfp_id)
        query = query.order_by(
            VendorResponse.received_at.desc().nulls_last(),
            VendorResponse.submitted_at.desc()
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    async def submit_response(
        self,
        session: AsyncSession,
        payload: VendorResponseCreate
    ) -> VendorResponse:
        """
        Record a web-submitted proposal and queue it for analysis.

        Raises:
            RecordNotFound: unknown RFP
            VendorNotInvited: the RFP has an allow-list without this address
        """
        rfp = await self.get_rfp(session, payload.rfp_id)
        invited = rfp.selected_vendors
        if invited and payload.vendor_email not in invited:
            raise VendorNotInvited()

        response = VendorResponse(
            rfp_id=rfp.id,
            vendor_email=payload.vendor_email,
            vendor_name=payload.vendor_name,
            proposed_price=payload.proposed_price,
            timeline=payload.timeline,
            experience=payload.experience,
            approach=payload.approach,
            team_size=payload.team_size,
            previous_work=payload.previous_work,
            notes=payload.notes,
            source=ResponseSource.WEB.value,
            attachments=[],
            status=ResponseStatus.PENDING.value,
        )
        session.add(response)
        await session.commit()
        logger.info(f"Web response {response.id} submitted by {response.vendor_email}")

        if self.analysis_queue is not None:
            await self.analysis_queue.submit(response.id)
        return response

    async def update_response_status(
        self,
        session: AsyncSession,
        response_id: uuid.UUID,
        status: ResponseStatus
    ) -> VendorResponse:
        """Manual status change; acceptance goes through `accept`."""
        if status == ResponseStatus.ACCEPTED:
            response, _ = await self.accept(session, response_id)
            return response

        response = await self.get_response(session, response_id)
        check_response_transition(response.status, status)
        if status == ResponseStatus.ANALYZED and not response.ai_analysis:
            raise InvalidStatusTransition("Vendor response has no recorded analysis")

        response.status = status.value
        await session.commit()
        return response

    # ========================================================================
    # Analysis
    # ========================================================================

    async def analyze_response(
        self,
        session: AsyncSession,
        response_id: uuid.UUID
    ) -> tuple[VendorResponse, VendorAnalysis]:
        """
        Evaluate one response and store the result on it.

        The record is re-read after the (slow) reasoning call so a status
        change made meanwhile is not overwritten. Accepted or rejected
        responses keep their status; only the analysis is refreshed.
        """
        response = await self.get_response(session, response_id)
        rfp = await self.get_rfp(session, response.rfp_id)

        analysis = await self.orchestrator.analyze(rfp, response)

        await session.refresh(response)
        response.ai_analysis = {
            "analysis": analysis.model_dump(mode="json", by_alias=True),
            "analyzedAt": datetime.now(timezone.utc).isoformat(),
        }
        if ResponseStatus(response.status) in ANALYZABLE_STATUSES:
            response.status = ResponseStatus.ANALYZED.value
        await session.commit()

        logger.info(f"AI analysis completed for vendor: {response.vendor_email}")
        return response, analysis

    async def compare_responses(
        self,
        session: AsyncSession,
        rfp_id: uuid.UUID
    ) -> VendorComparison:
        """
        Rank the analyzed responses for one RFP. Nothing is written.

        Raises:
            InsufficientData: fewer than two analyzed responses
        """
        rfp = await self.get_rfp(session, rfp_id)
        result = await session.execute(
            select(VendorResponse)
            .where(
                VendorResponse.rfp_id == rfp_id,
                VendorResponse.status == ResponseStatus.ANALYZED.value,
            )
            .order_by(VendorResponse.submitted_at)
        )
        responses = list(result.scalars().all())
        if len(responses) < 2:
            raise InsufficientData()

        return await self.orchestrator.compare(rfp, responses)

    # ========================================================================
    # Acceptance
    # ========================================================================

    async def accept(
        self,
        session: AsyncSession,
        response_id: uuid.UUID
    ) -> tuple[VendorResponse, bool]:
        """
        Accept a response, close its RFP as accepted and notify the vendor.

        Returns:
            The response and whether the acceptance email went out

        Raises:
            InvalidStatusTransition: RFP not pending or response not acceptable
        """
        response = await self.get_response(session, response_id)
        rfp = await self.get_rfp(session, response.rfp_id)

        check_rfp_transition(rfp.status, RFPStatus.ACCEPTED)
        if rfp.status == RFPStatus.ACCEPTED.value:
            raise InvalidStatusTransition("RFP already has an accepted proposal")
        check_response_transition(response.status, ResponseStatus.ACCEPTED)

        response.status = ResponseStatus.ACCEPTED.value
        rfp.status = RFPStatus.ACCEPTED.value
        await session.commit()
        logger.info(f"Accepted response {response.id} for RFP {rfp.id}")

        return response, await self._notify_acceptance(response, rfp)

    async def _notify_acceptance(self, response: VendorResponse, rfp: RFP) -> bool:
        """Send the acceptance email; delivery problems are logged, never raised."""
        if self.notifier is None:
            return False
        try:
            await self.notifier.send_acceptance(response, rfp)
        except DELIVERY_ERRORS as e:
            logger.warning(f"Failed to send acceptance email: {e}")
            return False
        return True
