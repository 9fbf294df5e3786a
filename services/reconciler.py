"""
Response Reconciliation

Decides whether an inbound email is a new proposal, a read-flag update to an
existing one, or a duplicate, keyed on (rfp, vendor address, subject).
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import VendorResponse
from schemas.rfp import normalize_email
from schemas.vendor_response import ExtractedFields, ResponseSource, ResponseStatus
from services.content_store import AttachmentStore
from services.mailbox import MailAttachment

logger = logging.getLogger("rfp_intake.services.reconciler")

EMAIL_HTML_LIMIT = 5000


class ReconcileAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class InboundProposal:
    """A vendor email already attributed to an RFP, with extracted fields."""
    vendor_email: str
    vendor_name: str
    subject: str
    body: str = ""
    html: str = ""
    received_at: Optional[datetime] = None
    is_read: bool = False
    fields: ExtractedFields = field(default_factory=ExtractedFields)
    attachments: list[MailAttachment] = field(default_factory=list)

    def __post_init__(self):
        self.vendor_email = normalize_email(self.vendor_email)


@dataclass
class ReconcileResult:
    action: ReconcileAction
    response: VendorResponse


class ResponseReconciler:
    """
    Create-or-update for mailbox-sourced proposals.

    Attachments are written only when a new record is created, so re-syncing
    an already ingested message never stores its files again. New records are
    handed to the analysis queue after commit; the queue is not awaited for
    results.
    """

    def __init__(self, store: AttachmentStore, analysis_queue=None):
        self.store = store
        self.analysis_queue = analysis_queue

    async def find_existing(
        self,
        session: AsyncSession,
        rfp_id: uuid.UUID,
        vendor_email: str,
        subject: str
    ) -> Optional[VendorResponse]:
        result = await session.execute(
            select(VendorResponse).where(
                VendorResponse.rfp_id == rfp_id,
                VendorResponse.vendor_email == normalize_email(vendor_email),
                VendorResponse.email_subject == subject,
            )
        )
        return result.scalar_one_or_none()

    async def _sync_read_flag(
        self,
        session: AsyncSession,
        existing: VendorResponse,
        is_read: bool
    ) -> ReconcileResult:
        if existing.is_read != is_read:
            existing.is_read = is_read
            await session.commit()
            logger.info(f"Updated read status for {existing.vendor_email}: {is_read}")
            return ReconcileResult(ReconcileAction.UPDATED, existing)

        logger.info(f"Response from {existing.vendor_email} already exists")
        return ReconcileResult(ReconcileAction.UNCHANGED, existing)

    async def reconcile(
        self,
        session: AsyncSession,
        rfp_id: uuid.UUID,
        inbound: InboundProposal
    ) -> ReconcileResult:
        existing = await self.find_existing(
            session, rfp_id, inbound.vendor_email, inbound.subject
        )
        if existing is not None:
            return await self._sync_read_flag(session, existing, inbound.is_read)

        attachments = await self.store.save_all(inbound.attachments)

        response = VendorResponse(
            rfp_id=rfp_id,
            vendor_email=inbound.vendor_email,
            vendor_name=inbound.vendor_name or inbound.vendor_email,
            proposed_price=inbound.fields.proposed_price,
            timeline=inbound.fields.timeline,
            experience=inbound.fields.experience,
            team_size=inbound.fields.team_size,
            approach=inbound.fields.approach,
            notes=f"Email received: {inbound.subject}",
            email_subject=inbound.subject,
            email_body=inbound.body,
            email_html=(inbound.html or "")[:EMAIL_HTML_LIMIT],
            received_at=inbound.received_at,
            is_read=inbound.is_read,
            source=ResponseSource.EMAIL.value,
            attachments=[attachment.model_dump() for attachment in attachments],
            status=ResponseStatus.PENDING.value,
        )
        session.add(response)

        try:
            await session.commit()
        except IntegrityError:
            # Another run inserted the same (rfp, vendor, subject) first
            await session.rollback()
            self.store.discard(attachment.path for attachment in attachments)
            existing = await self.find_existing(
                session, rfp_id, inbound.vendor_email, inbound.subject
            )
            if existing is None:
                raise
            return await self._sync_read_flag(session, existing, inbound.is_read)

        logger.info(f"Created vendor response {response.id} from {response.vendor_email}")

        if self.analysis_queue is not None:
            await self.analysis_queue.submit(response.id)

        return ReconcileResult(ReconcileAction.CREATED, response)
