"""
Sender Resolution

Attributes an inbound sender address to the RFP that invited it.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import RFP, RFPVendor
from schemas.rfp import normalize_email

logger = logging.getLogger("rfp_intake.services.resolver")


class SenderResolver:
    """
    Finds the most recently created RFP that lists a sender as an invited vendor.

    Matching is exact on the normalized address; there is no domain or
    substring matching. RFPs with an empty allow-list never match here.
    """

    async def resolve(self, session: AsyncSession, sender: Optional[str]) -> Optional[RFP]:
        address = normalize_email(sender)
        if not address:
            return None

        result = await session.execute(
            select(RFP)
            .join(RFPVendor, RFPVendor.rfp_id == RFP.id)
            .where(RFPVendor.vendor_email == address)
            .order_by(RFP.created_at.desc())
            .limit(1)
        )
        rfp = result.scalar_one_or_none()

        if rfp is None:
            logger.debug(f"No RFP found where {address} is a vendor")
        return rfp
