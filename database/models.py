"""
Database Models

SQLAlchemy models for RFPs, their invited vendors, and vendor responses.
"""

import uuid
from datetime import datetime, date, timezone
from typing import Optional, List

from sqlalchemy import (
    String, Text, Integer, Float, Boolean, DateTime, Date, JSON, Uuid,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ============================================================================
# RFP MODELS
# ============================================================================

class RFP(Base):
    """A request for proposal and the vendors invited to answer it."""
    __tablename__ = "rfps"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    project_title: Mapped[str] = mapped_column(String(255), nullable=False)
    project_description: Mapped[str] = mapped_column(Text, nullable=False)
    budget: Mapped[float] = mapped_column(Float, nullable=False)
    deadline: Mapped[date] = mapped_column(Date, nullable=False)
    requirements: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow
    )

    # Relationships
    vendors: Mapped[List["RFPVendor"]] = relationship(
        back_populates="rfp",
        cascade="all, delete-orphan",
        order_by="RFPVendor.position",
        lazy="selectin"
    )
    responses: Mapped[List["VendorResponse"]] = relationship(
        back_populates="rfp",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_rfps_status", "status"),
        Index("idx_rfps_created", "created_at"),
    )

    @property
    def selected_vendors(self) -> list[str]:
        """Invited vendor addresses in invitation order (empty = open to all)."""
        return [vendor.vendor_email for vendor in self.vendors]


class RFPVendor(Base):
    """One invited vendor address on an RFP's allow-list."""
    __tablename__ = "rfp_vendors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    rfp_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("rfps.id", ondelete="CASCADE"),
        nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    vendor_email: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    rfp: Mapped["RFP"] = relationship(back_populates="vendors")

    __table_args__ = (
        UniqueConstraint("rfp_id", "vendor_email", name="uq_rfp_vendor"),
        Index("idx_rfp_vendors_email", "vendor_email"),
    )


# ============================================================================
# VENDOR RESPONSE MODELS
# ============================================================================

class VendorResponse(Base):
    """
    A vendor's proposal against one RFP.

    Created by the web submission endpoint or by the inbox synchronizer.
    Mailbox-sourced rows are unique per (rfp, vendor, subject).
    """
    __tablename__ = "vendor_responses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    rfp_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("rfps.id", ondelete="CASCADE"),
        nullable=False
    )
    vendor_email: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Extracted / submitted proposal fields
    proposed_price: Mapped[Optional[float]] = mapped_column(Float)
    timeline: Mapped[Optional[str]] = mapped_column(String(100))
    experience: Mapped[Optional[str]] = mapped_column(String(255))
    approach: Mapped[Optional[str]] = mapped_column(Text)
    team_size: Mapped[Optional[int]] = mapped_column(Integer)
    previous_work: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Raw email metadata
    email_subject: Mapped[Optional[str]] = mapped_column(String(998))
    email_body: Mapped[Optional[str]] = mapped_column(Text)
    email_html: Mapped[Optional[str]] = mapped_column(Text)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    source: Mapped[str] = mapped_column(String(20), default="web")

    attachments: Mapped[list] = mapped_column(JSONType, default=list)
    ai_analysis: Mapped[Optional[dict]] = mapped_column(JSONType)

    status: Mapped[str] = mapped_column(String(50), default="pending")
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow
    )

    # Relationships
    rfp: Mapped["RFP"] = relationship(back_populates="responses")

    __table_args__ = (
        UniqueConstraint(
            "rfp_id", "vendor_email", "email_subject",
            name="uq_response_rfp_vendor_subject"
        ),
        Index("idx_responses_rfp_vendor", "rfp_id", "vendor_email"),
        Index("idx_responses_status", "status"),
    )
