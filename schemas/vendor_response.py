"""
Vendor Response Schemas

Proposal records, their attachment descriptors, and the partial proposal the
field extractor pulls out of an email body.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.rfp import normalize_email


class ResponseStatus(str, Enum):
    """Vendor response lifecycle status."""
    PENDING = "pending"
    ANALYZED = "analyzed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ResponseSource(str, Enum):
    WEB = "web"
    EMAIL = "email"


class Attachment(BaseModel):
    """A persisted attachment; `path` is the content-store key."""
    filename: str
    path: str
    mimetype: str = "application/octet-stream"
    size: int = 0


class ExtractedFields(BaseModel):
    """Best-effort proposal fields pulled from free email text."""
    proposed_price: Optional[float] = None
    timeline: Optional[str] = None
    experience: Optional[str] = None
    team_size: Optional[int] = None
    approach: Optional[str] = None


class VendorResponseCreate(BaseModel):
    """Web-submitted proposal (JSON body, no file upload)."""
    rfp_id: uuid.UUID
    vendor_email: str = Field(..., min_length=3)
    vendor_name: str = Field(..., min_length=1)
    proposed_price: Optional[float] = Field(default=None, ge=0)
    timeline: Optional[str] = None
    experience: Optional[str] = None
    approach: Optional[str] = None
    team_size: Optional[int] = Field(default=None, ge=0)
    previous_work: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("vendor_email")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_email(value)


class VendorResponseRead(BaseModel):
    """Vendor response as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    rfp_id: uuid.UUID
    vendor_email: str
    vendor_name: str
    proposed_price: Optional[float] = None
    timeline: Optional[str] = None
    experience: Optional[str] = None
    approach: Optional[str] = None
    team_size: Optional[int] = None
    previous_work: Optional[str] = None
    notes: Optional[str] = None
    email_subject: Optional[str] = None
    email_body: Optional[str] = None
    received_at: Optional[datetime] = None
    is_read: bool = False
    source: str = ResponseSource.WEB.value
    attachments: list[Attachment] = Field(default_factory=list)
    ai_analysis: Optional[dict] = None
    status: ResponseStatus
    submitted_at: Optional[datetime] = None


class ResponseStatusUpdate(BaseModel):
    status: ResponseStatus
