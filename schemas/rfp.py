"""
RFP Schemas

Request/response models for the RFP boundary.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RFPStatus(str, Enum):
    """RFP lifecycle status."""
    PENDING = "pending"
    CLOSED = "closed"
    ACCEPTED = "accepted"


def normalize_email(value: Optional[str]) -> str:
    """Lower-case and trim an address for identity comparisons."""
    return (value or "").strip().lower()


class RFPCreate(BaseModel):
    """Payload for creating an RFP."""
    company_name: str = Field(..., min_length=1, description="Issuing company")
    contact_person: str = Field(..., min_length=1, description="Contact person")
    email: Optional[str] = Field(default=None, description="Contact email")
    phone: Optional[str] = Field(default=None, description="Contact phone")
    project_title: str = Field(..., min_length=1, description="Project title")
    project_description: str = Field(..., description="Project description")
    budget: float = Field(..., ge=0, description="Budget amount")
    deadline: date = Field(..., description="Proposal deadline")
    requirements: str = Field(..., description="Requirements text")
    selected_vendors: list[str] = Field(
        default_factory=list,
        description="Invited vendor addresses; empty means open to all"
    )

    @field_validator("email")
    @classmethod
    def _normalize_contact(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) or None

    @field_validator("selected_vendors")
    @classmethod
    def _normalize_vendors(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for address in value:
            normalized = normalize_email(address)
            if normalized and normalized not in seen:
                seen.append(normalized)
        return seen


class RFPRead(BaseModel):
    """RFP as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    company_name: str
    contact_person: str
    email: Optional[str] = None
    phone: Optional[str] = None
    project_title: str
    project_description: str
    budget: float
    deadline: date
    requirements: str
    selected_vendors: list[str] = Field(default_factory=list)
    status: RFPStatus
    created_at: Optional[datetime] = None


class RFPSummary(RFPRead):
    """RFP list entry with its response counts."""
    response_count: int = 0
    accepted_count: int = 0


class RFPStatusUpdate(BaseModel):
    status: RFPStatus
