"""
Sync Schemas

Transient per-run summary of an inbox synchronization and mailbox counters.
"""

from pydantic import BaseModel, ConfigDict, Field


class SyncedEmail(BaseModel):
    """One proposal created during a sync run."""
    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(..., alias="from")
    subject: str = ""
    rfp_id: str = Field(..., alias="rfpId")


class SyncSummary(BaseModel):
    """Counters returned by a sync run. Never persisted."""
    processed: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    emails: list[SyncedEmail] = Field(default_factory=list)


class InboxStats(BaseModel):
    total: int = 0
    new: int = 0
    unseen: int = 0
