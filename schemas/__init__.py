"""
RFP Intake - Pydantic Schemas

Data models for RFPs, vendor responses, analysis output, and sync runs.
"""

from schemas.rfp import (
    RFPStatus,
    RFPCreate,
    RFPRead,
    RFPSummary,
    RFPStatusUpdate,
    normalize_email,
)
from schemas.vendor_response import (
    ResponseStatus,
    ResponseSource,
    Attachment,
    ExtractedFields,
    VendorResponseCreate,
    VendorResponseRead,
    ResponseStatusUpdate,
)
from schemas.analysis import (
    Recommendation,
    RiskLevel,
    StructuredDetails,
    VendorAnalysis,
    VendorRanking,
    VendorComparison,
    infer_risk_level,
)
from schemas.sync import (
    SyncedEmail,
    SyncSummary,
    InboxStats,
)

__all__ = [
    # RFP
    "RFPStatus",
    "RFPCreate",
    "RFPRead",
    "RFPSummary",
    "RFPStatusUpdate",
    "normalize_email",
    # Vendor responses
    "ResponseStatus",
    "ResponseSource",
    "Attachment",
    "ExtractedFields",
    "VendorResponseCreate",
    "VendorResponseRead",
    "ResponseStatusUpdate",
    # Analysis
    "Recommendation",
    "RiskLevel",
    "StructuredDetails",
    "VendorAnalysis",
    "VendorRanking",
    "VendorComparison",
    "infer_risk_level",
    # Sync
    "SyncedEmail",
    "SyncSummary",
    "InboxStats",
]
