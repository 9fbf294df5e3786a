"""
RFP Intake - Services Package

Mailbox ingestion pipeline: parsing, sender resolution, field extraction,
attachment storage and reconciliation. The lifecycle and notification
services (services.proposals, services.notifications) are imported from
their modules directly.
"""

from services.errors import (
    IntakeError,
    MailboxConnectionError,
    MessageParseError,
    AttachmentPersistenceError,
    AttachmentAccessDenied,
    AttachmentNotFound,
    AnalysisUnavailable,
    AnalysisFailure,
    InsufficientData,
    VendorNotInvited,
    InvalidStatusTransition,
    NotificationUnavailable,
    RecordNotFound,
)
from services.extraction import extract_fields
from services.mailbox import MailboxClient, parse_message
from services.content_store import AttachmentStore
from services.resolver import SenderResolver
from services.reconciler import ResponseReconciler, InboundProposal, ReconcileAction
from services.inbox_sync import InboxSynchronizer

__all__ = [
    # Errors
    "IntakeError",
    "MailboxConnectionError",
    "MessageParseError",
    "AttachmentPersistenceError",
    "AttachmentAccessDenied",
    "AttachmentNotFound",
    "AnalysisUnavailable",
    "AnalysisFailure",
    "InsufficientData",
    "VendorNotInvited",
    "InvalidStatusTransition",
    "NotificationUnavailable",
    "RecordNotFound",
    # Pipeline
    "extract_fields",
    "MailboxClient",
    "parse_message",
    "AttachmentStore",
    "SenderResolver",
    "ResponseReconciler",
    "InboundProposal",
    "ReconcileAction",
    "InboxSynchronizer",
]
