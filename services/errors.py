"""
Service Errors

Failure conditions raised by the intake pipeline. A sender that matches no
RFP and a field heuristic that finds nothing are not errors; they come back
as None.
"""


class IntakeError(Exception):
    """Base class for pipeline failures."""

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or self.__class__.__name__
        super().__init__(self.message)


class MailboxConnectionError(IntakeError):
    """Mailbox unreachable, login rejected, or search failed."""


class MessageParseError(IntakeError):
    """A fetched message could not be parsed."""


class AttachmentPersistenceError(IntakeError):
    """An attachment could not be written to the content store."""


class AttachmentAccessDenied(IntakeError):
    """Attachment key resolves outside the attachments root."""


class AttachmentNotFound(IntakeError):
    """Attachment not found."""


class AnalysisUnavailable(IntakeError):
    """No reasoning provider is configured."""


class AnalysisFailure(IntakeError):
    """The reasoning provider failed or returned unusable output."""


class InsufficientData(IntakeError):
    """At least 2 analyzed vendor responses are required for comparison."""


class VendorNotInvited(IntakeError):
    """Vendor not invited to respond to this RFP."""


class InvalidStatusTransition(IntakeError):
    """Status change not allowed from the current state."""


class NotificationUnavailable(IntakeError):
    """No outbound mail transport is configured."""


class RecordNotFound(IntakeError):
    """Record not found."""
