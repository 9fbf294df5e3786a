"""
Outbound Notifications

Sends RFP invitations and acceptance notices over SMTP.

smtplib is blocking, so each send runs in a worker thread. Callers treat every
notification as best effort: a missing transport raises
NotificationUnavailable and delivery errors propagate as smtplib/OS errors for
the caller to log.
"""

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional, Sequence

from config.settings import Settings
from database.models import RFP, VendorResponse
from services.errors import NotificationUnavailable

logger = logging.getLogger("rfp_intake.services.notifications")

# Errors a caller should log and move past; EmailMessage raises ValueError
# for header values it refuses
DELIVERY_ERRORS = (NotificationUnavailable, smtplib.SMTPException, OSError, ValueError)


def header_value(value: str) -> str:
    """Fold a value onto one line so it cannot inject extra headers."""
    return " ".join(value.split())


# ============================================================================
# Templates
# ============================================================================

def _money(value: Optional[float]) -> str:
    return f"${value:,.2f}" if value is not None else "Not specified"


def rfp_invitation(rfp: RFP) -> tuple[str, str, str]:
    """Returns (subject, html_body, text_body) for a new RFP invitation."""
    subject = f"New RFP Submission: {rfp.project_title}"
    deadline = rfp.deadline.strftime("%m/%d/%Y") if rfp.deadline else "Not specified"

    html_body = f"""
<h2>New RFP Submission Received</h2>
<p><strong>RFP ID:</strong> {rfp.id}</p>

<h3>Company Details</h3>
<p><strong>Company Name:</strong> {rfp.company_name}</p>
<p><strong>Contact Person:</strong> {rfp.contact_person}</p>
{f"<p><strong>Email:</strong> {rfp.email}</p>" if rfp.email else ""}
{f"<p><strong>Phone:</strong> {rfp.phone}</p>" if rfp.phone else ""}

<h3>Project Details</h3>
<p><strong>Project Title:</strong> {rfp.project_title}</p>
<p><strong>Description:</strong> {rfp.project_description}</p>
<p><strong>Budget:</strong> {_money(rfp.budget)}</p>
<p><strong>Deadline:</strong> {deadline}</p>
<p><strong>Requirements:</strong> {rfp.requirements}</p>

<p><strong>Please reply to this email with your proposal.</strong></p>
<p>Include your price, timeline, team size and relevant experience in the reply body.</p>
"""

    text_body = f"""New RFP Submission Received

RFP ID: {rfp.id}
Company: {rfp.company_name}
Contact: {rfp.contact_person}

Project Title: {rfp.project_title}
Description: {rfp.project_description}
Budget: {_money(rfp.budget)}
Deadline: {deadline}
Requirements: {rfp.requirements}

Please reply to this email with your proposal.
"""
    return subject, html_body, text_body


def acceptance_notice(response: VendorResponse, rfp: RFP) -> tuple[str, str, str]:
    """Returns (subject, html_body, text_body) telling a vendor they won."""
    subject = f"Your Proposal Has Been Accepted: {rfp.project_title}"

    score = ((response.ai_analysis or {}).get("analysis") or {}).get("score")

    proposal_lines = []
    if response.proposed_price is not None:
        proposal_lines.append(f"Proposed Price: {_money(response.proposed_price)}")
    if response.timeline:
        proposal_lines.append(f"Timeline: {response.timeline}")
    if response.team_size:
        proposal_lines.append(f"Team Size: {response.team_size} members")
    if score is not None:
        proposal_lines.append(f"Analysis Score: {score}/100")

    proposal_html = "\n".join(f"<p>{line}</p>" for line in proposal_lines)
    proposal_text = "\n".join(proposal_lines)

    html_body = f"""
<h2>Congratulations! Your Proposal Has Been Accepted</h2>
<p>Dear {response.vendor_name},</p>
<p>We are pleased to inform you that your proposal has been accepted for the following RFP:</p>

<h3>Project Details</h3>
<p><strong>Project Title:</strong> {rfp.project_title}</p>
<p><strong>Company:</strong> {rfp.company_name}</p>
<p><strong>Project Description:</strong> {rfp.project_description}</p>

<h3>Your Proposal</h3>
{proposal_html}

<p><strong>Next Steps:</strong> our team will contact you shortly to discuss the project details.</p>

<p>Best regards,<br>
{rfp.company_name}<br>
Contact: {rfp.contact_person}</p>
"""

    text_body = f"""Dear {response.vendor_name},

Your proposal has been accepted for {rfp.project_title} ({rfp.company_name}).

{proposal_text}

Our team will contact you shortly to discuss the project details.

Best regards,
{rfp.company_name}
Contact: {rfp.contact_person}
"""
    return subject, html_body, text_body


# ============================================================================
# Sender
# ============================================================================

SmtpFactory = Callable[[str, int], smtplib.SMTP]


class Notifier:
    """SMTP sender for vendor-facing notifications."""

    def __init__(self, app_settings: Settings, smtp_factory: Optional[SmtpFactory] = None):
        self.settings = app_settings
        self._smtp_factory = smtp_factory or smtplib.SMTP

    @property
    def configured(self) -> bool:
        return self.settings.smtp_configured

    def _send_sync(self, to: Sequence[str], subject: str, html_body: str, text_body: str) -> None:
        message = EmailMessage()
        message["Subject"] = header_value(subject)
        message["From"] = self.settings.smtp_from
        message["To"] = ", ".join(header_value(address) for address in to)
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")

        with self._smtp_factory(self.settings.smtp_host, self.settings.smtp_port) as server:
            if self.settings.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.settings.smtp_user and self.settings.smtp_password:
                server.login(self.settings.smtp_user, self.settings.smtp_password)
            server.send_message(message)

    async def send(self, to: Sequence[str], subject: str, html_body: str, text_body: str) -> None:
        """
        Deliver one message.

        Raises:
            NotificationUnavailable: SMTP is not configured
            smtplib.SMTPException / OSError: delivery failed
            ValueError: a header value was rejected
        """
        if not self.configured:
            raise NotificationUnavailable("SMTP is not configured")
        if not to:
            return

        await asyncio.to_thread(self._send_sync, list(to), subject, html_body, text_body)
        logger.info(f"Email sent to {', '.join(to)}: {subject}")

    async def send_rfp_invitation(self, rfp: RFP) -> None:
        """
        Invite vendors to reply with a proposal: the RFP's selected vendors,
        or the whole vendor directory for an open RFP.
        """
        vendors = rfp.selected_vendors or self.settings.vendor_directory
        if not vendors:
            logger.info(f"RFP {rfp.id} has no vendors to invite")
            return
        await self.send(vendors, *rfp_invitation(rfp))

    async def send_acceptance(self, response: VendorResponse, rfp: RFP) -> None:
        await self.send([response.vendor_email], *acceptance_notice(response, rfp))
