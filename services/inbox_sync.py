"""
Inbox Synchronization

Polls the shared mailbox and turns vendor replies into VendorResponse records.

Each run:
1. Opens a read-write IMAP session and searches the trailing window
2. Fetches and parses every message in mailbox order
3. Resolves the sender to an RFP (unknown senders are skipped)
4. Extracts proposal fields and reconciles against existing records
5. Returns a SyncSummary once every message has been handled

Per-message failures are counted and logged; only mailbox connection or
search failures abort the run.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from config.settings import Settings
from schemas.sync import InboxStats, SyncedEmail, SyncSummary
from services.errors import MessageParseError
from services.extraction import extract_fields
from services.mailbox import MailboxClient, parse_message
from services.reconciler import (
    InboundProposal,
    ReconcileAction,
    ResponseReconciler,
)
from services.resolver import SenderResolver

logger = logging.getLogger("rfp_intake.services.inbox_sync")


MailboxFactory = Callable[[Settings], MailboxClient]


class InboxSynchronizer:
    """Drives one mailbox pass through resolution, extraction and reconciliation."""

    def __init__(
        self,
        app_settings: Settings,
        session_factory: async_sessionmaker,
        reconciler: ResponseReconciler,
        resolver: Optional[SenderResolver] = None,
        mailbox_factory: Optional[MailboxFactory] = None
    ):
        self.settings = app_settings
        self.session_factory = session_factory
        self.reconciler = reconciler
        self.resolver = resolver or SenderResolver()
        self.mailbox_factory = mailbox_factory or MailboxClient

    def window_start(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(days=self.settings.sync_window_days)

    async def run(self) -> SyncSummary:
        """
        Run one sync pass.

        Raises:
            MailboxConnectionError: mailbox unreachable, login or search failed
        """
        summary = SyncSummary()
        mailbox = self.mailbox_factory(self.settings)

        async with mailbox.session(readonly=False):
            message_ids = await mailbox.search_since(self.window_start().date())
            logger.info(f"Found {len(message_ids)} message(s) in the last {self.settings.sync_window_days} days")

            for message_id in message_ids:
                await self._process_message(mailbox, message_id, summary)

        logger.info(
            f"Sync finished: processed={summary.processed} created={summary.created} "
            f"updated={summary.updated} errors={summary.errors}"
        )
        return summary

    async def stats(self) -> InboxStats:
        """Total/new/unseen counts from a read-only session."""
        mailbox = self.mailbox_factory(self.settings)
        async with mailbox.session(readonly=True):
            return await mailbox.stats()

    async def _process_message(
        self,
        mailbox: MailboxClient,
        message_id: str,
        summary: SyncSummary
    ) -> None:
        try:
            fetched = await mailbox.fetch(message_id)
            mail = parse_message(fetched.raw)
        except MessageParseError as e:
            logger.error(f"Error parsing message {message_id}: {e.message}")
            summary.errors += 1
            return

        summary.processed += 1

        if not mail.from_address:
            logger.info(f"Message {message_id} has no sender address, skipping")
            return

        logger.info(f"Processing email from: {mail.from_address} | Subject: {mail.subject}")

        try:
            async with self.session_factory() as session:
                rfp = await self.resolver.resolve(session, mail.from_address)
                if rfp is None:
                    logger.info(f"No RFP found where {mail.from_address} is a vendor")
                    return

                logger.info(f"Found RFP: {rfp.id} - {rfp.project_title}")

                inbound = InboundProposal(
                    vendor_email=mail.from_address,
                    vendor_name=mail.from_name or mail.from_address,
                    subject=mail.subject,
                    body=mail.text,
                    html=mail.html,
                    received_at=mail.date,
                    is_read=fetched.is_seen,
                    fields=extract_fields(mail.text),
                    attachments=mail.attachments,
                )
                result = await self.reconciler.reconcile(session, rfp.id, inbound)
        except Exception as e:
            logger.exception(f"Error processing email from {mail.from_address}: {e}")
            summary.errors += 1
            return

        if result.action == ReconcileAction.CREATED:
            summary.created += 1
            summary.emails.append(
                SyncedEmail(
                    sender=inbound.vendor_email,
                    subject=mail.subject,
                    rfp_id=str(rfp.id),
                )
            )
        elif result.action == ReconcileAction.UPDATED:
            summary.updated += 1
