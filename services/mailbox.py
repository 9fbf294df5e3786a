"""
Mailbox Client

Thin async wrapper around `imaplib` plus a parser turning raw RFC 822 bytes
into a ParsedMail. imaplib is blocking, so every protocol call is pushed to a
worker thread with asyncio.to_thread; calls on one client are sequential.
"""

import asyncio
import email.errors
import imaplib
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime
from html.parser import HTMLParser
from typing import Any, Callable, Optional

from config.settings import Settings
from schemas.sync import InboxStats
from services.errors import MailboxConnectionError, MessageParseError

logger = logging.getLogger("rfp_intake.services.mailbox")

SEEN_FLAG = "\\Seen"

# IMAP dates are always English month abbreviations, independent of locale
_IMAP_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def imap_date(value: date) -> str:
    """Format a date for SEARCH SINCE (e.g. 05-Mar-2025)."""
    return f"{value.day:02d}-{_IMAP_MONTHS[value.month - 1]}-{value.year}"


# ============================================================================
# Parsed message model
# ============================================================================

@dataclass
class MailAttachment:
    filename: Optional[str]
    content_type: str
    content: bytes


@dataclass
class ParsedMail:
    """The parts of a message the pipeline reads."""
    subject: str = ""
    from_address: Optional[str] = None
    from_name: Optional[str] = None
    date: Optional[datetime] = None
    text: str = ""
    html: str = ""
    attachments: list[MailAttachment] = field(default_factory=list)


@dataclass
class FetchedMessage:
    """Raw bytes and flags for one message, as returned by FETCH."""
    message_id: str
    raw: bytes
    flags: tuple[str, ...] = ()

    @property
    def is_seen(self) -> bool:
        return SEEN_FLAG in self.flags


class _HTMLTextExtractor(HTMLParser):
    """Collects visible text from an HTML body."""

    def __init__(self):
        super().__init__()
        self._chunks: list[str] = []
        self._skip = 0

    def handle_starttag(self, tag, attrs):
        if tag in ("script", "style"):
            self._skip += 1
        elif tag in ("br", "p", "div", "tr", "li"):
            self._chunks.append("\n")

    def handle_endtag(self, tag):
        if tag in ("script", "style") and self._skip:
            self._skip -= 1

    def handle_data(self, data):
        if not self._skip:
            self._chunks.append(data)

    def text(self) -> str:
        lines = (line.strip() for line in "".join(self._chunks).splitlines())
        return "\n".join(line for line in lines if line)


def html_to_text(html: str) -> str:
    extractor = _HTMLTextExtractor()
    extractor.feed(html)
    extractor.close()
    return extractor.text()


def _body_content(message: EmailMessage, subtype: str) -> str:
    part = message.get_body(preferencelist=(subtype,))
    if part is None:
        return ""
    return part.get_content()


def parse_message(raw: bytes) -> ParsedMail:
    """
    Parse raw message bytes.

    Raises:
        MessageParseError: the bytes are empty or the MIME structure or
            charsets cannot be decoded
    """
    if not raw:
        raise MessageParseError("Empty message body")

    try:
        message = BytesParser(policy=policy.default).parsebytes(raw)

        from_name, from_address = None, None
        senders = getaddresses([str(message.get("from", ""))])
        if senders and senders[0][1]:
            from_name, from_address = senders[0]

        # A malformed Date header may fail on access or on conversion
        try:
            date_header = message.get("date")
            received = parsedate_to_datetime(str(date_header)) if date_header else None
        except (TypeError, ValueError):
            received = None

        html = _body_content(message, "html")
        text = _body_content(message, "plain") or (html_to_text(html) if html else "")

        attachments = [
            MailAttachment(
                filename=part.get_filename(),
                content_type=part.get_content_type(),
                content=part.get_payload(decode=True) or b"",
            )
            for part in message.iter_attachments()
        ]
    except (email.errors.MessageError, LookupError, ValueError, TypeError, AttributeError) as e:
        raise MessageParseError(f"Could not parse message: {e}") from e

    return ParsedMail(
        subject=str(message.get("subject", "") or ""),
        from_address=from_address or None,
        from_name=from_name or None,
        date=received,
        text=text,
        html=html,
        attachments=attachments,
    )


def parse_fetch_response(message_id: str, data: list[Any]) -> FetchedMessage:
    """Split a FETCH (FLAGS RFC822) response into raw bytes and flags."""
    raw = b""
    meta = b""
    for item in data:
        if isinstance(item, tuple):
            meta += item[0]
            raw = item[1]
        elif isinstance(item, bytes):
            meta += item
    flags = tuple(flag.decode() for flag in imaplib.ParseFlags(meta))
    return FetchedMessage(message_id=message_id, raw=raw, flags=flags)


# ============================================================================
# Client
# ============================================================================

ImapFactory = Callable[[Settings], Any]


def default_imap_factory(app_settings: Settings) -> imaplib.IMAP4:
    if app_settings.imap_use_ssl:
        return imaplib.IMAP4_SSL(
            app_settings.imap_host,
            app_settings.imap_port,
            timeout=app_settings.imap_timeout,
        )
    return imaplib.IMAP4(
        app_settings.imap_host,
        app_settings.imap_port,
        timeout=app_settings.imap_timeout,
    )


class MailboxClient:
    """
    One IMAP session against the configured mailbox.

    Usage:
        async with MailboxClient(settings).session() as mailbox:
            ids = await mailbox.search_since(since)
    """

    def __init__(self, app_settings: Settings, imap_factory: Optional[ImapFactory] = None):
        self.settings = app_settings
        self._imap_factory = imap_factory or default_imap_factory
        self._conn = None
        self.message_count = 0

    async def open(self, readonly: bool = False) -> int:
        """
        Connect, log in and select the mailbox.

        Returns:
            Number of messages in the mailbox
        """
        if not self.settings.mailbox_configured:
            raise MailboxConnectionError("IMAP credentials are not configured")

        try:
            self._conn = await asyncio.to_thread(self._imap_factory, self.settings)
            await asyncio.to_thread(
                self._conn.login, self.settings.imap_user, self.settings.imap_password
            )
            typ, data = await asyncio.to_thread(
                self._conn.select, self.settings.imap_mailbox, readonly
            )
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxConnectionError(f"IMAP connection failed: {e}") from e

        if typ != "OK":
            raise MailboxConnectionError(
                f"Could not open mailbox {self.settings.imap_mailbox}: {data}"
            )
        logger.info(
            f"Opened {self.settings.imap_mailbox} on {self.settings.imap_host} "
            f"({'read-only' if readonly else 'read-write'})"
        )
        self.message_count = int(data[0] or 0)
        return self.message_count

    async def close(self) -> None:
        """Log out; failures here are logged, never raised."""
        if self._conn is None:
            return
        try:
            await asyncio.to_thread(self._conn.logout)
        except (imaplib.IMAP4.error, OSError) as e:
            logger.warning(f"IMAP logout failed: {e}")
        finally:
            self._conn = None
            logger.info("IMAP connection ended")

    @asynccontextmanager
    async def session(self, readonly: bool = False):
        try:
            await self.open(readonly)
            yield self
        finally:
            await self.close()

    async def search_since(self, since: date) -> list[str]:
        """Message numbers received on or after `since`."""
        try:
            typ, data = await asyncio.to_thread(
                self._conn.search, None, "SINCE", imap_date(since)
            )
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxConnectionError(f"IMAP search failed: {e}") from e

        if typ != "OK":
            raise MailboxConnectionError(f"IMAP search failed: {data}")
        if not data or not data[0]:
            return []
        return [num.decode() for num in data[0].split()]

    async def fetch(self, message_id: str) -> FetchedMessage:
        """
        Fetch one message with its flags.

        Raises:
            MessageParseError: the server returned no usable data for it
            MailboxConnectionError: the session itself broke
        """
        try:
            typ, data = await asyncio.to_thread(
                self._conn.fetch, message_id, "(FLAGS RFC822)"
            )
        except imaplib.IMAP4.abort as e:
            raise MailboxConnectionError(f"IMAP connection aborted: {e}") from e
        except imaplib.IMAP4.error as e:
            raise MessageParseError(f"Fetch of message {message_id} failed: {e}") from e
        except OSError as e:
            raise MailboxConnectionError(f"IMAP fetch of message {message_id} failed: {e}") from e

        if typ != "OK" or not data:
            raise MessageParseError(f"Fetch of message {message_id} returned {typ}")
        return parse_fetch_response(message_id, data)

    async def stats(self) -> InboxStats:
        """Counters for the selected mailbox; does not change any flags."""
        try:
            _, recent = await asyncio.to_thread(self._conn.response, "RECENT")
            typ, unseen = await asyncio.to_thread(self._conn.search, None, "UNSEEN")
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxConnectionError(f"IMAP status failed: {e}") from e

        new = int(recent[0]) if recent and recent[0] else 0
        unseen_count = len(unseen[0].split()) if typ == "OK" and unseen and unseen[0] else 0
        return InboxStats(total=self.message_count, new=new, unseen=unseen_count)
