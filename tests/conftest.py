"""
Shared fixtures: a Settings value pointing at a throwaway SQLite database,
and in-memory stand-ins for the mailbox, the reasoning provider, SMTP and the
analysis queue.
"""

import imaplib
import sys
from datetime import date, datetime, timedelta, timezone
from email.message import EmailMessage
from email.utils import format_datetime
from pathlib import Path
from typing import Optional

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Settings
from database.connection import create_engine_for, create_session_factory, init_db
from database.models import RFP, RFPVendor, VendorResponse
from services.mailbox import MailboxClient


# ============================================================================
# Settings and database
# ============================================================================

def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'intake.db'}",
        "data_dir": tmp_path / "data",
        "openai_api_key": None,
        "anthropic_api_key": None,
        "google_api_key": None,
        "imap_user": "rfp-inbox@example.com",
        "imap_password": "app-password",
        "smtp_host": None,
        "smtp_from": None,
        "vendor_emails": "",
        "rate_limit_enabled": False,
        "api_env": "development",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def app_settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
async def session_factory(app_settings):
    engine = create_engine_for(app_settings.database_url)
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def add_rfp(session, vendors=(), **fields) -> RFP:
    values = {
        "company_name": "Acme Corp",
        "contact_person": "Jordan Lee",
        "email": "procurement@acme.example",
        "project_title": "Website Redesign",
        "project_description": "Rebuild the public marketing site",
        "budget": 50000.0,
        "deadline": date.today() + timedelta(days=30),
        "requirements": "Responsive design, CMS integration",
        "status": "pending",
    }
    values.update(fields)
    rfp = RFP(
        **values,
        vendors=[
            RFPVendor(position=position, vendor_email=address)
            for position, address in enumerate(vendors)
        ],
    )
    session.add(rfp)
    await session.commit()
    return rfp


async def add_response(session, rfp: RFP, vendor_email: str = "vendor@agency.example", **fields) -> VendorResponse:
    values = {
        "vendor_name": "Agency",
        "proposed_price": 42000.0,
        "timeline": "8 weeks",
        "status": "pending",
        "source": "web",
        "attachments": [],
    }
    values.update(fields)
    response = VendorResponse(rfp_id=rfp.id, vendor_email=vendor_email, **values)
    session.add(response)
    await session.commit()
    return response


# ============================================================================
# Mail
# ============================================================================

def build_email(
    sender: str = "Agency Team <vendor@agency.example>",
    subject: str = "Re: New RFP Submission: Website Redesign",
    body: str = "Price: $42,000\nTimeline: 8 weeks\nTeam size: 5\n",
    html: Optional[str] = None,
    attachments: tuple = (),
    sent_at: Optional[datetime] = None,
) -> bytes:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = "rfp-inbox@example.com"
    message["Subject"] = subject
    message["Date"] = format_datetime(sent_at or datetime.now(timezone.utc))
    message.set_content(body)
    if html is not None:
        message.add_alternative(html, subtype="html")
    for filename, maintype, subtype, content in attachments:
        message.add_attachment(content, maintype=maintype, subtype=subtype, filename=filename)
    return message.as_bytes()


class FakeImap:
    """In-memory imaplib connection holding (raw, flags) per message number."""

    def __init__(self, messages=None, recent: int = 0):
        self.messages: list[tuple[bytes, set]] = []
        for raw in messages or []:
            self.add(raw)
        self.recent = recent
        self.fail_login = False
        self.fail_search = False
        self.broken = set()
        self.fetch_error: Optional[Exception] = None
        self.readonly = None
        self.logged_out = False
        self.logins = 0

    def add(self, raw: bytes, seen: bool = False) -> str:
        self.messages.append((raw, {"\\Seen"} if seen else set()))
        return str(len(self.messages))

    def set_seen(self, num: str, seen: bool = True) -> None:
        flags = self.messages[int(num) - 1][1]
        if seen:
            flags.add("\\Seen")
        else:
            flags.discard("\\Seen")

    def login(self, user, password):
        if self.fail_login:
            raise imaplib.IMAP4.error("[AUTHENTICATIONFAILED] Invalid credentials")
        self.logins += 1
        return "OK", [b"Logged in"]

    def select(self, mailbox="INBOX", readonly=False):
        self.readonly = readonly
        return "OK", [str(len(self.messages)).encode()]

    def search(self, charset, *criteria):
        if self.fail_search:
            raise imaplib.IMAP4.error("SEARCH command error")
        numbers = [
            str(n) for n, (_, flags) in enumerate(self.messages, start=1)
            if criteria != ("UNSEEN",) or "\\Seen" not in flags
        ]
        return "OK", [" ".join(numbers).encode()]

    def fetch(self, num, parts):
        if self.fetch_error is not None:
            raise self.fetch_error
        if num in self.broken:
            return "NO", [None]
        raw, flags = self.messages[int(num) - 1]
        meta = f"{num} (FLAGS ({' '.join(sorted(flags))}) RFC822 {{{len(raw)}}}".encode()
        return "OK", [(meta, raw), b")"]

    def response(self, code):
        return code, [str(self.recent).encode()]

    def logout(self):
        self.logged_out = True
        return "BYE", [b"Logging out"]


def mailbox_factory_for(fake: FakeImap):
    """A mailbox_factory whose clients all talk to `fake`."""
    return lambda app_settings: MailboxClient(app_settings, imap_factory=lambda _: fake)


@pytest.fixture
def fake_imap():
    return FakeImap()


# ============================================================================
# Reasoning provider, SMTP and queue
# ============================================================================

def analysis_output(score: int = 82, **overrides) -> dict:
    output = {
        "score": score,
        "recommendation": "Recommended",
        "strengths": ["Relevant portfolio", "Competitive price"],
        "weaknesses": ["Small team", "Tight schedule"],
        "budgetAnalysis": "Within budget by 16%.",
        "timelineAnalysis": "Eight weeks fits the deadline.",
        "riskAssessment": "Overall risk level: Medium, mainly staffing.",
        "keyInsights": "Solid fit for the scope. Staffing is the main concern.",
        "structuredDetails": {
            "coreCompetencies": ["Web design", "CMS"],
            "deliverables": ["Design system", "Site build"],
            "specialTerms": "50% upfront",
            "uniqueSellingPoints": ["In-house accessibility audit"],
        },
    }
    output.update(overrides)
    return output


def comparison_output(*vendor_emails: str) -> dict:
    return {
        "rankings": [
            {"vendorEmail": email, "rank": rank, "reason": f"Ranked {rank}"}
            for rank, email in enumerate(vendor_emails, start=1)
        ],
        "bestOverall": vendor_emails[0],
        "bestValue": vendor_emails[-1],
        "lowestRisk": vendor_emails[0],
        "finalRecommendation": f"Award to {vendor_emails[0]}.",
        "alternatives": list(vendor_emails[1:]),
    }


class FakeReasoner:
    """Returns canned dicts and records every request it is given."""

    def __init__(self, analysis: Optional[dict] = None, comparison: Optional[dict] = None, error: Optional[Exception] = None):
        self.analysis = analysis or analysis_output()
        self.comparison = comparison
        self.error = error
        self.analyze_requests: list[str] = []
        self.compare_requests: list[str] = []

    def analyze(self, request: str) -> dict:
        self.analyze_requests.append(request)
        if self.error:
            raise self.error
        return self.analysis

    def compare(self, request: str) -> dict:
        self.compare_requests.append(request)
        if self.error:
            raise self.error
        return self.comparison or comparison_output("first@vendor.example", "second@vendor.example")


class RecordingQueue:
    """Analysis queue that only remembers what was submitted."""

    def __init__(self, *args):
        self.submitted = []

    async def submit(self, response_id):
        self.submitted.append(response_id)

    async def start(self):
        return None

    async def stop(self):
        return None


class FakeSMTP:
    """smtplib.SMTP stand-in; instances are kept in `FakeSMTP.sent`."""

    def __init__(self, host, port, fail: Optional[Exception] = None):
        self.host = host
        self.port = port
        self.fail = fail
        self.started_tls = False
        self.logged_in = None
        self.messages = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, message):
        if self.fail:
            raise self.fail
        self.messages.append(message)


class SmtpRecorder:
    """smtp_factory collecting every connection it opens."""

    def __init__(self, fail: Optional[Exception] = None):
        self.fail = fail
        self.connections: list[FakeSMTP] = []

    def __call__(self, host, port):
        connection = FakeSMTP(host, port, self.fail)
        self.connections.append(connection)
        return connection

    @property
    def messages(self):
        return [message for connection in self.connections for message in connection.messages]
