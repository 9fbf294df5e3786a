"""
RFP and vendor response lifecycle: creation, status state machines, analysis
write-back, comparison and acceptance.
"""

import smtplib
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from crew.analysis_orchestrator import AnalysisOrchestrator
from schemas.rfp import RFPCreate, RFPStatus
from schemas.vendor_response import ResponseStatus, VendorResponseCreate
from services.errors import (
    AnalysisFailure,
    InsufficientData,
    InvalidStatusTransition,
    RecordNotFound,
    VendorNotInvited,
)
from services.notifications import Notifier
from services.proposals import (
    ProposalService,
    check_response_transition,
    check_rfp_transition,
)
from tests.conftest import (
    FakeReasoner,
    RecordingQueue,
    SmtpRecorder,
    add_response,
    add_rfp,
    analysis_output,
    make_settings,
)


def rfp_payload(**overrides) -> RFPCreate:
    values = {
        "company_name": "Acme Corp",
        "contact_person": "Jordan Lee",
        "email": "Procurement@Acme.example",
        "project_title": "Website Redesign",
        "project_description": "Rebuild the public marketing site",
        "budget": 50000,
        "deadline": date.today() + timedelta(days=30),
        "requirements": "Responsive design",
        "selected_vendors": ["First@Vendor.example", "second@vendor.example", "first@vendor.example"],
    }
    values.update(overrides)
    return RFPCreate(**values)


class HeaderRejectingNotifier(Notifier):
    async def send(self, to, subject, html_body, text_body):
        raise ValueError("Header values may not contain linefeed or carriage return characters")


@pytest.fixture
def smtp():
    return SmtpRecorder()


@pytest.fixture
def reasoner():
    return FakeReasoner()


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def mail_settings(tmp_path):
    return make_settings(
        tmp_path,
        smtp_host="smtp.example.com",
        smtp_from="rfp@acme.example",
        smtp_user="rfp@acme.example",
        smtp_password="secret",
        vendor_emails="directory-a@vendor.example, directory-b@vendor.example",
    )


@pytest.fixture
def proposals(mail_settings, smtp, reasoner, queue):
    return ProposalService(
        AnalysisOrchestrator(mail_settings, reasoner),
        Notifier(mail_settings, smtp),
        queue,
    )


@pytest.mark.unit
class TestTransitions:

    @pytest.mark.parametrize("current, target", [
        ("pending", RFPStatus.CLOSED),
        ("pending", RFPStatus.ACCEPTED),
        ("closed", RFPStatus.PENDING),
        ("closed", RFPStatus.CLOSED),
    ])
    def test_allowed_rfp_moves(self, current, target):
        check_rfp_transition(current, target)

    @pytest.mark.parametrize("current, target", [
        ("accepted", RFPStatus.PENDING),
        ("accepted", RFPStatus.CLOSED),
        ("closed", RFPStatus.ACCEPTED),
    ])
    def test_rejected_rfp_moves(self, current, target):
        with pytest.raises(InvalidStatusTransition):
            check_rfp_transition(current, target)

    @pytest.mark.parametrize("current, target", [
        ("pending", ResponseStatus.ANALYZED),
        ("pending", ResponseStatus.REJECTED),
        ("analyzed", ResponseStatus.ACCEPTED),
        ("analyzed", ResponseStatus.REJECTED),
    ])
    def test_allowed_response_moves(self, current, target):
        check_response_transition(current, target)

    @pytest.mark.parametrize("current, target", [
        ("rejected", ResponseStatus.ACCEPTED),
        ("rejected", ResponseStatus.PENDING),
        ("accepted", ResponseStatus.REJECTED),
        ("analyzed", ResponseStatus.PENDING),
    ])
    def test_rejected_response_moves(self, current, target):
        with pytest.raises(InvalidStatusTransition):
            check_response_transition(current, target)


@pytest.mark.integration
class TestRFPs:

    async def test_create_rfp_invites_selected_vendors(self, db, proposals, smtp):
        rfp = await proposals.create_rfp(db, rfp_payload())

        assert rfp.status == "pending"
        assert rfp.email == "procurement@acme.example"
        assert rfp.selected_vendors == ["first@vendor.example", "second@vendor.example"]

        [message] = smtp.messages
        assert message["To"] == "first@vendor.example, second@vendor.example"
        assert message["Subject"] == "New RFP Submission: Website Redesign"
        assert smtp.connections[0].started_tls
        assert smtp.connections[0].logged_in == ("rfp@acme.example", "secret")

    async def test_open_rfp_invites_vendor_directory(self, db, proposals, smtp):
        rfp = await proposals.create_rfp(db, rfp_payload(selected_vendors=[]))

        assert rfp.selected_vendors == []
        assert smtp.messages[0]["To"] == "directory-a@vendor.example, directory-b@vendor.example"

    async def test_invitation_failure_keeps_rfp(self, db, mail_settings, reasoner):
        proposals = ProposalService(
            AnalysisOrchestrator(mail_settings, reasoner),
            Notifier(mail_settings, SmtpRecorder(fail=smtplib.SMTPServerDisconnected("gone"))),
        )

        rfp = await proposals.create_rfp(db, rfp_payload())

        assert (await proposals.get_rfp(db, rfp.id)).project_title == "Website Redesign"

    async def test_multiline_title_stays_in_subject(self, db, proposals, smtp):
        rfp = await proposals.create_rfp(db, rfp_payload(project_title="A\r\nBcc: x@evil.example"))

        assert (await proposals.get_rfp(db, rfp.id)).id == rfp.id
        [message] = smtp.messages
        assert message["Subject"] == "New RFP Submission: A Bcc: x@evil.example"
        assert message["Bcc"] is None

    async def test_create_without_smtp(self, db, app_settings, reasoner):
        proposals = ProposalService(
            AnalysisOrchestrator(app_settings, reasoner),
            Notifier(app_settings),
        )

        rfp = await proposals.create_rfp(db, rfp_payload())

        assert rfp.id is not None

    async def test_list_rfps_with_counts(self, db, proposals):
        older = await add_rfp(db, vendors=["a@vendor.example"], project_title="Older")
        newer = await add_rfp(db, project_title="Newer")
        await add_response(db, older, "a@vendor.example")
        await add_response(db, older, "b@vendor.example", status="accepted")

        summaries = await proposals.list_rfps(db)

        assert [summary.project_title for summary in summaries] == ["Newer", "Older"]
        assert (summaries[0].id, summaries[0].response_count, summaries[0].accepted_count) == (newer.id, 0, 0)
        assert (summaries[1].response_count, summaries[1].accepted_count) == (2, 1)
        assert summaries[1].selected_vendors == ["a@vendor.example"]

    async def test_get_missing_rfp(self, db, proposals):
        with pytest.raises(RecordNotFound):
            await proposals.get_rfp(db, uuid.uuid4())

    async def test_close_and_reopen(self, db, proposals):
        rfp = await add_rfp(db)

        await proposals.update_rfp_status(db, rfp.id, RFPStatus.CLOSED)
        reopened = await proposals.update_rfp_status(db, rfp.id, RFPStatus.PENDING)

        assert reopened.status == "pending"

    async def test_accepted_rfp_is_final(self, db, proposals):
        rfp = await add_rfp(db, status="accepted")

        with pytest.raises(InvalidStatusTransition):
            await proposals.update_rfp_status(db, rfp.id, RFPStatus.PENDING)


@pytest.mark.integration
class TestSubmission:

    async def test_invited_vendor(self, db, proposals, queue):
        rfp = await add_rfp(db, vendors=["vendor@agency.example"])

        response = await proposals.submit_response(db, VendorResponseCreate(
            rfp_id=rfp.id,
            vendor_email="Vendor@Agency.example",
            vendor_name="Agency",
            proposed_price=42000,
            approach="Two-week sprints",
        ))

        assert response.source == "web"
        assert response.status == "pending"
        assert response.vendor_email == "vendor@agency.example"
        assert queue.submitted == [response.id]

    async def test_uninvited_vendor(self, db, proposals, queue):
        rfp = await add_rfp(db, vendors=["vendor@agency.example"])

        with pytest.raises(VendorNotInvited):
            await proposals.submit_response(db, VendorResponseCreate(
                rfp_id=rfp.id, vendor_email="other@agency.example", vendor_name="Other"
            ))
        assert queue.submitted == []

    async def test_open_rfp_accepts_anyone(self, db, proposals):
        rfp = await add_rfp(db)

        response = await proposals.submit_response(db, VendorResponseCreate(
            rfp_id=rfp.id, vendor_email="anyone@vendor.example", vendor_name="Anyone"
        ))

        assert response.rfp_id == rfp.id

    async def test_list_responses_newest_received_first(self, db, proposals):
        rfp = await add_rfp(db)
        other = await add_rfp(db)
        web = await add_response(db, rfp, "web@vendor.example")
        early = await add_response(db, rfp, "early@vendor.example", received_at=datetime(2025, 3, 1, tzinfo=timezone.utc))
        late = await add_response(db, rfp, "late@vendor.example", received_at=datetime(2025, 3, 4, tzinfo=timezone.utc))
        await add_response(db, other, "elsewhere@vendor.example")

        responses = await proposals.list_responses(db, rfp.id)

        assert [response.id for response in responses] == [late.id, early.id, web.id]
        assert len(await proposals.list_responses(db)) == 4


@pytest.mark.integration
class TestAnalysis:

    async def test_analysis_is_written_back(self, db, proposals):
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        updated, analysis = await proposals.analyze_response(db, response.id)

        assert updated.status == "analyzed"
        assert updated.ai_analysis["analysis"]["score"] == analysis.score == 82
        assert updated.ai_analysis["analysis"]["riskLevel"] == "Medium"
        assert "analyzedAt" in updated.ai_analysis

    async def test_reanalysis_keeps_terminal_status(self, db, proposals):
        rfp = await add_rfp(db)
        response = await add_response(db, rfp, status="accepted")

        updated, _ = await proposals.analyze_response(db, response.id)

        assert updated.status == "accepted"
        assert updated.ai_analysis is not None

    async def test_failed_analysis_leaves_record(self, db, mail_settings):
        proposals = ProposalService(
            AnalysisOrchestrator(mail_settings, FakeReasoner(analysis_output(score=-5)))
        )
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        with pytest.raises(AnalysisFailure):
            await proposals.analyze_response(db, response.id)

        stored = await proposals.get_response(db, response.id)
        assert stored.status == "pending"
        assert stored.ai_analysis is None

    async def test_compare_uses_only_analyzed(self, db, proposals, reasoner):
        rfp = await add_rfp(db)
        first = await add_response(db, rfp, "first@vendor.example")
        await add_response(db, rfp, "second@vendor.example")
        await proposals.analyze_response(db, first.id)

        with pytest.raises(InsufficientData):
            await proposals.compare_responses(db, rfp.id)
        assert reasoner.compare_requests == []

    async def test_compare(self, db, proposals, reasoner):
        rfp = await add_rfp(db)
        for address in ("first@vendor.example", "second@vendor.example"):
            response = await add_response(db, rfp, address)
            await proposals.analyze_response(db, response.id)

        comparison = await proposals.compare_responses(db, rfp.id)

        assert comparison.rankings[0].vendor_email == "first@vendor.example"
        assert "VENDOR 2: second@vendor.example" in reasoner.compare_requests[0]


@pytest.mark.integration
class TestAcceptance:

    async def test_accept_flips_both_and_notifies(self, db, proposals, smtp):
        rfp = await add_rfp(db)
        response = await add_response(db, rfp, status="analyzed")

        accepted, notified = await proposals.accept(db, response.id)

        assert accepted.status == "accepted"
        assert (await proposals.get_rfp(db, rfp.id)).status == "accepted"
        assert notified
        assert smtp.messages[-1]["To"] == "vendor@agency.example"
        assert smtp.messages[-1]["Subject"] == "Your Proposal Has Been Accepted: Website Redesign"

    async def test_second_acceptance_is_refused(self, db, proposals):
        rfp = await add_rfp(db)
        first = await add_response(db, rfp, "first@vendor.example")
        second = await add_response(db, rfp, "second@vendor.example")
        await proposals.accept(db, first.id)

        with pytest.raises(InvalidStatusTransition):
            await proposals.accept(db, second.id)
        assert (await proposals.get_response(db, second.id)).status == "pending"

    async def test_rejected_response_cannot_be_accepted(self, db, proposals):
        rfp = await add_rfp(db)
        response = await add_response(db, rfp, status="rejected")

        with pytest.raises(InvalidStatusTransition):
            await proposals.accept(db, response.id)
        assert (await proposals.get_rfp(db, rfp.id)).status == "pending"

    async def test_closed_rfp_cannot_accept(self, db, proposals):
        rfp = await add_rfp(db, status="closed")
        response = await add_response(db, rfp)

        with pytest.raises(InvalidStatusTransition):
            await proposals.accept(db, response.id)

    async def test_notification_failure_keeps_acceptance(self, db, mail_settings, reasoner):
        proposals = ProposalService(
            AnalysisOrchestrator(mail_settings, reasoner),
            Notifier(mail_settings, SmtpRecorder(fail=ConnectionRefusedError("no smtp"))),
        )
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        accepted, notified = await proposals.accept(db, response.id)

        assert accepted.status == "accepted"
        assert not notified

    async def test_multiline_title_keeps_acceptance(self, db, proposals, smtp):
        rfp = await add_rfp(db, project_title="Website\nRedesign")
        response = await add_response(db, rfp)

        accepted, notified = await proposals.accept(db, response.id)

        assert accepted.status == "accepted"
        assert notified
        assert smtp.messages[-1]["Subject"] == "Your Proposal Has Been Accepted: Website Redesign"

    async def test_rejected_header_keeps_acceptance(self, db, mail_settings, reasoner):
        proposals = ProposalService(AnalysisOrchestrator(mail_settings, reasoner), HeaderRejectingNotifier(mail_settings))
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        accepted, notified = await proposals.accept(db, response.id)

        assert accepted.status == "accepted"
        assert (await proposals.get_rfp(db, rfp.id)).status == "accepted"
        assert not notified

    async def test_unconfigured_smtp(self, db, app_settings, reasoner):
        proposals = ProposalService(AnalysisOrchestrator(app_settings, reasoner), Notifier(app_settings))
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        _, notified = await proposals.accept(db, response.id)

        assert not notified

    async def test_status_update_to_accepted_uses_accept(self, db, proposals, smtp):
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        updated = await proposals.update_response_status(db, response.id, ResponseStatus.ACCEPTED)

        assert updated.status == "accepted"
        assert (await proposals.get_rfp(db, rfp.id)).status == "accepted"
        assert len(smtp.messages) == 1

    async def test_reject_then_accept_is_refused(self, db, proposals):
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        await proposals.update_response_status(db, response.id, ResponseStatus.REJECTED)

        with pytest.raises(InvalidStatusTransition):
            await proposals.update_response_status(db, response.id, ResponseStatus.ACCEPTED)

    async def test_analyzed_requires_an_analysis(self, db, proposals):
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        with pytest.raises(InvalidStatusTransition):
            await proposals.update_response_status(db, response.id, ResponseStatus.ANALYZED)
