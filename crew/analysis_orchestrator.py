"""
RFP Intake - Analysis Orchestration

Turns stored RFP and vendor response records into reasoning requests, runs
them through the CrewAI agents and validates what comes back.

The orchestrator has no persistence of its own. Callers decide whether a
result is written back (background analysis) or only returned (comparison).
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from pydantic import ValidationError

from config.settings import Settings
from database.models import RFP, VendorResponse
from schemas.analysis import VendorAnalysis, VendorComparison
from services.errors import AnalysisFailure, AnalysisUnavailable, InsufficientData

logger = logging.getLogger("rfp_intake.crew")

BODY_EXCERPT_LIMIT = 2000
MIN_COMPARISON_RESPONSES = 2
NOT_SPECIFIED = "Not specified"


class Reasoner(Protocol):
    """Blocking reasoning backend; both calls return the parsed JSON object."""

    def analyze(self, request: str) -> dict: ...

    def compare(self, request: str) -> dict: ...


class CrewReasoner:
    """Runs the vendor analysis and comparison agents on the configured LLM."""

    def __init__(self, app_settings: Settings):
        # crewai is heavy to import; only pulled in once a provider is configured
        from agents import get_llm

        self.llm = get_llm(app_settings)

    def analyze(self, request: str) -> dict:
        from agents import analyze_vendor_response

        return analyze_vendor_response(request, self.llm)

    def compare(self, request: str) -> dict:
        from agents import compare_vendor_responses

        return compare_vendor_responses(request, self.llm)


# ============================================================================
# Request builders
# ============================================================================

def _money(value: Optional[float]) -> str:
    if value is None:
        return NOT_SPECIFIED
    if float(value).is_integer():
        return f"${value:,.0f}"
    return f"${value:,.2f}"


def _or_default(value, default: str = NOT_SPECIFIED) -> str:
    if value is None or value == "":
        return default
    return str(value)


def _deadline(rfp: RFP) -> str:
    return rfp.deadline.strftime("%m/%d/%Y") if rfp.deadline else NOT_SPECIFIED


def summarize_attachments(attachments: Optional[list[dict]]) -> str:
    """One line listing each attachment as `name (mime, X.XX KB)`."""
    if not attachments:
        return "No attachments"
    return ", ".join(
        f"{item.get('filename')} ({item.get('mimetype')}, {(item.get('size') or 0) / 1024:.2f} KB)"
        for item in attachments
    )


def build_analysis_request(rfp: RFP, response: VendorResponse) -> str:
    """Format the RFP and one vendor response for the analysis agent."""
    if response.email_body:
        body = response.email_body[:BODY_EXCERPT_LIMIT]
    else:
        body = response.approach or "N/A"

    return f"""RFP DETAILS:
- Project Title: {rfp.project_title}
- Budget: {_money(rfp.budget)}
- Deadline: {_deadline(rfp)}
- Requirements: {rfp.requirements}
- Description: {rfp.project_description}

VENDOR RESPONSE:
- Vendor Name: {response.vendor_name}
- Vendor Email: {response.vendor_email}
- Proposed Price: {_money(response.proposed_price)}
- Estimated Timeline: {_or_default(response.timeline)}
- Experience: {_or_default(response.experience)}
- Team Size: {_or_default(response.team_size)}
- Previous Work: {_or_default(response.previous_work)}
- Attachments: {summarize_attachments(response.attachments)}

EMAIL CONTENT:
- Subject: {_or_default(response.email_subject, "N/A")}
- Body: {body}"""


def build_comparison_request(rfp: RFP, responses: Sequence[VendorResponse]) -> str:
    """Format the RFP and a summary block per analyzed response."""
    blocks = []
    for index, response in enumerate(responses, start=1):
        analysis = (response.ai_analysis or {}).get("analysis") or {}
        strengths = analysis.get("strengths") or []
        blocks.append(
            f"""VENDOR {index}: {response.vendor_email}
- Score: {_or_default(analysis.get("score"), "N/A")}
- Price: {_money(response.proposed_price)}
- Timeline: {_or_default(response.timeline)}
- Recommendation: {_or_default(analysis.get("recommendation"), "Not analyzed")}
- Key Strengths: {", ".join(strengths) if strengths else "N/A"}"""
        )

    vendor_summaries = "\n\n".join(blocks)
    return f"""RFP DETAILS:
- Project Title: {rfp.project_title}
- Budget: {_money(rfp.budget)}
- Deadline: {_deadline(rfp)}
- Requirements: {rfp.requirements}

VENDOR RESPONSES:
{vendor_summaries}"""


# ============================================================================
# Orchestrator
# ============================================================================

class AnalysisOrchestrator:
    """
    Single-response evaluation and multi-vendor comparison.

    The reasoner is blocking (CrewAI runs synchronously), so each call is
    pushed to a worker thread.
    """

    def __init__(self, app_settings: Settings, reasoner: Optional[Reasoner] = None):
        self.settings = app_settings
        self._reasoner = reasoner

    @property
    def available(self) -> bool:
        return self._reasoner is not None or self.settings.analysis_configured

    def _get_reasoner(self) -> Reasoner:
        if not self.available:
            raise AnalysisUnavailable(
                f"No API key configured for LLM provider {self.settings.llm_provider.value}"
            )
        if self._reasoner is None:
            try:
                self._reasoner = CrewReasoner(self.settings)
            except Exception as e:
                raise AnalysisFailure(f"Could not initialize LLM provider: {e}") from e
        return self._reasoner

    async def analyze(self, rfp: RFP, response: VendorResponse) -> VendorAnalysis:
        """
        Evaluate one vendor response.

        Raises:
            AnalysisUnavailable: no reasoning provider configured
            AnalysisFailure: the provider call failed or returned invalid output
        """
        reasoner = self._get_reasoner()
        request = build_analysis_request(rfp, response)

        logger.info(f"Analyzing response {response.id} from {response.vendor_email}")
        try:
            raw = await asyncio.to_thread(reasoner.analyze, request)
        except Exception as e:
            raise AnalysisFailure(f"Failed to analyze vendor response: {e}") from e

        try:
            analysis = VendorAnalysis.model_validate(raw)
        except ValidationError as e:
            raise AnalysisFailure(f"Analysis output failed validation: {e}") from e

        logger.info(
            f"Response {response.id} scored {analysis.score} "
            f"({analysis.recommendation.value})"
        )
        return analysis

    async def compare(
        self,
        rfp: RFP,
        responses: Sequence[VendorResponse]
    ) -> VendorComparison:
        """
        Rank analyzed vendor responses for one RFP.

        Raises:
            InsufficientData: fewer than two responses
            AnalysisUnavailable: no reasoning provider configured
            AnalysisFailure: the provider call failed or returned invalid output
        """
        if len(responses) < MIN_COMPARISON_RESPONSES:
            raise InsufficientData()

        reasoner = self._get_reasoner()
        request = build_comparison_request(rfp, responses)

        logger.info(f"Comparing {len(responses)} responses for RFP {rfp.id}")
        try:
            raw = await asyncio.to_thread(reasoner.compare, request)
        except Exception as e:
            raise AnalysisFailure(f"Failed to compare vendors: {e}") from e

        try:
            return VendorComparison.model_validate(raw)
        except ValidationError as e:
            raise AnalysisFailure(f"Comparison output failed validation: {e}") from e
