"""
Vendor Analysis Agent

Evaluates a single vendor response against the RFP it answers: score,
recommendation, strengths and concerns, budget/timeline/risk narratives and
a structured breakdown of what the vendor offers.
"""

from crewai import Agent, Task, LLM

from agents.base import AGENT_VERBOSE, validate_json_output


VENDOR_ANALYSIS_PROMPT = """You are an expert procurement analyst. Analyze vendor responses
to RFPs and provide detailed, objective assessments.

IMPORTANT: You must output ONLY valid JSON. No explanatory text before or after the JSON."""

REQUIRED_KEYS = [
    "score",
    "recommendation",
    "strengths",
    "weaknesses",
    "budgetAnalysis",
    "timelineAnalysis",
    "riskAssessment",
    "keyInsights",
]


def create_vendor_analysis_agent(llm: LLM) -> Agent:
    """Create the Vendor Analysis Agent."""
    return Agent(
        role="Procurement Analyst",
        goal="Assess how well a vendor proposal fits the RFP it responds to",
        backstory=VENDOR_ANALYSIS_PROMPT,
        llm=llm,
        verbose=AGENT_VERBOSE,
        allow_delegation=False
    )


def create_vendor_analysis_task(agent: Agent, request: str) -> Task:
    """
    Create the single-response evaluation task.

    Args:
        agent: The Vendor Analysis Agent
        request: RFP and vendor response details, already formatted
    """
    return Task(
        description=f"""Analyze this vendor response to an RFP and provide a detailed, structured assessment.

{request}

Please analyze this vendor response comprehensively and provide:

1. Overall Score (0-100): Rate the vendor's suitability based on:
   - Pricing competitiveness (vs RFP budget)
   - Timeline feasibility (vs deadline)
   - Experience and qualifications
   - Proposal completeness and quality
   - Communication clarity

2. Strengths: List 2-4 key strengths of this proposal (be specific)

3. Weaknesses/Concerns: List 2-4 potential concerns or areas of improvement

4. Budget Analysis:
   - Compare proposed price with RFP budget
   - Assess if price is competitive, fair, or concerning
   - Note if price is missing

5. Timeline Analysis:
   - Assess if timeline can meet the deadline
   - Note any timeline concerns
   - Mention if timeline is missing

6. Risk Assessment:
   - Identify potential risks (experience gaps, budget concerns, timeline issues)
   - Rate risk level: Low, Medium, or High

7. Recommendation: Based on analysis, recommend one of:
   - "Highly Recommended" - Excellent fit, minimal concerns
   - "Recommended" - Good fit, minor concerns
   - "Consider with Caution" - Some concerns that need addressing
   - "Not Recommended" - Significant concerns or poor fit

8. Key Insights: 2-3 sentence executive summary

9. Structured Details: Parse and structure the key information for display:
   - Extract core competencies mentioned
   - Identify specific deliverables promised
   - Note any special terms or conditions
   - Highlight unique selling points

Format your response as JSON with this EXACT structure:
{{
    "score": 85,
    "recommendation": "Highly Recommended",
    "strengths": ["Specific strength 1", "Specific strength 2", "Specific strength 3"],
    "weaknesses": ["Specific concern 1", "Specific concern 2"],
    "budgetAnalysis": "Detailed comparison of proposed price vs RFP budget",
    "timelineAnalysis": "Detailed assessment of timeline vs deadline",
    "riskAssessment": "Detailed risk analysis with risk level",
    "riskLevel": "Low/Medium/High",
    "keyInsights": "Executive summary in 2-3 sentences",
    "structuredDetails": {{
        "coreCompetencies": ["competency1", "competency2"],
        "deliverables": ["deliverable1", "deliverable2"],
        "specialTerms": "Any special terms or conditions mentioned",
        "uniqueSellingPoints": ["USP1", "USP2"]
    }}
}}""",
        expected_output="A valid JSON object containing the vendor assessment",
        agent=agent
    )


def analyze_vendor_response(request: str, llm: LLM) -> dict:
    """
    Evaluate one vendor response.

    Args:
        request: Formatted RFP and vendor response details
        llm: LLM the agent runs on

    Returns:
        Assessment as a dict with camelCase keys
    """
    agent = create_vendor_analysis_agent(llm)
    task = create_vendor_analysis_task(agent, request)

    result = agent.execute_task(task)

    return validate_json_output(result, REQUIRED_KEYS)
