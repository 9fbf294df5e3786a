"""
Vendor Comparison Agent

Ranks the already-analyzed responses to one RFP and names the best overall,
best value and lowest risk options.
"""

from crewai import Agent, Task, LLM

from agents.base import AGENT_VERBOSE, validate_json_output


VENDOR_COMPARISON_PROMPT = """You are an expert procurement consultant. Compare vendor responses
objectively and provide clear recommendations.

IMPORTANT: You must output ONLY valid JSON. No explanatory text before or after the JSON."""

REQUIRED_KEYS = [
    "rankings",
    "bestOverall",
    "bestValue",
    "lowestRisk",
    "finalRecommendation",
]


def create_vendor_comparison_agent(llm: LLM) -> Agent:
    """Create the Vendor Comparison Agent."""
    return Agent(
        role="Procurement Consultant",
        goal="Rank competing vendor proposals and recommend the best choice",
        backstory=VENDOR_COMPARISON_PROMPT,
        llm=llm,
        verbose=AGENT_VERBOSE,
        allow_delegation=False
    )


def create_vendor_comparison_task(agent: Agent, request: str) -> Task:
    """
    Create the comparison task.

    Args:
        agent: The Vendor Comparison Agent
        request: RFP details followed by one summary block per vendor
    """
    return Task(
        description=f"""Compare these vendor responses for an RFP and provide a final recommendation.

{request}

Provide a comparative analysis with:
1. Rankings: Order vendors from best to worst with justification
2. Best Overall: Which vendor is the best choice and why?
3. Best Value: Which vendor offers the best value for money?
4. Lowest Risk: Which vendor has the lowest risk profile?
5. Final Recommendation: Your top recommendation with detailed reasoning
6. Alternative Options: Backup choices if the top choice falls through

Format as JSON:
{{
    "rankings": [
        {{"vendorEmail": "vendor@email.com", "rank": 1, "reason": "why ranked here"}}
    ],
    "bestOverall": "vendor@email.com",
    "bestValue": "vendor@email.com",
    "lowestRisk": "vendor@email.com",
    "finalRecommendation": "detailed recommendation",
    "alternatives": ["vendor2@email.com", "vendor3@email.com"]
}}""",
        expected_output="A valid JSON object containing the vendor rankings",
        agent=agent
    )


def compare_vendor_responses(request: str, llm: LLM) -> dict:
    """
    Rank analyzed vendor responses.

    Args:
        request: Formatted RFP details and vendor summaries
        llm: LLM the agent runs on

    Returns:
        Comparison as a dict with camelCase keys
    """
    agent = create_vendor_comparison_agent(llm)
    task = create_vendor_comparison_task(agent, request)

    result = agent.execute_task(task)

    return validate_json_output(result, REQUIRED_KEYS)
