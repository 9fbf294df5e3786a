"""
RFP Intake - Agents Package

CrewAI agents for vendor response evaluation and comparison.
"""

from agents.base import get_llm, validate_json_output
from agents.vendor_analysis_agent import (
    create_vendor_analysis_agent,
    create_vendor_analysis_task,
    analyze_vendor_response
)
from agents.vendor_comparison_agent import (
    create_vendor_comparison_agent,
    create_vendor_comparison_task,
    compare_vendor_responses
)

__all__ = [
    # Base
    "get_llm",
    "validate_json_output",
    # Vendor Analysis
    "create_vendor_analysis_agent",
    "create_vendor_analysis_task",
    "analyze_vendor_response",
    # Vendor Comparison
    "create_vendor_comparison_agent",
    "create_vendor_comparison_task",
    "compare_vendor_responses",
]
