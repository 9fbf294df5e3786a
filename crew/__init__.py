"""
RFP Intake - Crew Package

CrewAI orchestration for vendor response analysis and comparison.
"""

from crew.analysis_orchestrator import (
    AnalysisOrchestrator,
    CrewReasoner,
    build_analysis_request,
    build_comparison_request,
)

__all__ = [
    "AnalysisOrchestrator",
    "CrewReasoner",
    "build_analysis_request",
    "build_comparison_request",
]
