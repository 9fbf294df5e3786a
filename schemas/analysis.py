"""
Analysis Schemas

Structured output expected from the reasoning provider for single-proposal
evaluation and multi-vendor comparison. Field names are camelCase on the wire
(what the model is asked to produce and what gets stored on the record) and
snake_case in Python.
"""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


MAX_LIST_ITEMS = 4


class Recommendation(str, Enum):
    """Ordinal recommendation scale, best first."""
    HIGHLY_RECOMMENDED = "Highly Recommended"
    RECOMMENDED = "Recommended"
    CONSIDER_WITH_CAUTION = "Consider with Caution"
    NOT_RECOMMENDED = "Not Recommended"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


_RISK_LEVEL_PATTERNS = [
    re.compile(r"risk\s*level\s*(?:is|:|-)?\s*(low|medium|high)", re.IGNORECASE),
    re.compile(r"\b(low|medium|high)\s+risk\b", re.IGNORECASE),
    re.compile(r"\brisk\b[^.]*?\b(low|medium|high)\b", re.IGNORECASE),
]


def infer_risk_level(text: Optional[str]) -> Optional[RiskLevel]:
    """Pull a Low/Medium/High level out of a free-text risk narrative."""
    if not text:
        return None
    for pattern in _RISK_LEVEL_PATTERNS:
        match = pattern.search(text)
        if match:
            return RiskLevel(match.group(1).capitalize())
    return None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StructuredDetails(_CamelModel):
    """Key facts parsed out of the proposal for display."""
    core_competencies: list[str] = Field(default_factory=list)
    deliverables: list[str] = Field(default_factory=list)
    special_terms: Optional[str] = None
    unique_selling_points: list[str] = Field(default_factory=list)

    @field_validator("special_terms", mode="before")
    @classmethod
    def _join_terms(cls, value: Any) -> Any:
        if isinstance(value, list):
            return "; ".join(str(item) for item in value)
        return value


class VendorAnalysis(_CamelModel):
    """Evaluation of one vendor response against its RFP."""
    score: int = Field(..., ge=0, le=100, description="Overall suitability 0-100")
    recommendation: Recommendation
    strengths: list[str] = Field(..., min_length=2)
    weaknesses: list[str] = Field(..., min_length=2)
    budget_analysis: str
    timeline_analysis: str
    risk_assessment: str
    risk_level: Optional[RiskLevel] = None
    key_insights: str
    structured_details: StructuredDetails = Field(default_factory=StructuredDetails)

    @field_validator("recommendation", mode="before")
    @classmethod
    def _match_recommendation(cls, value: Any) -> Any:
        if isinstance(value, str):
            wanted = " ".join(value.split()).lower()
            for option in Recommendation:
                if option.value.lower() == wanted:
                    return option
        return value

    @field_validator("risk_level", mode="before")
    @classmethod
    def _match_risk_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value

    @field_validator("strengths", "weaknesses")
    @classmethod
    def _cap_items(cls, value: list[str]) -> list[str]:
        return value[:MAX_LIST_ITEMS]

    @model_validator(mode="after")
    def _fill_risk_level(self) -> "VendorAnalysis":
        if self.risk_level is None:
            self.risk_level = infer_risk_level(self.risk_assessment)
        return self


class VendorRanking(_CamelModel):
    vendor_email: str
    rank: int = Field(..., ge=1)
    reason: str


class VendorComparison(_CamelModel):
    """Comparative ranking of the analyzed responses for one RFP."""
    rankings: list[VendorRanking] = Field(..., min_length=1)
    best_overall: str
    best_value: str
    lowest_risk: str
    final_recommendation: str
    alternatives: list[str] = Field(default_factory=list)

    @field_validator("rankings")
    @classmethod
    def _order_rankings(cls, value: list[VendorRanking]) -> list[VendorRanking]:
        return sorted(value, key=lambda ranking: ranking.rank)
