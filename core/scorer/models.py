#!/usr/bin/env python3
"""
Scoring Models - Result contract of the scoring collaborator.

The matching pipeline never computes these values itself: it receives one
MatchScore per eligible pair and persists it verbatim.
"""

from enum import Enum
from typing import Dict, Any

from pydantic import BaseModel, ConfigDict, Field


class PriorityTier(str, Enum):
    """Ordered by urgency, most urgent first."""
    MUST_APPLY = "MUST_APPLY"
    SHOULD_APPLY = "SHOULD_APPLY"
    HIGH_VALUE_REACH = "HIGH_VALUE_REACH"
    IF_TIME_PERMITS = "IF_TIME_PERMITS"


class SuccessTier(str, Enum):
    STRONG_MATCH = "STRONG_MATCH"
    COMPETITIVE_MATCH = "COMPETITIVE_MATCH"
    REACH = "REACH"
    LONG_SHOT = "LONG_SHOT"


class StrategicValueTier(str, Enum):
    BEST_BET = "BEST_BET"
    HIGH_VALUE = "HIGH_VALUE"
    MEDIUM_VALUE = "MEDIUM_VALUE"
    LOW_VALUE = "LOW_VALUE"


class EffortLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class MatchScore(BaseModel):
    """Full score breakdown for one eligible (student, scholarship) pair."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    overall_match_score: float = Field(ge=0, le=100, alias="overallMatchScore")

    academic_score: float = Field(default=0.0, ge=0, le=100, alias="academicScore")
    demographic_score: float = Field(default=0.0, ge=0, le=100, alias="demographicScore")
    major_field_score: float = Field(default=0.0, ge=0, le=100, alias="majorFieldScore")
    experience_score: float = Field(default=0.0, ge=0, le=100, alias="experienceScore")
    financial_score: float = Field(default=0.0, ge=0, le=100, alias="financialScore")
    special_criteria_score: float = Field(default=0.0, ge=0, le=100, alias="specialCriteriaScore")

    success_probability: float = Field(default=0.0, ge=0, le=100, alias="successProbability")
    success_tier: SuccessTier = Field(default=SuccessTier.LONG_SHOT, alias="successTier")
    competition_factor: float = Field(default=1.0, alias="competitionFactor")

    strategic_value: float = Field(default=0.0, alias="strategicValue")
    application_effort: EffortLevel = Field(default=EffortLevel.MEDIUM, alias="applicationEffort")
    effort_breakdown: Dict[str, Any] = Field(default_factory=dict, alias="effortBreakdown")
    strategic_value_tier: StrategicValueTier = Field(default=StrategicValueTier.LOW_VALUE, alias="strategicValueTier")

    priority_tier: PriorityTier = Field(alias="priorityTier")
