#!/usr/bin/env python3
"""
Scoring Module - Stage 2 boundary: the external scoring collaborator.

Public API:
- MatchScore: full score breakdown for one eligible pair
- PriorityTier: ordered tier classification (MUST_APPLY first)
- MatchScorer: interface every scorer implements
- ScoringServiceClient: HTTP implementation
- load_scorer: plug in a scorer class by "module:Class" path

Modules:
- models.py: MatchScore and classification enums
- interfaces.py: MatchScorer, ScoringError, load_scorer
- client.py: ScoringServiceClient
"""

from core.scorer.client import ScoringServiceClient
from core.scorer.interfaces import MatchScorer, ScoringError, load_scorer
from core.scorer.models import (
    EffortLevel,
    MatchScore,
    PriorityTier,
    StrategicValueTier,
    SuccessTier,
)

__all__ = [
    'EffortLevel',
    'MatchScore',
    'MatchScorer',
    'PriorityTier',
    'ScoringError',
    'ScoringServiceClient',
    'StrategicValueTier',
    'SuccessTier',
    'load_scorer',
]
