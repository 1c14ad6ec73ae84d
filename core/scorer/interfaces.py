"""
Scorer Interface - Abstract base for scoring collaborators.

The pipeline talks to scoring only through this interface so that the HTTP
service client and any in-process scorer are interchangeable.
"""
import importlib
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from core.eligibility.models import ScholarshipRecord, StudentRecord
from core.scorer.models import MatchScore

logger = logging.getLogger(__name__)


class ScoringError(Exception):
    """Raised when a scorer cannot produce a MatchScore for a pair."""


class MatchScorer(ABC):
    """
    Abstract interface for match scorers.
    """

    @abstractmethod
    def score(self, student: StudentRecord, scholarship: ScholarshipRecord) -> MatchScore:
        """
        Score a pair that has already passed the hard filter.

        Raises:
            ScoringError: the pair could not be scored
        """
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass


def load_scorer(class_path: str, options: Optional[Dict[str, Any]] = None) -> MatchScorer:
    """Instantiate a scorer from a ``"module.path:ClassName"`` string."""
    if ':' not in class_path:
        raise ValueError(f"Invalid scorer class path (expected 'module:Class'): {class_path}")

    module_path, class_name = class_path.split(':', 1)
    module = importlib.import_module(module_path)
    scorer_class = getattr(module, class_name, None)
    if scorer_class is None:
        raise ValueError(f"Scorer class {class_name} not found in {module_path}")
    if not (isinstance(scorer_class, type) and issubclass(scorer_class, MatchScorer)):
        raise ValueError(f"{class_path} is not a MatchScorer")

    logger.info(f"Loaded scorer {class_path}")
    return scorer_class(**(options or {}))
