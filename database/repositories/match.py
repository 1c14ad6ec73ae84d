import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, update

from core.scorer.models import MatchScore, PriorityTier
from database.models import Match
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_PAIR_COLUMNS = ('student_id', 'scholarship_id')


@dataclass
class UpsertOutcome:
    match_id: uuid.UUID
    created: bool
    notified: bool = False
    notification_round: int = 0


def score_columns(score: MatchScore) -> Dict[str, Any]:
    """Flatten a MatchScore into Match column values."""
    return {
        'overall_match_score': score.overall_match_score,
        'academic_score': score.academic_score,
        'demographic_score': score.demographic_score,
        'major_field_score': score.major_field_score,
        'experience_score': score.experience_score,
        'financial_score': score.financial_score,
        'special_criteria_score': score.special_criteria_score,
        'success_probability': score.success_probability,
        'success_tier': score.success_tier.value,
        'competition_factor': score.competition_factor,
        'strategic_value': score.strategic_value,
        'application_effort': score.application_effort.value,
        'effort_breakdown': dict(score.effort_breakdown),
        'strategic_value_tier': score.strategic_value_tier.value,
        'priority_tier': score.priority_tier.value,
    }


class MatchRepository(BaseRepository):
    def get_match(self, student_id: str, scholarship_id: str) -> Optional[Match]:
        stmt = select(Match).where(
            Match.student_id == student_id,
            Match.scholarship_id == scholarship_id
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_id(self, match_id: uuid.UUID) -> Optional[Match]:
        stmt = select(Match).where(Match.id == match_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_matches_for_student(
        self,
        student_id: str,
        tiers: Optional[List[PriorityTier]] = None
    ) -> List[Match]:
        stmt = select(Match).where(Match.student_id == student_id)
        if tiers:
            stmt = stmt.where(Match.priority_tier.in_([t.value for t in tiers]))
        stmt = stmt.order_by(Match.overall_match_score.desc())
        return self.db.execute(stmt).scalars().all()

    def count_matches(self) -> int:
        return self.db.execute(select(func.count()).select_from(Match)).scalar_one()

    def _dialect_insert(self):
        dialect = self.dialect_name
        if dialect == 'postgresql':
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == 'sqlite':
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Match upsert not supported on dialect {dialect}")
        return insert

    def upsert_match(
        self,
        student_id: str,
        scholarship_id: str,
        score: MatchScore,
        calculated_at: datetime,
        notify_eligible: bool = True
    ) -> UpsertOutcome:
        """
        Insert or overwrite the match for a (student, scholarship) pair.

        Runs as a single INSERT ... ON CONFLICT DO UPDATE on the pair so
        concurrent writers resolve as last-writer-wins. When the new tier
        does not qualify for a notification, ``notified`` is cleared so a
        later re-qualification counts as a new transition. If the match had
        been notified, its notification_round moves on as well so the
        notification tracker treats the next qualification as a new event.
        """
        existing = self.db.execute(
            select(Match.notified, Match.notification_round).where(
                Match.student_id == student_id,
                Match.scholarship_id == scholarship_id
            )
        ).one_or_none()

        values = score_columns(score)
        values['calculated_at'] = calculated_at

        insert = self._dialect_insert()
        stmt = insert(Match).values(
            id=uuid.uuid4(),
            student_id=student_id,
            scholarship_id=scholarship_id,
            notified=False,
            notification_round=0,
            **values
        )
        update_values = {name: stmt.excluded[name] for name in values}
        if not notify_eligible:
            update_values['notified'] = False
            if existing is not None and existing.notified:
                update_values['notification_round'] = existing.notification_round + 1

        stmt = stmt.on_conflict_do_update(index_elements=list(_PAIR_COLUMNS), set_=update_values)
        self.db.execute(stmt)

        match_id, notified, notification_round = self.db.execute(
            select(Match.id, Match.notified, Match.notification_round).where(
                Match.student_id == student_id,
                Match.scholarship_id == scholarship_id
            )
        ).one()

        return UpsertOutcome(
            match_id=match_id,
            created=existing is None,
            notified=bool(notified),
            notification_round=notification_round,
        )

    def is_notified(self, match_id: uuid.UUID) -> bool:
        stmt = select(Match.notified).where(Match.id == match_id)
        return bool(self.db.execute(stmt).scalar_one_or_none())

    def mark_notified(self, match_id: uuid.UUID) -> None:
        self.db.execute(update(Match).where(Match.id == match_id).values(notified=True))
