import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import select, or_

from core.eligibility.models import EligibilityCriteria, ScholarshipRecord
from database.models import Scholarship
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def to_scholarship_record(scholarship: Scholarship) -> ScholarshipRecord:
    """Convert an ORM row to a ScholarshipRecord.

    Raises:
        ValidationError: stored eligibility criteria do not match the schema
    """
    criteria = EligibilityCriteria.model_validate(scholarship.eligibility_criteria or {})
    return ScholarshipRecord(
        id=scholarship.id,
        name=scholarship.name,
        criteria=criteria,
        provider=scholarship.provider,
        award_amount=float(scholarship.award_amount) if scholarship.award_amount is not None else None,
        deadline=scholarship.deadline,
        website=scholarship.website,
    )


class ScholarshipRepository(BaseRepository):
    def get_by_id(self, scholarship_id: str) -> Optional[Scholarship]:
        stmt = select(Scholarship).where(Scholarship.id == scholarship_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_scholarships_for_matching(self, now: datetime, since: datetime) -> List[ScholarshipRecord]:
        """
        Verified scholarships whose deadline has not passed and that were
        created or updated at or after ``since``, ordered by id.

        Rows with malformed criteria are logged and left out.
        """
        stmt = (
            select(Scholarship)
            .where(
                Scholarship.verified.is_(True),
                Scholarship.deadline >= now,
                or_(Scholarship.created_at >= since, Scholarship.updated_at >= since),
            )
            .order_by(Scholarship.id)
        )

        records = []
        for scholarship in self.db.execute(stmt).scalars().all():
            try:
                records.append(to_scholarship_record(scholarship))
            except ValidationError as e:
                logger.error(f"Skipping scholarship {scholarship.id}: invalid eligibility criteria: {e}")
        return records
