import logging
from typing import List, Optional

from sqlalchemy import select

from core.eligibility.models import (
    FinancialNeed,
    StudentProfile,
    StudentRecord,
    parse_awards_honors,
    parse_extracurriculars,
    parse_leadership_roles,
    parse_work_experience,
)
from database.models import Profile, Student
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def _financial_need(value: Optional[str]) -> Optional[FinancialNeed]:
    if not value:
        return None
    try:
        return FinancialNeed(value)
    except ValueError:
        logger.warning(f"Ignoring unknown financial need value: {value!r}")
        return None


def _string_list(value) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v]


def to_student_record(student: Student, profile: Profile) -> StudentRecord:
    """Convert ORM rows to a session-independent StudentRecord."""
    return StudentRecord(
        id=student.id,
        email=student.email,
        first_name=student.first_name,
        profile=StudentProfile(
            gpa=profile.gpa,
            gpa_scale=profile.gpa_scale,
            sat_score=profile.sat_score,
            act_score=profile.act_score,
            class_rank=profile.class_rank,
            class_size=profile.class_size,
            gender=profile.gender,
            ethnicity=_string_list(profile.ethnicity),
            date_of_birth=student.date_of_birth,
            state=profile.state,
            city=profile.city,
            intended_major=profile.intended_major,
            field_of_study=profile.field_of_study,
            career_goals=profile.career_goals,
            volunteer_hours=profile.volunteer_hours,
            extracurriculars=parse_extracurriculars(profile.extracurriculars),
            leadership_roles=parse_leadership_roles(profile.leadership_roles),
            work_experience=parse_work_experience(profile.work_experience),
            awards_honors=parse_awards_honors(profile.awards_honors),
            financial_need=_financial_need(profile.financial_need),
            efc_range=profile.efc_range,
            pell_grant_eligible=profile.pell_grant_eligible,
            first_generation=profile.first_generation,
            military_affiliation=profile.military_affiliation,
            citizenship=profile.citizenship,
            disabilities=profile.disabilities,
            completion_percentage=profile.completion_percentage,
        ),
    )


class StudentRepository(BaseRepository):
    def get_by_id(self, student_id: str) -> Optional[Student]:
        stmt = select(Student).where(Student.id == student_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_students_for_matching(self, min_completeness: float = 50.0) -> List[StudentRecord]:
        """Students whose profile completeness meets the threshold, ordered by id."""
        stmt = (
            select(Student, Profile)
            .join(Profile, Profile.student_id == Student.id)
            .where(Profile.completion_percentage >= min_completeness)
            .order_by(Student.id)
        )
        rows = self.db.execute(stmt).all()
        return [to_student_record(student, profile) for student, profile in rows]
