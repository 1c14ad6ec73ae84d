import uuid

from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, Boolean, Float, Integer, Uuid, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship

from .base import Base, JSONType


class Match(Base):
    """
    Scored eligible (student, scholarship) pair.

    The pair is the identity: the daily run upserts on it, overwriting
    every score field and calculated_at. Rows are never deleted by the run.
    notified is set once the qualifying-tier notification was dispatched.
    notification_round counts the times a notified match dropped out of the
    notifying tiers; each round is notified at most once.
    """
    __tablename__ = 'match'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Text, ForeignKey('student.id', ondelete='CASCADE'), nullable=False)
    scholarship_id = Column(Text, ForeignKey('scholarship.id', ondelete='CASCADE'), nullable=False)

    overall_match_score = Column(Float, nullable=False)
    academic_score = Column(Float)
    demographic_score = Column(Float)
    major_field_score = Column(Float)
    experience_score = Column(Float)
    financial_score = Column(Float)
    special_criteria_score = Column(Float)

    success_probability = Column(Float)
    success_tier = Column(Text)
    competition_factor = Column(Float)

    strategic_value = Column(Float)
    application_effort = Column(Text)
    effort_breakdown = Column(JSONType, default=dict)
    strategic_value_tier = Column(Text)

    priority_tier = Column(Text, nullable=False)

    notified = Column(Boolean, nullable=False, default=False)
    notification_round = Column(Integer, nullable=False, default=0)
    calculated_at = Column(TIMESTAMP(timezone=True), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    student = relationship("Student", back_populates="matches")
    scholarship = relationship("Scholarship", back_populates="matches")

    __table_args__ = (
        UniqueConstraint('student_id', 'scholarship_id', name='uq_match_student_scholarship'),
        Index('idx_match_student_tier', 'student_id', 'priority_tier'),
        Index('idx_match_score', 'overall_match_score'),
        Index('idx_match_notified', 'notified'),
        Index('idx_match_calculated', 'calculated_at'),
    )
