import uuid

from sqlalchemy import Column, Text, Boolean, Integer, Float, Date, TIMESTAMP, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from .base import Base, JSONType


def _new_id() -> str:
    return uuid.uuid4().hex


class Student(Base):
    """
    Student account. Eligibility data lives on the one-to-one Profile.
    """
    __tablename__ = 'student'

    id = Column(Text, primary_key=True, default=_new_id)
    email = Column(Text, nullable=False, unique=True)
    first_name = Column(Text)
    last_name = Column(Text)
    date_of_birth = Column(Date, nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    profile = relationship("Profile", back_populates="student", uselist=False, cascade="all, delete-orphan")
    matches = relationship("Match", back_populates="student", cascade="all, delete-orphan")


class Profile(Base):
    """
    Student profile used by the hard filter.

    Every eligibility attribute is nullable: NULL means "not provided",
    which the filters treat differently from 0 / false / empty.
    The JSON collections hold loosely-typed arrays as entered in the app.
    """
    __tablename__ = 'profile'

    id = Column(Text, primary_key=True, default=_new_id)
    student_id = Column(Text, ForeignKey('student.id', ondelete='CASCADE'), nullable=False, unique=True)

    # Academic
    gpa = Column(Float)
    gpa_scale = Column(Float)
    sat_score = Column(Integer)
    act_score = Column(Integer)
    class_rank = Column(Integer)
    class_size = Column(Integer)

    # Demographic
    gender = Column(Text)
    ethnicity = Column(JSONType)  # list of strings
    state = Column(Text)
    city = Column(Text)

    # Major / field
    intended_major = Column(Text)
    field_of_study = Column(Text)
    career_goals = Column(Text)

    # Experience
    volunteer_hours = Column(Float)
    extracurriculars = Column(JSONType)  # [{name, role, hoursPerWeek}]
    leadership_roles = Column(JSONType)  # [{title, organization}]
    work_experience = Column(JSONType)  # [{title, employer, startDate, endDate}]
    awards_honors = Column(JSONType)  # [{name, level, year}]

    # Financial
    financial_need = Column(Text)  # LOW | MODERATE | HIGH | VERY_HIGH
    efc_range = Column(Text)  # "0-5000", "10000+", ...
    pell_grant_eligible = Column(Boolean)

    # Special circumstances
    first_generation = Column(Boolean)
    military_affiliation = Column(Text)
    citizenship = Column(Text)
    disabilities = Column(Text)

    completion_percentage = Column(Float, nullable=False, default=0.0)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="profile")

    __table_args__ = (
        Index('idx_profile_completion', 'completion_percentage'),
    )
