import uuid

from sqlalchemy import Column, Text, Boolean, Numeric, TIMESTAMP, Index, func
from sqlalchemy.orm import relationship

from .base import Base, JSONType


class Scholarship(Base):
    """
    Scholarship listing.

    eligibility_criteria holds the six optional per-dimension criteria
    objects (academic, demographic, majorField, experience, financial,
    special) as camelCase JSON.
    """
    __tablename__ = 'scholarship'

    id = Column(Text, primary_key=True, default=lambda: uuid.uuid4().hex)
    name = Column(Text, nullable=False)
    provider = Column(Text)
    description = Column(Text)
    website = Column(Text)

    award_amount = Column(Numeric(12, 2))
    deadline = Column(TIMESTAMP(timezone=True), nullable=False)

    eligibility_criteria = Column(JSONType, nullable=False, default=dict)

    verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    matches = relationship("Match", back_populates="scholarship", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_scholarship_verified_deadline', 'verified', 'deadline'),
        Index('idx_scholarship_updated', 'updated_at'),
        Index('idx_scholarship_created', 'created_at'),
    )
