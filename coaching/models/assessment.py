"""Assessment score model definitions."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from coaching.database import Base


class AssessmentScore(Base):
    """One submitted attempt at a self-assessment. Never edited after insert."""
    __tablename__ = "assessment_scores"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False)  # stress/literacy
    score_breakdown = Column(JSON, nullable=False)
    user_answers = Column(JSON, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
