"""Availability model definitions."""

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.sql import func

from coaching.database import Base


class AvailabilityBlock(Base):
    """A half-hour slot the admin has taken out of the booking grid."""
    __tablename__ = "availability_blocks"

    id = Column(Integer, primary_key=True)
    start_time = Column(DateTime, unique=True, index=True, nullable=False)
    end_time = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
