"""Appointment model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from coaching.database import Base

STATUS_SCHEDULED = "scheduled"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
APPOINTMENT_STATUSES = (STATUS_SCHEDULED, STATUS_COMPLETED, STATUS_CANCELLED)


class Appointment(Base):
    """Represents a booked coaching session."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_time_range", "start_time", "end_time"),
        Index(
            "uq_appointments_scheduled_start",
            "start_time",
            unique=True,
            sqlite_where=text("status = 'scheduled'"),
            postgresql_where=text("status = 'scheduled'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_type = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, default=STATUS_SCHEDULED, nullable=False)
    notes = Column(String)
    meeting_link = Column(String)
    created_at = Column(DateTime, server_default=func.now())

    session_notes = relationship(
        "SessionNote",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="SessionNote.id",
    )


class SessionNote(Base):
    """Notes and files the coach attaches to an appointment afterwards."""
    __tablename__ = "session_notes"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    file_url = Column(String)
    file_name = Column(String)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="session_notes")
