"""User model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from coaching.database import Base


class User(Base):
    """A client of the practice, or the practice's admin."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String)
    last_name = Column(String)
    phone = Column(String)
    age = Column(Integer)
    role = Column(String, default="user", nullable=False)  # user/admin
    consent_signed = Column(Boolean, default=False, nullable=False)
    consent_signed_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
