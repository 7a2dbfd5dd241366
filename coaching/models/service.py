"""Service catalog model definitions."""

from sqlalchemy import Boolean, Column, Integer, String

from coaching.database import Base


class Service(Base):
    """A bookable session type."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    slug = Column(String, unique=True, index=True, nullable=False)
    category = Column(String, nullable=False)
    name = Column(String, nullable=False)
    description = Column(String)
    duration_minutes = Column(Integer, nullable=False)
    price_cents = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    requires_onboarding = Column(Boolean, default=True, nullable=False)
    is_initial = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
