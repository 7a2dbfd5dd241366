import os
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('BUSINESS_TZ', 'America/Toronto')

from coaching.database import Base  # noqa: E402
from coaching.models import appointment, assessment, availability, message, service, user  # noqa: E402,F401
from coaching.models.user import User  # noqa: E402
from coaching.scheduling.engine import AvailabilityEngine  # noqa: E402
from coaching.scheduling.store import ScheduleStore  # noqa: E402

TORONTO = ZoneInfo('America/Toronto')

# Monday 2026-01-05 10:00 in Toronto
MONDAY_MORNING = datetime(2026, 1, 5, 10, 0, tzinfo=TORONTO)


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db):
    return ScheduleStore(db)


@pytest.fixture
def now():
    return MONDAY_MORNING


@pytest.fixture
def engine(store, now):
    return AvailabilityEngine(store, clock=lambda: now)


@pytest.fixture
def make_user(db):
    def _make_user(email: str = 'client@example.com', role: str = 'user') -> User:
        created = User(email=email, first_name='Casey', last_name='Client', role=role)
        db.add(created)
        db.commit()
        db.refresh(created)
        return created

    return _make_user


@pytest.fixture
def client_user(make_user):
    return make_user()


@pytest.fixture
def admin_user(make_user):
    return make_user(email='coach@example.com', role='admin')
