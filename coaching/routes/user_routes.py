import logging
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coaching.auth.dependencies import get_current_user, require_admin
from coaching.core.errors import PreconditionViolation, StorageError
from coaching.database import get_db
from coaching.models.user import User
from coaching.routes.appointment_routes import AppointmentResponse, serialize_appointment
from coaching.routes.assessment_routes import StoredScoreResponse, serialize_score
from coaching.routes.common import get_clock, get_engine
from coaching.scheduling.engine import AvailabilityEngine
from coaching.scheduling.store import from_storage, to_storage

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

MIN_CLIENT_AGE = 13
MAX_CLIENT_AGE = 120


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    age: int | None = None
    role: str
    consent_signed: bool
    consent_signed_at: datetime | None = None


class UpdateProfileRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    age: int | None = None

    @field_validator('first_name', 'last_name', 'phone')
    @classmethod
    def validate_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @field_validator('age')
    @classmethod
    def validate_age(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if not MIN_CLIENT_AGE <= value <= MAX_CLIENT_AGE:
            raise ValueError(f'Age must be between {MIN_CLIENT_AGE} and {MAX_CLIENT_AGE}.')
        return value


def serialize_user(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        age=user.age,
        role=user.role,
        consent_signed=bool(user.consent_signed),
        consent_signed_at=from_storage(user.consent_signed_at),
    )


def _client_or_404(engine: AvailabilityEngine, user_id: int) -> User:
    try:
        client = engine.store.db.get(User, user_id)
    except SQLAlchemyError as exc:
        engine.store.db.rollback()
        raise StorageError('Could not load client.') from exc
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Client not found.')
    return client


@router.get('/me', response_model=UserResponse)
def get_me(user: User = Depends(get_current_user)):
    return serialize_user(user)


@router.patch('/me', response_model=UserResponse)
def update_me(
    data: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not update profile.') from exc
    return serialize_user(user)


@router.post('/me/consent', response_model=UserResponse)
def sign_consent(
    user: User = Depends(get_current_user),
    clock: Callable[[], datetime] = Depends(get_clock),
    db: Session = Depends(get_db),
):
    if user.consent_signed:
        raise PreconditionViolation('Consent has already been signed.', code='consent_already_signed')

    try:
        user.consent_signed = True
        user.consent_signed_at = to_storage(clock())
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not record consent.') from exc

    logger.info('User %s signed the consent form', user.id)
    return serialize_user(user)


@router.get('', response_model=list[UserResponse])
def list_clients(
    search: str | None = Query(default=None, max_length=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    try:
        query = db.query(User).filter(User.role != 'admin')
        if search and search.strip():
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            ))
        clients = query.order_by(User.created_at.desc(), User.id.desc()).all()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not load clients.') from exc
    return [serialize_user(client) for client in clients]


@router.get('/{user_id}/appointments', response_model=list[AppointmentResponse])
def list_client_appointments(
    user_id: int,
    admin: User = Depends(require_admin),
    engine: AvailabilityEngine = Depends(get_engine),
):
    del admin
    client = _client_or_404(engine, user_id)
    return [serialize_appointment(appointment, engine) for appointment in engine.store.get_appointments_for_user(client.id)]


@router.get('/{user_id}/scores', response_model=list[StoredScoreResponse])
def list_client_scores(
    user_id: int,
    admin: User = Depends(require_admin),
    engine: AvailabilityEngine = Depends(get_engine),
):
    del admin
    client = _client_or_404(engine, user_id)
    return [serialize_score(score) for score in engine.store.get_scores_for_user(client.id)]
