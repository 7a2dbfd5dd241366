import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from coaching.auth.dependencies import get_current_user, require_admin
from coaching.core.errors import StorageError, ValidationError
from coaching.models.service import Service
from coaching.models.user import User
from coaching.routes.common import get_engine, http_error_for, unwrap
from coaching.scheduling.engine import AvailabilityEngine
from coaching.scheduling.services import check_booking_eligibility
from coaching.scheduling.slots import normalize_slot_label
from coaching.scheduling.store import from_storage

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
MAX_SESSION_NOTE_TITLE_LENGTH = 200


def _validate_slot_label(value: str) -> str:
    try:
        return normalize_slot_label(value)
    except ValidationError as exc:
        raise ValueError(exc.message) from exc


class CreateAppointmentRequest(BaseModel):
    service: str
    date: date
    time: str
    notes: str | None = None

    @field_validator('service')
    @classmethod
    def validate_service(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Service is required.')
        return normalized

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _validate_slot_label(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class RescheduleAppointmentRequest(BaseModel):
    date: date
    time: str

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _validate_slot_label(value)


class CreateSessionNoteRequest(BaseModel):
    title: str
    content: str
    file_url: str | None = None
    file_name: str | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title is required.')
        if len(normalized) > MAX_SESSION_NOTE_TITLE_LENGTH:
            raise ValueError(f'Title must be {MAX_SESSION_NOTE_TITLE_LENGTH} characters or fewer.')
        return normalized

    @field_validator('content')
    @classmethod
    def validate_content(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Content is required.')
        return normalized


class SessionNoteResponse(BaseModel):
    id: int
    appointment_id: int
    title: str
    content: str
    file_url: str | None = None
    file_name: str | None = None

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: int
    user_id: int
    service_type: str
    start_time: datetime
    end_time: datetime
    status: str
    notes: str | None = None
    meeting_link: str | None = None
    can_modify: bool = False
    session_notes: list[SessionNoteResponse] = []


def serialize_appointment(appointment, engine: AvailabilityEngine) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        user_id=appointment.user_id,
        service_type=appointment.service_type,
        start_time=from_storage(appointment.start_time),
        end_time=from_storage(appointment.end_time),
        status=appointment.status,
        notes=appointment.notes,
        meeting_link=appointment.meeting_link,
        can_modify=engine.can_modify(appointment),
        session_notes=[SessionNoteResponse.model_validate(note) for note in appointment.session_notes],
    )


def _active_service(engine: AvailabilityEngine, slug: str) -> Service:
    try:
        service = engine.store.db.query(Service).filter(
            Service.slug == slug,
            Service.is_active.is_(True),
        ).first()
    except SQLAlchemyError as exc:
        engine.store.db.rollback()
        raise StorageError('Could not load the service catalog.') from exc

    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Service not found.')
    return service


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    user: User = Depends(get_current_user),
    engine: AvailabilityEngine = Depends(get_engine),
):
    service = _active_service(engine, data.service)

    ineligible = check_booking_eligibility(
        engine.store.db,
        service,
        engine.store.get_appointments_for_user(user.id),
    )
    if ineligible is not None:
        raise http_error_for(ineligible)

    appointment = unwrap(engine.book(
        user.id,
        service.name,
        data.date,
        data.time,
        notes=data.notes,
        duration_minutes=service.duration_minutes,
    ))
    logger.info('User %s booked %s on %s at %s', user.id, service.slug, data.date, data.time)
    return serialize_appointment(appointment, engine)


@router.get('/me', response_model=list[AppointmentResponse])
def list_my_appointments(
    user: User = Depends(get_current_user),
    engine: AvailabilityEngine = Depends(get_engine),
):
    return [serialize_appointment(appointment, engine) for appointment in engine.store.get_appointments_for_user(user.id)]


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    user: User = Depends(get_current_user),
    engine: AvailabilityEngine = Depends(get_engine),
):
    owner_id = None if user.is_admin else user.id
    appointment = unwrap(engine.cancel(appointment_id, user_id=owner_id))
    logger.info('Appointment %s cancelled by user %s', appointment_id, user.id)
    return serialize_appointment(appointment, engine)


@router.post('/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    user: User = Depends(get_current_user),
    engine: AvailabilityEngine = Depends(get_engine),
):
    owner_id = None if user.is_admin else user.id
    appointment = unwrap(engine.reschedule(appointment_id, data.date, data.time, user_id=owner_id))
    logger.info('Appointment %s moved to %s %s by user %s', appointment_id, data.date, data.time, user.id)
    return serialize_appointment(appointment, engine)


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    admin: User = Depends(require_admin),
    engine: AvailabilityEngine = Depends(get_engine),
):
    del admin
    appointment = unwrap(engine.complete(appointment_id))
    return serialize_appointment(appointment, engine)


@router.post('/{appointment_id}/notes', response_model=SessionNoteResponse, status_code=status.HTTP_201_CREATED)
def add_session_note(
    appointment_id: int,
    data: CreateSessionNoteRequest,
    admin: User = Depends(require_admin),
    engine: AvailabilityEngine = Depends(get_engine),
):
    del admin
    if engine.store.get_appointment(appointment_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')

    return engine.store.add_session_note(
        appointment_id,
        title=data.title,
        content=data.content,
        file_url=data.file_url,
        file_name=data.file_name,
    )
