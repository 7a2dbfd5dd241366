import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from coaching.auth.dependencies import get_optional_user, require_admin
from coaching.core.errors import StorageError, ValidationError
from coaching.database import get_db
from coaching.models.service import Service
from coaching.models.user import User
from coaching.routes.common import get_engine
from coaching.scheduling.engine import SLOT_BOOKED, SLOT_PASSED, AvailabilityEngine
from coaching.scheduling.slots import business_date_for, normalize_slot_label, to_absolute, week_dates

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)

MAX_WEEK_OFFSET = 12


class SlotResponse(BaseModel):
    label: str
    start_time: datetime
    status: str
    is_available: bool


class DayAvailabilityResponse(BaseModel):
    date: date
    slots: list[SlotResponse]


class ToggleBlockRequest(BaseModel):
    date: date
    time: str

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        try:
            return normalize_slot_label(value)
        except ValidationError as exc:
            raise ValueError(exc.message) from exc


class ToggleBlockResponse(BaseModel):
    date: date
    time: str
    is_blocked: bool


class ServiceResponse(BaseModel):
    id: int
    slug: str
    category: str
    name: str
    description: str | None = None
    duration_minutes: int
    price_cents: int
    is_active: bool
    requires_onboarding: bool
    is_initial: bool
    sort_order: int

    class Config:
        from_attributes = True


class UpsertServiceRequest(BaseModel):
    id: int | None = None
    slug: str
    category: str
    name: str
    description: str | None = None
    duration_minutes: int
    price_cents: int = 0
    is_active: bool = True
    requires_onboarding: bool = True
    is_initial: bool = False
    sort_order: int = 0

    @field_validator('slug', 'category', 'name')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Duration must be a positive number.')
        return value

    @field_validator('price_cents')
    @classmethod
    def validate_price(cls, value: int) -> int:
        if value < 0:
            raise ValueError('Price cannot be negative.')
        return value


def _day_response(engine: AvailabilityEngine, day: date, exclude_appointment_id: int | None = None):
    grid = engine.day_grid(day, exclude_appointment_id=exclude_appointment_id)
    return DayAvailabilityResponse(
        date=day,
        slots=[
            SlotResponse(
                label=slot.label,
                start_time=slot.start_time,
                status=slot.status,
                is_available=slot.is_available,
            )
            for slot in grid
        ],
    )


def _owned_appointment_id(engine: AvailabilityEngine, appointment_id: int | None, user: User | None) -> int | None:
    # only the owner's own slot is ignored while picking a reschedule time
    if appointment_id is None or user is None:
        return None
    appointment = engine.store.get_appointment(appointment_id)
    if appointment is None or appointment.user_id != user.id:
        return None
    return appointment.id


@router.get('/days/{day}', response_model=DayAvailabilityResponse)
def get_day_availability(
    day: date,
    reschedule_appointment_id: int | None = Query(default=None),
    user: User | None = Depends(get_optional_user),
    engine: AvailabilityEngine = Depends(get_engine),
):
    exclude_id = _owned_appointment_id(engine, reschedule_appointment_id, user)
    return _day_response(engine, day, exclude_id)


@router.get('/week', response_model=list[DayAvailabilityResponse])
def get_week_availability(
    week_offset: int = Query(default=0, ge=0, le=MAX_WEEK_OFFSET),
    reschedule_appointment_id: int | None = Query(default=None),
    user: User | None = Depends(get_optional_user),
    engine: AvailabilityEngine = Depends(get_engine),
):
    today = business_date_for(engine.clock())
    exclude_id = _owned_appointment_id(engine, reschedule_appointment_id, user)
    return [_day_response(engine, day, exclude_id) for day in week_dates(week_offset, today)]


@router.post('/blocks/toggle', response_model=ToggleBlockResponse)
def toggle_blocked_time(
    data: ToggleBlockRequest,
    admin: User = Depends(require_admin),
    engine: AvailabilityEngine = Depends(get_engine),
):
    if to_absolute(data.date, data.time) <= engine.clock():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Passed times cannot be changed.',
        )

    slot_status = {slot.label: slot.status for slot in engine.day_grid(data.date)}
    if data.time not in slot_status:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Times can only be blocked within business hours.',
        )
    if slot_status[data.time] == SLOT_BOOKED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time is already booked by a client appointment.',
        )
    if slot_status[data.time] == SLOT_PASSED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Passed times cannot be changed.',
        )

    is_blocked = engine.toggle_block(data.date, data.time)
    logger.info('Admin %s %s %s %s', admin.email, 'blocked' if is_blocked else 'unblocked', data.date, data.time)
    return ToggleBlockResponse(date=data.date, time=data.time, is_blocked=is_blocked)


@router.get('/services', response_model=list[ServiceResponse])
def list_services(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Service)
        if not include_inactive:
            query = query.filter(Service.is_active.is_(True))
        return query.order_by(Service.category.asc(), Service.sort_order.asc(), Service.name.asc()).all()
    except SQLAlchemyError as exc:
        raise StorageError('Could not load services.') from exc


@router.put('/services', response_model=ServiceResponse)
def upsert_service(
    data: UpsertServiceRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    try:
        if data.id is None:
            service = Service()
            db.add(service)
        else:
            service = db.get(Service, data.id)
            if service is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Service not found.')

        for field, value in data.model_dump(exclude={'id'}).items():
            setattr(service, field, value)

        db.commit()
        db.refresh(service)
        return service
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='A service with this slug already exists.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not save service.') from exc


@router.delete('/services/{service_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    try:
        service = db.get(Service, service_id)
        if service is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Service not found.')

        db.delete(service)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not delete service.') from exc

