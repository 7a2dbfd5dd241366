"""Service catalog defaults and per-client booking eligibility."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coaching.core.errors import PreconditionViolation, StorageError
from coaching.models.appointment import STATUS_COMPLETED, STATUS_SCHEDULED, Appointment
from coaching.models.service import Service

logger = logging.getLogger(__name__)

DEFAULT_SERVICES = [
    {
        'slug': 'initial',
        'category': 'Initial Consultation',
        'name': 'Initial Consultation',
        'description': 'A comprehensive assessment-based session to gauge your current financial situation',
        'duration_minutes': 60,
        'price_cents': 0,
        'requires_onboarding': False,
        'is_initial': True,
    },
    {'slug': 'spending', 'category': 'Informational Sessions', 'name': 'Spending Habits', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'budgeting', 'category': 'Informational Sessions', 'name': 'Budgeting', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'savings', 'category': 'Informational Sessions', 'name': 'Interest Rates, Savings, & Loans', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'credit', 'category': 'Informational Sessions', 'name': 'Credit Cards', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'investing-basics', 'category': 'Informational Sessions', 'name': 'Investing', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'taxes-accounts', 'category': 'Informational Sessions', 'name': 'Taxes & Accounts', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'spreadsheet', 'category': 'Doing-Something Sessions', 'name': '"The Spreadsheet"', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'investing-setup', 'category': 'Doing-Something Sessions', 'name': 'Investing Setup/Review', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'credit-setup', 'category': 'Doing-Something Sessions', 'name': 'Credit Card Setup/Review', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'filing-taxes', 'category': 'Doing-Something Sessions', 'name': 'Filing Your Taxes', 'duration_minutes': 60, 'price_cents': 3000},
    {'slug': 'maintenance-15', 'category': 'Maintenance Sessions', 'name': 'Half-Length', 'duration_minutes': 15, 'price_cents': 2000},
    {'slug': 'maintenance-30', 'category': 'Maintenance Sessions', 'name': 'Full-Length', 'duration_minutes': 30, 'price_cents': 3000},
    {'slug': 'maintenance-60', 'category': 'Maintenance Sessions', 'name': 'Double-Length', 'duration_minutes': 60, 'price_cents': 4000},
]


def seed_default_services(db: Session) -> int:
    """Insert the default catalog when the services table is empty."""
    try:
        if db.query(Service.id).first() is not None:
            return 0

        for sort_order, entry in enumerate(DEFAULT_SERVICES):
            db.add(Service(sort_order=sort_order, **entry))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not seed the service catalog.') from exc

    logger.info('Seeded %d default services', len(DEFAULT_SERVICES))
    return len(DEFAULT_SERVICES)


def _initial_service_names(db: Session) -> set[str]:
    names = {name for (name,) in db.query(Service.name).filter(Service.is_initial.is_(True)).all()}
    return names or {'Initial Consultation'}


def booking_eligibility_error(
    service: Service,
    appointments: list[Appointment],
    initial_service_names: set[str],
) -> PreconditionViolation | None:
    """Return why ``service`` cannot be booked given the client's history, or None."""
    initial_statuses = [
        appointment.status
        for appointment in appointments
        if appointment.service_type in initial_service_names
    ]

    if service.is_initial:
        if any(status in (STATUS_SCHEDULED, STATUS_COMPLETED) for status in initial_statuses):
            return PreconditionViolation(
                'You have already booked an Initial Consultation.',
                code='initial_already_booked',
            )
        return None

    if service.requires_onboarding and STATUS_COMPLETED not in initial_statuses:
        return PreconditionViolation(
            'Please complete an Initial Consultation before booking other sessions.',
            code='onboarding_required',
        )

    return None


def check_booking_eligibility(db: Session, service: Service, appointments: list[Appointment]) -> PreconditionViolation | None:
    try:
        initial_names = _initial_service_names(db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not load the service catalog.') from exc
    return booking_eligibility_error(service, appointments, initial_names)
