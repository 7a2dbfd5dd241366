from types import SimpleNamespace

from coaching.models.appointment import STATUS_CANCELLED, STATUS_COMPLETED, STATUS_SCHEDULED
from coaching.models.service import Service
from coaching.scheduling.services import (
    DEFAULT_SERVICES,
    booking_eligibility_error,
    check_booking_eligibility,
    seed_default_services,
)

INITIAL_NAMES = {'Initial Consultation'}


def _service(**overrides) -> SimpleNamespace:
    values = {'name': 'Budgeting', 'is_initial': False, 'requires_onboarding': True}
    values.update(overrides)
    return SimpleNamespace(**values)


def _appointment(service_type: str, status: str) -> SimpleNamespace:
    return SimpleNamespace(service_type=service_type, status=status)


def test_seed_default_services_inserts_catalog_once(db) -> None:
    assert seed_default_services(db) == len(DEFAULT_SERVICES)
    assert seed_default_services(db) == 0

    slugs = [slug for (slug,) in db.query(Service.slug).order_by(Service.sort_order).all()]
    assert slugs[0] == 'initial'
    assert len(slugs) == len(DEFAULT_SERVICES)


def test_first_initial_consultation_is_allowed() -> None:
    initial = _service(name='Initial Consultation', is_initial=True, requires_onboarding=False)

    assert booking_eligibility_error(initial, [], INITIAL_NAMES) is None


def test_second_initial_consultation_is_refused() -> None:
    initial = _service(name='Initial Consultation', is_initial=True, requires_onboarding=False)
    history = [_appointment('Initial Consultation', STATUS_SCHEDULED)]

    error = booking_eligibility_error(initial, history, INITIAL_NAMES)

    assert error is not None
    assert error.code == 'initial_already_booked'


def test_initial_consultation_can_be_rebooked_after_cancelling() -> None:
    initial = _service(name='Initial Consultation', is_initial=True, requires_onboarding=False)
    history = [_appointment('Initial Consultation', STATUS_CANCELLED)]

    assert booking_eligibility_error(initial, history, INITIAL_NAMES) is None


def test_other_sessions_require_completed_initial_consultation() -> None:
    scheduled_only = [_appointment('Initial Consultation', STATUS_SCHEDULED)]
    completed = [_appointment('Initial Consultation', STATUS_COMPLETED)]

    error = booking_eligibility_error(_service(), scheduled_only, INITIAL_NAMES)

    assert error is not None
    assert error.code == 'onboarding_required'
    assert booking_eligibility_error(_service(), completed, INITIAL_NAMES) is None


def test_sessions_without_onboarding_requirement_are_always_allowed() -> None:
    assert booking_eligibility_error(_service(requires_onboarding=False), [], INITIAL_NAMES) is None


def test_check_booking_eligibility_reads_initial_names_from_catalog(db) -> None:
    seed_default_services(db)
    budgeting = db.query(Service).filter(Service.slug == 'budgeting').one()
    history = [_appointment('Initial Consultation', STATUS_COMPLETED)]

    assert check_booking_eligibility(db, budgeting, history) is None
    assert check_booking_eligibility(db, budgeting, []).code == 'onboarding_required'
