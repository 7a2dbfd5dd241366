from datetime import date

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from coaching.auth.dependencies import require_admin
from coaching.routes.availability_routes import (
    ToggleBlockRequest,
    UpsertServiceRequest,
    delete_service,
    get_day_availability,
    get_week_availability,
    list_services,
    toggle_blocked_time,
    upsert_service,
)
from coaching.scheduling.services import DEFAULT_SERVICES, seed_default_services

MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)
WEDNESDAY = date(2026, 1, 7)


def _statuses(response) -> dict[str, str]:
    return {slot.label: slot.status for slot in response.slots}


def test_toggle_block_request_normalizes_time() -> None:
    request = ToggleBlockRequest(date=WEDNESDAY, time=' 1:00pm ')

    assert request.time == '1:00 PM'


def test_toggle_block_request_rejects_malformed_time() -> None:
    with pytest.raises(ValidationError):
        ToggleBlockRequest(date=WEDNESDAY, time='13:00')


def test_get_day_availability_lists_business_slots(engine) -> None:
    response = get_day_availability(day=TUESDAY, reschedule_appointment_id=None, user=None, engine=engine)

    statuses = _statuses(response)
    assert response.date == TUESDAY
    assert len(response.slots) == 21
    assert statuses['9:00 AM'] == 'too_soon'
    assert statuses['11:00 AM'] == 'available'


def test_get_day_availability_frees_own_slot_for_reschedule(engine, make_user, client_user) -> None:
    booked = engine.book(client_user.id, 'Initial Consultation', WEDNESDAY, '9:00 AM')
    other = make_user(email='other@example.com')

    own = get_day_availability(
        day=WEDNESDAY,
        reschedule_appointment_id=booked.appointment.id,
        user=client_user,
        engine=engine,
    )
    someone_else = get_day_availability(
        day=WEDNESDAY,
        reschedule_appointment_id=booked.appointment.id,
        user=other,
        engine=engine,
    )

    assert _statuses(own)['9:00 AM'] == 'available'
    assert _statuses(someone_else)['9:00 AM'] == 'booked'


def test_get_week_availability_starts_on_sunday(engine) -> None:
    week = get_week_availability(week_offset=0, reschedule_appointment_id=None, user=None, engine=engine)

    assert [day.date for day in week][0] == date(2026, 1, 4)
    assert len(week) == 7
    assert len(week[0].slots) == 19
    assert all(slot.status == 'passed' for slot in week[0].slots)


def test_toggle_blocked_time_blocks_then_unblocks(engine, admin_user) -> None:
    request = ToggleBlockRequest(date=WEDNESDAY, time='1:00 PM')

    blocked = toggle_blocked_time(data=request, admin=admin_user, engine=engine)
    unblocked = toggle_blocked_time(data=request, admin=admin_user, engine=engine)

    assert blocked.is_blocked is True
    assert unblocked.is_blocked is False
    assert engine.is_bookable(WEDNESDAY, '1:00 PM')


def test_toggle_blocked_time_refuses_booked_slot(engine, admin_user, client_user) -> None:
    engine.book(client_user.id, 'Initial Consultation', WEDNESDAY, '9:00 AM')

    with pytest.raises(HTTPException) as exception_info:
        toggle_blocked_time(data=ToggleBlockRequest(date=WEDNESDAY, time='9:00 AM'), admin=admin_user, engine=engine)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This time is already booked by a client appointment.'


def test_toggle_blocked_time_refuses_passed_slot(engine, admin_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        toggle_blocked_time(data=ToggleBlockRequest(date=MONDAY, time='9:00 AM'), admin=admin_user, engine=engine)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Passed times cannot be changed.'


def test_toggle_blocked_time_refuses_slot_outside_business_hours(engine, admin_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        toggle_blocked_time(data=ToggleBlockRequest(date=WEDNESDAY, time='8:00 PM'), admin=admin_user, engine=engine)

    assert exception_info.value.status_code == 400


def test_require_admin_rejects_clients(client_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        require_admin(user=client_user)

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Admin access required.'


def test_list_services_returns_active_catalog(db) -> None:
    seed_default_services(db)

    services = list_services(include_inactive=False, db=db)

    assert len(services) == len(DEFAULT_SERVICES)
    assert services[0].category == 'Doing-Something Sessions'


def test_upsert_service_creates_and_updates(db, admin_user) -> None:
    created = upsert_service(
        data=UpsertServiceRequest(slug='retirement', category='Informational Sessions', name='Retirement', duration_minutes=60),
        admin=admin_user,
        db=db,
    )
    updated = upsert_service(
        data=UpsertServiceRequest(
            id=created.id,
            slug='retirement',
            category='Informational Sessions',
            name='Retirement Planning',
            duration_minutes=30,
            is_active=False,
        ),
        admin=admin_user,
        db=db,
    )

    assert updated.id == created.id
    assert updated.name == 'Retirement Planning'
    assert list_services(include_inactive=False, db=db) == []
    assert len(list_services(include_inactive=True, db=db)) == 1


def test_upsert_service_rejects_unknown_id(db, admin_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        upsert_service(
            data=UpsertServiceRequest(id=42, slug='x', category='y', name='z', duration_minutes=30),
            admin=admin_user,
            db=db,
        )

    assert exception_info.value.status_code == 404


def test_upsert_service_rejects_duplicate_slug(db, admin_user) -> None:
    upsert_service(
        data=UpsertServiceRequest(slug='dup', category='Coaching', name='First', duration_minutes=30),
        admin=admin_user,
        db=db,
    )

    with pytest.raises(HTTPException) as exception_info:
        upsert_service(
            data=UpsertServiceRequest(slug='dup', category='Coaching', name='Second', duration_minutes=30),
            admin=admin_user,
            db=db,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'A service with this slug already exists.'
    assert [service.name for service in list_services(include_inactive=True, db=db)] == ['First']


def test_upsert_service_request_rejects_non_positive_duration() -> None:
    with pytest.raises(ValidationError):
        UpsertServiceRequest(slug='x', category='y', name='z', duration_minutes=0)


def test_delete_service_removes_row(db, admin_user) -> None:
    seed_default_services(db)
    target = list_services(include_inactive=False, db=db)[0]

    delete_service(service_id=target.id, admin=admin_user, db=db)

    assert len(list_services(include_inactive=False, db=db)) == len(DEFAULT_SERVICES) - 1
