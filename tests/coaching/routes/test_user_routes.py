from datetime import date

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from coaching.core.errors import PreconditionViolation
from coaching.routes.user_routes import (
    UpdateProfileRequest,
    get_me,
    list_client_appointments,
    list_client_scores,
    list_clients,
    sign_consent,
    update_me,
)


def test_get_me_returns_profile(client_user) -> None:
    response = get_me(user=client_user)

    assert response.email == 'client@example.com'
    assert response.consent_signed is False


def test_update_me_changes_only_sent_fields(db, client_user) -> None:
    response = update_me(data=UpdateProfileRequest(first_name='  Sam ', age=34), user=client_user, db=db)

    assert response.first_name == 'Sam'
    assert response.last_name == 'Client'
    assert response.age == 34


def test_update_profile_request_rejects_implausible_age() -> None:
    with pytest.raises(ValidationError):
        UpdateProfileRequest(age=7)


def test_sign_consent_records_time_once(db, client_user, now) -> None:
    response = sign_consent(user=client_user, clock=lambda: now, db=db)

    assert response.consent_signed is True
    assert response.consent_signed_at == now

    with pytest.raises(PreconditionViolation) as exception_info:
        sign_consent(user=client_user, clock=lambda: now, db=db)

    assert exception_info.value.code == 'consent_already_signed'


def test_list_clients_excludes_admins_and_filters(db, make_user, admin_user, client_user) -> None:
    make_user(email='jordan@example.com')

    everyone = list_clients(search=None, admin=admin_user, db=db)
    jordan = list_clients(search='JORDAN', admin=admin_user, db=db)

    assert {client.email for client in everyone} == {'client@example.com', 'jordan@example.com'}
    assert [client.email for client in jordan] == ['jordan@example.com']


def test_list_client_appointments_for_admin(engine, admin_user, client_user) -> None:
    engine.book(client_user.id, 'Initial Consultation', date(2026, 1, 7), '9:00 AM')

    appointments = list_client_appointments(user_id=client_user.id, admin=admin_user, engine=engine)

    assert [appointment.service_type for appointment in appointments] == ['Initial Consultation']


def test_list_client_scores_for_missing_client(engine, admin_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_client_scores(user_id=999, admin=admin_user, engine=engine)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Client not found.'
