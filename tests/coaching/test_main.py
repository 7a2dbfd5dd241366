import asyncio
import json
from types import SimpleNamespace

import pytest

from coaching.core.errors import PreconditionViolation, SchedulingError, SlotConflict, StorageError, ValidationError
from coaching.main import app, handle_scheduling_error, root, status_code_for


class _FakeRequest:
    def __init__(self, path: str) -> None:
        self.url = SimpleNamespace(path=path)


def test_root_reports_health() -> None:
    assert root() == {'status': 'Coaching Practice API Running'}


def test_every_router_is_mounted() -> None:
    paths = {route.path for route in app.routes}

    assert '/availability/days/{day}' in paths
    assert '/appointments/{appointment_id}/reschedule' in paths
    assert '/assessments/{test_type}/score' in paths
    assert '/users/me/consent' in paths
    assert '/messages/{message_id}' in paths


@pytest.mark.parametrize(
    ('error', 'expected'),
    [
        (StorageError('down'), 503),
        (SlotConflict('taken'), 409),
        (ValidationError('bad', code='incomplete_answers'), 400),
        (PreconditionViolation('gone', code='appointment_not_found'), 404),
        (PreconditionViolation('nope', code='consent_already_signed'), 400),
        (SchedulingError('unknown'), 500),
    ],
)
def test_status_code_for_domain_errors(error, expected: int) -> None:
    assert status_code_for(error) == expected


def test_handler_returns_detail_and_code() -> None:
    error = ValidationError('Please answer all questions before submitting (1 unanswered).', code='incomplete_answers')

    response = asyncio.run(handle_scheduling_error(_FakeRequest('/assessments/stress/score'), error))

    assert response.status_code == 400
    assert json.loads(response.body) == {
        'detail': 'Please answer all questions before submitting (1 unanswered).',
        'code': 'incomplete_answers',
    }


def test_handler_maps_storage_failures_to_service_unavailable() -> None:
    response = asyncio.run(handle_scheduling_error(_FakeRequest('/availability/week'), StorageError('down')))

    assert response.status_code == 503
    assert json.loads(response.body)['code'] == 'storage_error'
