from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from coaching.auth import jwt_handler
from coaching.auth.dependencies import get_current_user, get_optional_user
from coaching.core import config


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_access_token_subject_is_normalized_email() -> None:
    token = jwt_handler.create_access_token(' Client@Example.com ')

    assert jwt_handler.subject_from_token(token) == 'client@example.com'


def test_expired_token_has_no_subject() -> None:
    expired = jwt.encode(
        {'sub': 'client@example.com', 'exp': datetime.now(timezone.utc) - timedelta(minutes=1)},
        config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
    )

    assert jwt_handler.subject_from_token(expired) is None


def test_token_signed_with_other_key_has_no_subject() -> None:
    forged = jwt.encode({'sub': 'client@example.com'}, 'not-the-secret', algorithm='HS256')

    assert jwt_handler.subject_from_token(forged) is None


def test_get_current_user_resolves_token(db, client_user) -> None:
    token = jwt_handler.create_access_token(client_user.email)

    assert get_current_user(credentials=_credentials(token), db=db).id == client_user.id


def test_get_current_user_rejects_unknown_email(db) -> None:
    token = jwt_handler.create_access_token('nobody@example.com')

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_credentials(token), db=db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_optional_user_allows_anonymous(db) -> None:
    assert get_optional_user(credentials=None, db=db) is None
    assert get_optional_user(credentials=_credentials('garbage'), db=db) is None
