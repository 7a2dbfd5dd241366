from datetime import datetime, timedelta, timezone

import jwt

from coaching.core import config


def create_access_token(email: str, expires_minutes: int | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES)
    payload = {"sub": email.strip().lower(), "exp": expire, "iat": issued_at}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])


def subject_from_token(token: str) -> str | None:
    """Return the normalized email in ``sub``, or None when the token is unusable."""
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        return None

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None
    return subject.strip().lower()
