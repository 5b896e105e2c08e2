import uuid
from datetime import datetime, timedelta, timezone

import jwt

from koobings.core import config

def create_access_token(
    subject: str,
    expires_minutes: int | None = None,
    extra_claims: dict | None = None,
) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + timedelta(minutes=expire_minutes)
    payload = dict(extra_claims or {})
    payload.update({"sub": subject, "jti": uuid.uuid4().hex, "exp": expire, "iat": issued_at})
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])


def token_expiry(payload: dict) -> datetime:
    """Naive UTC expiry of a decoded token."""
    return datetime.fromtimestamp(payload["exp"], tz=timezone.utc).replace(tzinfo=None)
