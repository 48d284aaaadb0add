import uuid
from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config


def create_access_token(user_id: uuid.UUID, role: str, expires_minutes: int | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES)
    claims = {"sub": str(user_id), "role": role, "iat": issued_at, "exp": expires_at}
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
