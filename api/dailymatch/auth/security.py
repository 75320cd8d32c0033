from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from dailymatch.config import ACCESS_TOKEN_TTL_MINUTES, JWT_SECRET
from dailymatch.errors import Unauthenticated

ALGORITHM = "HS256"


class TokenConfigError(RuntimeError):
    pass


def create_access_token(user_id: str, ttl_minutes: int | None = None, now: datetime | None = None) -> str:
    if not JWT_SECRET:
        raise TokenConfigError("JWT secret not configured")
    now = now or datetime.now(timezone.utc)
    exp = now + timedelta(minutes=ttl_minutes or ACCESS_TOKEN_TTL_MINUTES)
    payload: dict[str, Any] = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    if not JWT_SECRET:
        raise TokenConfigError("JWT secret not configured")
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise Unauthenticated("Token expired", reason="token_expired") from exc
    except jwt.PyJWTError as exc:
        raise Unauthenticated("Invalid token", reason="signature_invalid") from exc
    if not isinstance(payload, dict):
        raise Unauthenticated("Invalid token", reason="malformed_payload")
    return payload
