import random
from typing import Iterator

from .database import SessionLocal
from .errors import Unauthenticated
from .services.calendar import SYSTEM_CLOCK, SystemClock


def get_db() -> Iterator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> SystemClock:
    return SYSTEM_CLOCK


def get_rng() -> random.Random:
    return random.Random()


def validate_admin_token(token: str | None, admin_token: str | None) -> None:
    if not admin_token or not token or token != admin_token:
        raise Unauthenticated("Invalid admin token", reason="invalid_admin_token")
