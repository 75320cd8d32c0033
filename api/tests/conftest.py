import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_TOKEN"] = "admin-secret"

import random
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from dailymatch import models
from dailymatch.database import SessionLocal, drop_schema, init_schema
from dailymatch.services.calendar import epoch_ms, get_day_key

# 12:00 in Tokyo on 2026-03-10.
DEFAULT_NOW = datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = DEFAULT_NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)

    def day_key(self) -> str:
        return get_day_key(self.current)


class RecordingDispatcher:
    def __init__(self):
        self.calls = []

    def dispatch(self, user_id, title, body, metadata=None):
        self.calls.append({"user_id": user_id, "title": title, "body": body, "metadata": metadata or {}})


class Seeder:
    def __init__(self, db, clock: FixedClock):
        self.db = db
        self.clock = clock

    def user(self, handle: str, display_name: str | None = None, disabled: bool = False) -> str:
        user_id = str(uuid.uuid4())
        self.db.add(
            models.UserAccount(
                id=user_id,
                handle=handle,
                display_name=display_name or handle.capitalize(),
                disabled_at=datetime(2026, 1, 1, tzinfo=timezone.utc) if disabled else None,
            )
        )
        self.db.commit()
        return user_id

    def friends(self, a: str, b: str, status: str = "accepted") -> None:
        self.db.add(models.Friendship(id=str(uuid.uuid4()), requester_id=a, addressee_id=b, status=status))
        self.db.commit()

    def community(self, name: str, members: list[str] | None = None, active: bool = True) -> str:
        community_id = str(uuid.uuid4())
        self.db.add(models.Community(id=community_id, name=name, is_active=active))
        self.db.commit()
        for user_id in members or []:
            self.member(community_id, user_id)
        return community_id

    def member(self, community_id: str, user_id: str, status: str = "active") -> None:
        self.db.add(
            models.CommunityMembership(id=str(uuid.uuid4()), community_id=community_id, user_id=user_id, status=status)
        )
        self.db.commit()

    def session(
        self,
        a: str,
        b: str,
        *,
        day_key: str | None = None,
        mode: str = "friend",
        community_id: str | None = None,
        state: str = "active",
        created_at: int | None = None,
        topic_id: str | None = None,
    ) -> str:
        session_id = str(uuid.uuid4())
        self.db.add(
            models.DailySession(
                id=session_id,
                day_key=day_key or self.clock.day_key(),
                user_a_id=a,
                user_b_id=b,
                state=state,
                mode=mode,
                community_id=community_id,
                topic_id=topic_id,
                created_at=created_at if created_at is not None else epoch_ms(self.clock.now()),
            )
        )
        self.db.commit()
        return session_id

    def count(self, table: str) -> int:
        return int(self.db.execute(text(f"SELECT COUNT(1) FROM {table}")).scalar() or 0)


@pytest.fixture
def db():
    drop_schema()
    init_schema()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_schema()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def seed(db, clock):
    return Seeder(db, clock)


@pytest.fixture
def client(db, clock):
    pytest.importorskip("fastapi")
    from fastapi.testclient import TestClient

    from dailymatch.deps import get_clock, get_rng
    from dailymatch.main import app
    from dailymatch.services.rate_limit import limiter

    limiter.reset()
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_rng] = lambda: random.Random(99)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    from dailymatch.auth.security import create_access_token

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
