import json

from sqlalchemy import text

from dailymatch.services import notifications
from dailymatch.services.calendar import epoch_ms
from dailymatch.services.notifications import BackgroundDispatcher, NullDispatcher, deliver_notification, safe_dispatch


def test_deliver_notification_writes_outbox_row(db):
    deliver_notification("user-1", "New match", "You matched with Bob today", {"type": "match", "session_id": "s-1"})

    row = db.execute(text("SELECT user_id, notification_type, title, payload_json, status FROM notifications_outbox")).mappings().first()
    assert row["user_id"] == "user-1"
    assert row["notification_type"] == "match"
    assert row["title"] == "New match"
    assert row["status"] == "pending"
    assert json.loads(row["payload_json"]) == {"type": "match", "session_id": "s-1"}


def test_deliver_notification_swallows_failures(monkeypatch):
    def broken_session():
        raise ConnectionError("database unavailable")

    monkeypatch.setattr(notifications, "SessionLocal", broken_session)
    deliver_notification("user-1", "title", "body")


def test_background_dispatcher_schedules_delivery(clock):
    class FakeTasks:
        def __init__(self):
            self.tasks = []

        def add_task(self, func, *args, **kwargs):
            self.tasks.append((func, args))

    tasks = FakeTasks()
    BackgroundDispatcher(tasks, clock=clock).dispatch("user-1", "title", "body", {"type": "message"})

    stamped = epoch_ms(clock.now())
    assert tasks.tasks == [(deliver_notification, ("user-1", "title", "body", {"type": "message"}, stamped))]


def test_safe_dispatch_reports_outcome():
    class Broken:
        def dispatch(self, *args, **kwargs):
            raise RuntimeError("boom")

    assert safe_dispatch(NullDispatcher(), "u", "t", "b") is True
    assert safe_dispatch(Broken(), "u", "t", "b") is False
    assert safe_dispatch(None, "u", "t", "b") is False


def test_deliver_notification_keeps_given_timestamp(db):
    deliver_notification("user-1", "title", "body", {"type": "message"}, created_at=1773111600000)

    assert db.execute(text("SELECT created_at FROM notifications_outbox")).scalar() == 1773111600000
