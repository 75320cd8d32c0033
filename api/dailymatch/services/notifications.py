"""
Out-of-band notifications.

Delivery is best-effort: a notification is queued after the triggering write
has been committed, and any failure is logged and dropped. Nothing here can
roll back or fail the request that asked for it.
"""

import logging
from typing import Any

from fastapi import BackgroundTasks

from .. import repo
from ..database import SessionLocal
from .calendar import SYSTEM_CLOCK, epoch_ms

logger = logging.getLogger(__name__)


def deliver_notification(
    user_id: str,
    title: str,
    body: str,
    metadata: dict[str, Any] | None = None,
    created_at: int | None = None,
) -> None:
    metadata = metadata or {}
    if created_at is None:
        created_at = epoch_ms(SYSTEM_CLOCK.now())
    try:
        with SessionLocal() as db:
            repo.enqueue_outbox_notification(
                db,
                user_id=user_id,
                notification_type=str(metadata.get("type") or "generic"),
                title=title,
                body=body,
                payload=metadata,
                created_at=created_at,
            )
            db.commit()
    except Exception:
        logger.warning("[NOTIFY] delivery failed user_id=%s type=%s", user_id, metadata.get("type"), exc_info=True)


class NotificationDispatcher:
    def dispatch(self, user_id: str, title: str, body: str, metadata: dict[str, Any] | None = None) -> None:
        raise NotImplementedError


class NullDispatcher(NotificationDispatcher):
    def dispatch(self, user_id: str, title: str, body: str, metadata: dict[str, Any] | None = None) -> None:
        return None


class BackgroundDispatcher(NotificationDispatcher):
    """Schedules delivery to run after the HTTP response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, clock=SYSTEM_CLOCK):
        self.background_tasks = background_tasks
        self.clock = clock

    def dispatch(self, user_id: str, title: str, body: str, metadata: dict[str, Any] | None = None) -> None:
        self.background_tasks.add_task(
            deliver_notification, user_id, title, body, dict(metadata or {}), epoch_ms(self.clock.now())
        )


def safe_dispatch(dispatcher: NotificationDispatcher | None, user_id: str, title: str, body: str, metadata: dict[str, Any] | None = None) -> bool:
    if dispatcher is None:
        return False
    try:
        dispatcher.dispatch(user_id, title, body, metadata)
        return True
    except Exception:
        logger.warning("[NOTIFY] dispatch failed user_id=%s", user_id, exc_info=True)
        return False
