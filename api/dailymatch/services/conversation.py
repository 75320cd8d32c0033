from __future__ import annotations

import logging
from typing import Any

from .. import repo
from ..config import MESSAGE_PAGE_DEFAULT, MESSAGE_PAGE_MAX, NOTIFICATION_PREVIEW_LENGTH
from ..errors import Forbidden, InvalidMessage, InvalidRequest, SessionEnded, SessionNotFound
from .calendar import SYSTEM_CLOCK, epoch_ms, get_day_key
from .lifecycle import effective_state, is_session_live
from .notifications import NotificationDispatcher, safe_dispatch
from .stamps import get_stamp_by_id
from .validation import MESSAGE_KINDS, validate_stamp_message, validate_text_message

logger = logging.getLogger(__name__)


def _participants(session: dict[str, Any]) -> tuple[str, str]:
    return str(session["user_a_id"]), str(session["user_b_id"])


def load_session_for_participant(db, session_id: str, user_id: str) -> dict[str, Any]:
    session = repo.get_session(db, session_id)
    if not session:
        raise SessionNotFound()
    if user_id not in _participants(session):
        raise Forbidden()
    return session


def serialize_message(message: dict[str, Any], read_by: list[str], viewer_id: str) -> dict[str, Any]:
    stamp = get_stamp_by_id(message.get("stamp_id")) if message.get("kind") == "stamp" else None
    return {
        "id": int(message["id"]),
        "session_id": str(message["session_id"]),
        "sender_id": str(message["sender_id"]),
        "kind": str(message.get("kind") or "text"),
        "content": message["body"],
        "stamp_id": message.get("stamp_id"),
        "stamp_emoji": stamp.emoji if stamp else None,
        "created_at": int(message["created_at"]),
        "read_by": sorted(set(read_by)),
        "is_own_message": str(message["sender_id"]) == viewer_id,
    }


def message_preview(message: dict[str, Any]) -> str:
    if message.get("kind") == "stamp":
        return f"{message['body']} sent a stamp"
    body = str(message.get("body") or "")
    if len(body) > NOTIFICATION_PREVIEW_LENGTH:
        return body[:NOTIFICATION_PREVIEW_LENGTH] + "..."
    return body


def send_message(
    db,
    session_id: str,
    sender_id: str,
    content: str | None,
    *,
    kind: str = "text",
    stamp_id: str | None = None,
    clock=SYSTEM_CLOCK,
    dispatcher: NotificationDispatcher | None = None,
) -> dict[str, Any]:
    now = clock.now()
    session = repo.get_session(db, session_id)
    if not session:
        raise SessionNotFound()
    if not is_session_live(session, get_day_key(now)):
        raise SessionEnded()
    if sender_id not in _participants(session):
        raise Forbidden("No permission to send messages to this session")

    if kind not in MESSAGE_KINDS:
        raise InvalidMessage(f"kind must be one of: {', '.join(MESSAGE_KINDS)}")
    if kind == "stamp":
        body = validate_stamp_message(stamp_id).emoji
    else:
        body = validate_text_message(content)
        stamp_id = None

    message = repo.insert_message(
        db,
        session_id=session_id,
        sender_id=sender_id,
        kind=kind,
        body=body,
        stamp_id=stamp_id,
        created_at=epoch_ms(now),
    )
    db.commit()

    a, b = _participants(session)
    recipient_id = b if sender_id == a else a
    sender = repo.get_user_by_id(db, sender_id) or {}
    safe_dispatch(
        dispatcher,
        recipient_id,
        f"Message from {sender.get('display_name') or sender.get('handle') or 'your match'}",
        message_preview(message),
        {"type": "message", "session_id": session_id},
    )
    logger.debug("[CHAT] sent message_id=%s session_id=%s kind=%s", message["id"], session_id, kind)
    return serialize_message(message, [sender_id], sender_id)


def _clamp_limit(limit: int | None) -> int:
    if limit is None:
        return MESSAGE_PAGE_DEFAULT
    return max(1, min(MESSAGE_PAGE_MAX, int(limit)))


def _parse_cursor(cursor: Any) -> int | None:
    if cursor is None or cursor == "":
        return None
    try:
        return int(cursor)
    except (TypeError, ValueError):
        raise InvalidRequest("cursor must be a message id")


def list_messages(
    db,
    session_id: str,
    requester_id: str,
    *,
    cursor: Any = None,
    limit: int | None = None,
    clock=SYSTEM_CLOCK,
) -> dict[str, Any]:
    """
    Page through a session's messages in send order.

    History stays readable after the session expires; only participants may
    read it. ``cursor`` is the id of the last message the caller already has.
    An unknown cursor starts from the beginning.
    """
    session = load_session_for_participant(db, session_id, requester_id)
    safe_limit = _clamp_limit(limit)

    after_created_at = None
    after_id = None
    cursor_id = _parse_cursor(cursor)
    if cursor_id is not None:
        anchor = repo.get_message(db, cursor_id)
        if anchor and str(anchor["session_id"]) == session_id:
            after_created_at = int(anchor["created_at"])
            after_id = int(anchor["id"])

    rows = repo.list_messages_page(
        db,
        session_id,
        limit=safe_limit + 1,
        after_created_at=after_created_at,
        after_id=after_id,
    )
    has_more = len(rows) > safe_limit
    rows = rows[:safe_limit]
    receipts = repo.get_read_receipts(db, [r["id"] for r in rows])

    return {
        "messages": [serialize_message(r, receipts.get(int(r["id"]), []), requester_id) for r in rows],
        "has_more": has_more,
        "next_cursor": int(rows[-1]["id"]) if has_more and rows else None,
        "session_state": effective_state(session, get_day_key(clock.now())),
    }


def mark_read(db, session_id: str, requester_id: str, *, clock=SYSTEM_CLOCK) -> int:
    load_session_for_participant(db, session_id, requester_id)
    count = repo.mark_session_messages_read(db, session_id, requester_id, epoch_ms(clock.now()))
    db.commit()
    return count


def unread_count(db, session_id: str, requester_id: str) -> int:
    load_session_for_participant(db, session_id, requester_id)
    return repo.count_unread(db, session_id, requester_id)


def _live_sessions_today(db, user_id: str, clock) -> list[dict[str, Any]]:
    today = get_day_key(clock.now())
    return [s for s in repo.list_user_sessions_on_day(db, today, user_id) if is_session_live(s, today)]


def total_unread_today(db, user_id: str, *, clock=SYSTEM_CLOCK) -> int:
    return sum(repo.count_unread(db, str(s["id"]), user_id) for s in _live_sessions_today(db, user_id, clock))


def latest_unread(db, user_id: str, *, clock=SYSTEM_CLOCK) -> dict[str, Any] | None:
    sessions = _live_sessions_today(db, user_id, clock)
    unread = repo.list_unread_messages(db, [str(s["id"]) for s in sessions], user_id)
    if not unread:
        return None
    latest = unread[0]
    sender = repo.get_user_by_id(db, str(latest["sender_id"])) or {}
    return {
        "session_id": str(latest["session_id"]),
        "message_id": int(latest["id"]),
        "content": message_preview(latest),
        "sender_name": sender.get("display_name") or sender.get("handle") or "Someone",
        "created_at": int(latest["created_at"]),
        "unread_count": len(unread),
    }
