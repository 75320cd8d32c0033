import json
import uuid
from typing import Any, Iterable

from sqlalchemy import bindparam, text

SESSION_COLUMNS = "id, day_key, user_a_id, user_b_id, state, mode, community_id, topic_id, created_at"
MESSAGE_COLUMNS = "id, session_id, sender_id, kind, body, stamp_id, created_at"


def _row(row) -> dict[str, Any] | None:
    return dict(row) if row else None


def _rows(rows) -> list[dict[str, Any]]:
    return [dict(r) for r in rows]


# ---------------------------------------------------------------------------
# users, friendships, communities (read-only views of externally owned tables)
# ---------------------------------------------------------------------------


def get_user_by_id(db, user_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text("SELECT id, handle, display_name, avatar_url, disabled_at FROM user_account WHERE id=:id"),
        {"id": user_id},
    ).mappings().first()
    return _row(row)


def get_user_summaries(db, user_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
    ids = sorted({str(u) for u in user_ids if u})
    if not ids:
        return {}
    rows = db.execute(
        text("SELECT id, handle, display_name, avatar_url FROM user_account WHERE id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        ),
        {"ids": ids},
    ).mappings().all()
    return {str(r["id"]): dict(r) for r in rows}


def list_accepted_friend_ids(db, user_id: str) -> list[str]:
    rows = db.execute(
        text(
            """
            SELECT f.addressee_id AS friend_id
            FROM friendship f
            JOIN user_account u ON u.id = f.addressee_id
            WHERE f.requester_id = :user_id
              AND f.status = 'accepted'
              AND u.disabled_at IS NULL
            UNION
            SELECT f.requester_id AS friend_id
            FROM friendship f
            JOIN user_account u ON u.id = f.requester_id
            WHERE f.addressee_id = :user_id
              AND f.status = 'accepted'
              AND u.disabled_at IS NULL
            """
        ),
        {"user_id": user_id},
    ).mappings().all()
    return [str(r["friend_id"]) for r in rows]


def get_community(db, community_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text("SELECT id, name, is_active FROM community WHERE id=:id"),
        {"id": community_id},
    ).mappings().first()
    return _row(row)


def get_community_names(db, community_ids: Iterable[str]) -> dict[str, str]:
    ids = sorted({str(c) for c in community_ids if c})
    if not ids:
        return {}
    rows = db.execute(
        text("SELECT id, name FROM community WHERE id IN :ids").bindparams(bindparam("ids", expanding=True)),
        {"ids": ids},
    ).mappings().all()
    return {str(r["id"]): r["name"] for r in rows}


def has_active_membership(db, community_id: str, user_id: str) -> bool:
    row = db.execute(
        text(
            """
            SELECT 1
            FROM community_membership
            WHERE community_id = :community_id
              AND user_id = :user_id
              AND status = 'active'
            """
        ),
        {"community_id": community_id, "user_id": user_id},
    ).first()
    return row is not None


def list_active_member_ids(db, community_id: str) -> list[str]:
    rows = db.execute(
        text(
            """
            SELECT m.user_id
            FROM community_membership m
            JOIN user_account u ON u.id = m.user_id
            WHERE m.community_id = :community_id
              AND m.status = 'active'
              AND u.disabled_at IS NULL
            """
        ),
        {"community_id": community_id},
    ).mappings().all()
    return [str(r["user_id"]) for r in rows]


# ---------------------------------------------------------------------------
# daily sessions
# ---------------------------------------------------------------------------


def get_session(db, session_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(f"SELECT {SESSION_COLUMNS} FROM daily_session WHERE id=:id"),
        {"id": session_id},
    ).mappings().first()
    return _row(row)


def find_user_sessions_for_day(db, day_key: str, user_id: str, mode: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            f"""
            SELECT {SESSION_COLUMNS}
            FROM daily_session
            WHERE day_key = :day_key
              AND mode = :mode
              AND (user_a_id = :user_id OR user_b_id = :user_id)
            ORDER BY created_at ASC, id ASC
            """
        ),
        {"day_key": day_key, "mode": mode, "user_id": user_id},
    ).mappings().all()
    return _rows(rows)


def list_sessions_for_day(db, day_key: str, mode: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            f"""
            SELECT {SESSION_COLUMNS}
            FROM daily_session
            WHERE day_key = :day_key
              AND mode = :mode
            """
        ),
        {"day_key": day_key, "mode": mode},
    ).mappings().all()
    return _rows(rows)


def list_user_sessions_on_day(db, day_key: str, user_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            f"""
            SELECT {SESSION_COLUMNS}
            FROM daily_session
            WHERE day_key = :day_key
              AND state = 'active'
              AND (user_a_id = :user_id OR user_b_id = :user_id)
            ORDER BY created_at ASC, id ASC
            """
        ),
        {"day_key": day_key, "user_id": user_id},
    ).mappings().all()
    return _rows(rows)


def list_user_sessions(db, user_id: str, limit: int) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            f"""
            SELECT {SESSION_COLUMNS}
            FROM daily_session
            WHERE user_a_id = :user_id OR user_b_id = :user_id
            ORDER BY created_at DESC, id DESC
            LIMIT :limit
            """
        ),
        {"user_id": user_id, "limit": limit},
    ).mappings().all()
    return _rows(rows)


def insert_session(
    db,
    *,
    day_key: str,
    user_a_id: str,
    user_b_id: str,
    mode: str,
    community_id: str | None,
    created_at: int,
    topic_id: str | None = None,
) -> dict[str, Any]:
    session_id = str(uuid.uuid4())
    params = {
        "id": session_id,
        "day_key": day_key,
        "user_a_id": user_a_id,
        "user_b_id": user_b_id,
        "mode": mode,
        "community_id": community_id,
        "topic_id": topic_id,
        "created_at": created_at,
    }
    db.execute(
        text(
            """
            INSERT INTO daily_session (id, day_key, user_a_id, user_b_id, state, mode, community_id, topic_id, created_at)
            VALUES (:id, :day_key, :user_a_id, :user_b_id, 'active', :mode, :community_id, :topic_id, :created_at)
            """
        ),
        params,
    )
    return {**params, "state": "active"}


def delete_sessions(db, session_ids: Iterable[str]) -> int:
    ids = sorted({str(s) for s in session_ids})
    if not ids:
        return 0
    db.execute(
        text(
            """
            DELETE FROM chat_message_read
            WHERE message_id IN (SELECT id FROM chat_message WHERE session_id IN :ids)
            """
        ).bindparams(bindparam("ids", expanding=True)),
        {"ids": ids},
    )
    db.execute(
        text("DELETE FROM chat_message WHERE session_id IN :ids").bindparams(bindparam("ids", expanding=True)),
        {"ids": ids},
    )
    result = db.execute(
        text("DELETE FROM daily_session WHERE id IN :ids").bindparams(bindparam("ids", expanding=True)),
        {"ids": ids},
    )
    return int(result.rowcount or 0)


def set_session_topic_if_unset(db, session_id: str, topic_id: str) -> int:
    result = db.execute(
        text("UPDATE daily_session SET topic_id=:topic_id WHERE id=:id AND topic_id IS NULL"),
        {"id": session_id, "topic_id": topic_id},
    )
    return int(result.rowcount or 0)


def list_stale_active_sessions(db, today: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            f"""
            SELECT {SESSION_COLUMNS}
            FROM daily_session
            WHERE state = 'active'
              AND day_key < :today
            ORDER BY day_key ASC, created_at ASC
            """
        ),
        {"today": today},
    ).mappings().all()
    return _rows(rows)


def expire_session(db, session_id: str) -> int:
    result = db.execute(
        text("UPDATE daily_session SET state='expired' WHERE id=:id AND state='active'"),
        {"id": session_id},
    )
    return int(result.rowcount or 0)


# ---------------------------------------------------------------------------
# chat messages and read receipts
# ---------------------------------------------------------------------------


def insert_message(
    db,
    *,
    session_id: str,
    sender_id: str,
    kind: str,
    body: str,
    stamp_id: str | None,
    created_at: int,
) -> dict[str, Any]:
    row = db.execute(
        text(
            f"""
            INSERT INTO chat_message (session_id, sender_id, kind, body, stamp_id, created_at)
            VALUES (:session_id, :sender_id, :kind, :body, :stamp_id, :created_at)
            RETURNING {MESSAGE_COLUMNS}
            """
        ),
        {
            "session_id": session_id,
            "sender_id": sender_id,
            "kind": kind,
            "body": body,
            "stamp_id": stamp_id,
            "created_at": created_at,
        },
    ).mappings().first()
    message = dict(row)
    insert_read_receipt(db, message_id=int(message["id"]), user_id=sender_id, read_at=created_at)
    return message


def insert_read_receipt(db, *, message_id: int, user_id: str, read_at: int) -> int:
    result = db.execute(
        text(
            """
            INSERT INTO chat_message_read (message_id, user_id, read_at)
            VALUES (:message_id, :user_id, :read_at)
            ON CONFLICT (message_id, user_id) DO NOTHING
            """
        ),
        {"message_id": message_id, "user_id": user_id, "read_at": read_at},
    )
    return int(result.rowcount or 0)


def get_message(db, message_id: int) -> dict[str, Any] | None:
    row = db.execute(
        text(f"SELECT {MESSAGE_COLUMNS} FROM chat_message WHERE id=:id"),
        {"id": message_id},
    ).mappings().first()
    return _row(row)


def list_messages_page(
    db,
    session_id: str,
    *,
    limit: int,
    after_created_at: int | None = None,
    after_id: int | None = None,
) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            f"""
            SELECT {MESSAGE_COLUMNS}
            FROM chat_message
            WHERE session_id = :session_id
              AND (
                :after_id IS NULL
                OR created_at > :after_created_at
                OR (created_at = :after_created_at AND id > :after_id)
              )
            ORDER BY created_at ASC, id ASC
            LIMIT :limit
            """
        ),
        {
            "session_id": session_id,
            "after_created_at": after_created_at,
            "after_id": after_id,
            "limit": limit,
        },
    ).mappings().all()
    return _rows(rows)


def get_read_receipts(db, message_ids: Iterable[int]) -> dict[int, list[str]]:
    ids = sorted({int(m) for m in message_ids})
    if not ids:
        return {}
    rows = db.execute(
        text(
            """
            SELECT message_id, user_id
            FROM chat_message_read
            WHERE message_id IN :ids
            ORDER BY user_id ASC
            """
        ).bindparams(bindparam("ids", expanding=True)),
        {"ids": ids},
    ).mappings().all()
    out: dict[int, list[str]] = {i: [] for i in ids}
    for r in rows:
        out[int(r["message_id"])].append(str(r["user_id"]))
    return out


def mark_session_messages_read(db, session_id: str, user_id: str, read_at: int) -> int:
    result = db.execute(
        text(
            """
            INSERT INTO chat_message_read (message_id, user_id, read_at)
            SELECT m.id, :user_id, :read_at
            FROM chat_message m
            WHERE m.session_id = :session_id
              AND m.sender_id <> :user_id
              AND NOT EXISTS (
                SELECT 1 FROM chat_message_read r
                WHERE r.message_id = m.id AND r.user_id = :user_id
              )
            ON CONFLICT (message_id, user_id) DO NOTHING
            """
        ),
        {"session_id": session_id, "user_id": user_id, "read_at": read_at},
    )
    return int(result.rowcount or 0)


def count_unread(db, session_id: str, user_id: str) -> int:
    value = db.execute(
        text(
            """
            SELECT COUNT(1)
            FROM chat_message m
            WHERE m.session_id = :session_id
              AND m.sender_id <> :user_id
              AND NOT EXISTS (
                SELECT 1 FROM chat_message_read r
                WHERE r.message_id = m.id AND r.user_id = :user_id
              )
            """
        ),
        {"session_id": session_id, "user_id": user_id},
    ).scalar()
    return int(value or 0)


def count_messages(db, session_id: str) -> int:
    value = db.execute(
        text("SELECT COUNT(1) FROM chat_message WHERE session_id=:session_id"),
        {"session_id": session_id},
    ).scalar()
    return int(value or 0)


def get_latest_message(db, session_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(
            f"""
            SELECT {MESSAGE_COLUMNS}
            FROM chat_message
            WHERE session_id = :session_id
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """
        ),
        {"session_id": session_id},
    ).mappings().first()
    return _row(row)


def list_unread_messages(db, session_ids: Iterable[str], user_id: str) -> list[dict[str, Any]]:
    ids = sorted({str(s) for s in session_ids})
    if not ids:
        return []
    rows = db.execute(
        text(
            f"""
            SELECT {MESSAGE_COLUMNS}
            FROM chat_message m
            WHERE m.session_id IN :ids
              AND m.sender_id <> :user_id
              AND NOT EXISTS (
                SELECT 1 FROM chat_message_read r
                WHERE r.message_id = m.id AND r.user_id = :user_id
              )
            ORDER BY m.created_at DESC, m.id DESC
            """
        ).bindparams(bindparam("ids", expanding=True)),
        {"ids": ids, "user_id": user_id},
    ).mappings().all()
    return _rows(rows)


# ---------------------------------------------------------------------------
# notifications outbox and account deletion
# ---------------------------------------------------------------------------


def enqueue_outbox_notification(
    db,
    *,
    user_id: str,
    notification_type: str,
    title: str,
    body: str,
    payload: dict[str, Any],
    created_at: int,
) -> dict[str, Any]:
    params = {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "notification_type": notification_type,
        "title": title,
        "body": body,
        "payload_json": json.dumps(payload or {}),
        "created_at": created_at,
    }
    db.execute(
        text(
            """
            INSERT INTO notifications_outbox (id, user_id, notification_type, title, body, payload_json, status, created_at)
            VALUES (:id, :user_id, :notification_type, :title, :body, :payload_json, 'pending', :created_at)
            """
        ),
        params,
    )
    return {**params, "status": "pending"}


def purge_user_match_data(db, user_id: str) -> dict[str, int]:
    session_rows = db.execute(
        text("SELECT id FROM daily_session WHERE user_a_id=:user_id OR user_b_id=:user_id"),
        {"user_id": user_id},
    ).mappings().all()
    session_ids = [str(r["id"]) for r in session_rows]

    receipts = db.execute(
        text("DELETE FROM chat_message_read WHERE user_id=:user_id"),
        {"user_id": user_id},
    ).rowcount or 0
    messages = 0
    if session_ids:
        receipts += db.execute(
            text(
                "DELETE FROM chat_message_read WHERE message_id IN (SELECT id FROM chat_message WHERE session_id IN :ids)"
            ).bindparams(bindparam("ids", expanding=True)),
            {"ids": session_ids},
        ).rowcount or 0
        messages = db.execute(
            text("DELETE FROM chat_message WHERE session_id IN :ids").bindparams(bindparam("ids", expanding=True)),
            {"ids": session_ids},
        ).rowcount or 0
    sessions = db.execute(
        text("DELETE FROM daily_session WHERE user_a_id=:user_id OR user_b_id=:user_id"),
        {"user_id": user_id},
    ).rowcount or 0
    return {"sessions": int(sessions), "messages": int(messages), "read_receipts": int(receipts)}
