import json
import uuid
from typing import Any

from sqlalchemy import text


def log_match_event(
    db,
    user_id: str,
    day_key: str,
    event_type: str,
    created_at: int,
    payload: dict[str, Any] | None = None,
) -> None:
    payload = payload or {}
    db.execute(
        text(
            """
            INSERT INTO match_event (id, user_id, day_key, event_type, payload, created_at)
            VALUES (:id, :user_id, :day_key, :event_type, :payload, :created_at)
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "day_key": day_key,
            "event_type": event_type,
            "payload": json.dumps(payload, sort_keys=True),
            "created_at": created_at,
        },
    )


def list_match_events(db, day_key: str, event_type: str | None = None) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            """
            SELECT id, user_id, day_key, event_type, payload, created_at
            FROM match_event
            WHERE day_key = :day_key
              AND (:event_type IS NULL OR event_type = :event_type)
            ORDER BY created_at ASC
            """
        ),
        {"day_key": day_key, "event_type": event_type},
    ).mappings().all()
    out = []
    for r in rows:
        item = dict(r)
        item["payload"] = json.loads(item.get("payload") or "{}")
        out.append(item)
    return out
