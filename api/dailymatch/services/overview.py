from __future__ import annotations

from typing import Any

from .. import repo
from ..config import HISTORY_LIMIT_DEFAULT
from .calendar import SYSTEM_CLOCK, get_day_key, seconds_until_day_end
from .conversation import load_session_for_participant
from .lifecycle import effective_state, is_session_live
from .topics import get_topic_by_id


def partner_summary(db, user_id: str, users: dict[str, dict[str, Any]] | None = None) -> dict[str, Any]:
    if users is not None and user_id in users:
        row = users[user_id]
    else:
        row = repo.get_user_by_id(db, user_id) or {}
    return {
        "user_id": user_id,
        "handle": row.get("handle") or "",
        "display_name": row.get("display_name") or "",
        "avatar_url": row.get("avatar_url"),
    }


def _partner_id(session: dict[str, Any], user_id: str) -> str:
    a = str(session["user_a_id"])
    return str(session["user_b_id"]) if a == user_id else a


def _latest_message_summary(message: dict[str, Any] | None) -> dict[str, Any] | None:
    if not message:
        return None
    content = f"{message['body']} sent a stamp" if message.get("kind") == "stamp" else message["body"]
    return {"content": content, "created_at": int(message["created_at"])}


def list_today_matches(db, user_id: str, *, clock=SYSTEM_CLOCK) -> list[dict[str, Any]]:
    today = get_day_key(clock.now())
    sessions = [s for s in repo.list_user_sessions_on_day(db, today, user_id) if is_session_live(s, today)]
    users = repo.get_user_summaries(db, [_partner_id(s, user_id) for s in sessions])
    communities = repo.get_community_names(db, [s.get("community_id") for s in sessions])

    matches = []
    for s in sessions:
        session_id = str(s["id"])
        latest = _latest_message_summary(repo.get_latest_message(db, session_id))
        topic = get_topic_by_id(s.get("topic_id"))
        matches.append(
            {
                "session_id": session_id,
                "mode": s["mode"],
                "community_id": s.get("community_id"),
                "community_name": communities.get(str(s.get("community_id"))) if s.get("community_id") else None,
                "matched_user": partner_summary(db, _partner_id(s, user_id), users),
                "unread_count": repo.count_unread(db, session_id, user_id),
                "latest_message": latest,
                "topic": topic.to_dict() if topic else None,
                "created_at": int(s["created_at"]),
                "day_key": s["day_key"],
            }
        )
    matches.sort(key=lambda m: (m["latest_message"] or {}).get("created_at") or m["created_at"], reverse=True)
    return matches


def get_session_detail(db, session_id: str, requester_id: str, *, clock=SYSTEM_CLOCK) -> dict[str, Any]:
    session = load_session_for_participant(db, session_id, requester_id)
    now = clock.now()
    state = effective_state(session, get_day_key(now))
    community_name = None
    if session.get("community_id"):
        community_name = repo.get_community_names(db, [session["community_id"]]).get(str(session["community_id"]))
    topic = get_topic_by_id(session.get("topic_id"))
    return {
        "session_id": str(session["id"]),
        "matched_user": partner_summary(db, _partner_id(session, requester_id)),
        "mode": session["mode"],
        "community_id": session.get("community_id"),
        "community_name": community_name,
        "state": state,
        "day_key": session["day_key"],
        "created_at": int(session["created_at"]),
        "seconds_remaining": seconds_until_day_end(session["day_key"], now) if state == "active" else 0,
        "topic": topic.to_dict() if topic else None,
    }


def list_conversation_history(db, user_id: str, *, clock=SYSTEM_CLOCK, limit: int | None = None) -> list[dict[str, Any]]:
    safe_limit = max(1, min(200, int(limit or HISTORY_LIMIT_DEFAULT)))
    today = get_day_key(clock.now())
    sessions = repo.list_user_sessions(db, user_id, safe_limit)
    users = repo.get_user_summaries(db, [_partner_id(s, user_id) for s in sessions])

    history = []
    for s in sessions:
        topic = get_topic_by_id(s.get("topic_id"))
        history.append(
            {
                "session_id": str(s["id"]),
                "day_key": s["day_key"],
                "mode": s["mode"],
                "community_id": s.get("community_id"),
                "state": effective_state(s, today),
                "matched_user": partner_summary(db, _partner_id(s, user_id), users),
                "message_count": repo.count_messages(db, str(s["id"])),
                "topic": topic.to_dict() if topic else None,
                "created_at": int(s["created_at"]),
            }
        )
    return history


def purge_user_match_data(db, user_id: str) -> dict[str, int]:
    counts = repo.purge_user_match_data(db, user_id)
    db.commit()
    return counts
