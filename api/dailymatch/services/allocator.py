from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any

from .. import repo
from ..config import MATCH_MODES
from ..errors import AlreadyMatchedToday, InvalidRequest, MatchingError, NoAvailableCandidates
from .calendar import SYSTEM_CLOCK, epoch_ms, get_day_key
from .candidates import resolve_candidates
from .events import log_match_event
from .notifications import NotificationDispatcher, safe_dispatch
from .overview import partner_summary
from .topics import Topic, assign_topic

logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    session: dict[str, Any]
    partner_id: str
    partner: dict[str, Any]
    topic: Topic | None
    created: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": str(self.session["id"]),
            "day_key": str(self.session["day_key"]),
            "mode": str(self.session["mode"]),
            "community_id": self.session.get("community_id"),
            "matched_user": self.partner,
            "topic": self.topic.to_dict() if self.topic else None,
            "created": self.created,
        }


def resolve_mode(mode: str | None, community_id: str | None) -> str:
    if not mode:
        return "community" if community_id else "friend"
    if mode not in MATCH_MODES:
        raise InvalidRequest(f"mode must be one of: {', '.join(MATCH_MODES)}")
    if mode == "community" and not community_id:
        raise InvalidRequest("community_id is required for community matching")
    if mode == "friend" and community_id:
        raise InvalidRequest("community_id is only valid for community matching")
    return mode


def other_participant(session: dict[str, Any], user_id: str) -> str:
    a = str(session["user_a_id"])
    b = str(session["user_b_id"])
    return b if a == user_id else a


def taken_user_ids(sessions: list[dict[str, Any]]) -> set[str]:
    taken: set[str] = set()
    for s in sessions:
        taken.add(str(s["user_a_id"]))
        taken.add(str(s["user_b_id"]))
    return taken


def _available_candidates(db, user_id: str, mode: str, community_id: str | None, day_key: str) -> list[str]:
    if repo.find_user_sessions_for_day(db, day_key, user_id, mode):
        raise AlreadyMatchedToday(f"Already matched today in {mode} mode")

    candidates = resolve_candidates(db, user_id, mode, community_id)
    taken = taken_user_ids(repo.list_sessions_for_day(db, day_key, mode))
    available = sorted(candidates - taken)
    if not available:
        if mode == "community":
            raise NoAvailableCandidates("No available members (all already matched today)")
        raise NoAvailableCandidates("No available friends (all already matched today)")
    return available


def reconcile_user_sessions(db, day_key: str, user_id: str, mode: str) -> dict[str, Any] | None:
    """
    Collapse duplicate sessions for ``(day_key, user_id, mode)`` to the oldest one.

    Ordering is ``(created_at, id)`` so every racing caller picks the same survivor.
    """
    sessions = repo.find_user_sessions_for_day(db, day_key, user_id, mode)
    if len(sessions) <= 1:
        return sessions[0] if sessions else None

    survivor = sessions[0]
    discarded = [str(s["id"]) for s in sessions[1:]]
    repo.delete_sessions(db, discarded)
    db.commit()
    logger.warning(
        "[MATCH] reconciled duplicate sessions user_id=%s day_key=%s mode=%s kept=%s discarded=%s",
        user_id,
        day_key,
        mode,
        survivor["id"],
        discarded,
    )
    return survivor


def allocate_daily_match(
    db,
    user_id: str,
    mode: str,
    community_id: str | None = None,
    *,
    clock=SYSTEM_CLOCK,
    rng: random.Random | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> AllocationResult:
    now = clock.now()
    day_key = get_day_key(now)

    available = _available_candidates(db, user_id, mode, community_id, day_key)
    selected = (rng or random).choice(available)

    created = repo.insert_session(
        db,
        day_key=day_key,
        user_a_id=user_id,
        user_b_id=selected,
        mode=mode,
        community_id=community_id if mode == "community" else None,
        created_at=epoch_ms(now),
    )
    db.commit()

    survivor = reconcile_user_sessions(db, day_key, user_id, mode) or created
    won = str(survivor["id"]) == str(created["id"])

    topic = assign_topic(db, str(survivor["id"]), rng=rng)
    survivor = repo.get_session(db, str(survivor["id"])) or survivor

    partner_id = other_participant(survivor, user_id)
    partner = partner_summary(db, partner_id)

    log_match_event(
        db,
        user_id=user_id,
        day_key=day_key,
        event_type="match_created" if won else "match_reconciled",
        created_at=epoch_ms(now),
        payload={"session_id": str(survivor["id"]), "mode": mode, "community_id": community_id, "partner_id": partner_id},
    )
    db.commit()

    logger.info(
        "[MATCH] user_id=%s mode=%s day_key=%s session_id=%s partner_id=%s created=%s",
        user_id,
        mode,
        day_key,
        survivor["id"],
        partner_id,
        won,
    )

    if won:
        requester = partner_summary(db, user_id)
        safe_dispatch(
            dispatcher,
            partner_id,
            "New match",
            f"You matched with {requester['display_name'] or requester['handle'] or 'someone'} today",
            {"type": "match", "session_id": str(survivor["id"]), "mode": mode},
        )

    return AllocationResult(session=survivor, partner_id=partner_id, partner=partner, topic=topic, created=won)


def check_can_match(db, user_id: str, mode: str, community_id: str | None = None, *, clock=SYSTEM_CLOCK) -> dict[str, Any]:
    day_key = get_day_key(clock.now())
    try:
        available = _available_candidates(db, user_id, mode, community_id, day_key)
    except MatchingError as exc:
        return {"can_match": False, "reason": exc.code, "available_count": 0}
    return {"can_match": True, "reason": None, "available_count": len(available)}
