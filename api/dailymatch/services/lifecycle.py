from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .. import repo
from .calendar import SYSTEM_CLOCK, epoch_ms, get_day_key
from .events import log_match_event
from .state_machine import transition_session_state

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    today: str
    scanned_count: int
    expired_count: int
    failed_count: int


def effective_state(session: dict[str, Any], today: str) -> str:
    return transition_session_state(str(session["state"]), "view", str(session["day_key"]), today)


def is_session_live(session: dict[str, Any], today: str) -> bool:
    return effective_state(session, today) == "active"


def expire_stale_sessions(db, *, clock=SYSTEM_CLOCK) -> SweepResult:
    """
    Flip every active session whose day has passed to ``expired``.

    The predicate is ``day_key < today`` rather than ``= yesterday`` so a missed
    run is caught up by the next one. Rows are committed one at a time; a row
    that fails is rolled back, logged and skipped.
    """
    now = clock.now()
    today = get_day_key(now)
    stale = repo.list_stale_active_sessions(db, today)

    expired = 0
    failed = 0
    for session in stale:
        session_id = str(session["id"])
        next_state = transition_session_state(str(session["state"]), "expire", str(session["day_key"]), today)
        if next_state != "expired":
            continue
        try:
            changed = repo.expire_session(db, session_id)
            if changed:
                log_match_event(
                    db,
                    user_id=str(session["user_a_id"]),
                    day_key=str(session["day_key"]),
                    event_type="session_expired",
                    created_at=epoch_ms(now),
                    payload={"session_id": session_id, "mode": session["mode"]},
                )
            db.commit()
            expired += changed
        except Exception:
            db.rollback()
            failed += 1
            logger.exception("[SWEEP] failed to expire session_id=%s day_key=%s", session_id, session["day_key"])

    logger.info(
        "[SWEEP] today=%s scanned=%s expired=%s failed=%s",
        today,
        len(stale),
        expired,
        failed,
    )
    return SweepResult(today=today, scanned_count=len(stale), expired_count=expired, failed_count=failed)
