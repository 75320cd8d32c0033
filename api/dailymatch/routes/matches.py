import random
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from ..auth.deps import get_current_user
from ..config import RL_MATCH_START_LIMIT, RL_WINDOW_SECONDS
from ..deps import get_clock, get_db, get_rng
from ..schemas import EligibilityResponse, MatchResponse, StartMatchRequest
from ..services.allocator import allocate_daily_match, check_can_match, resolve_mode
from ..services.conversation import load_session_for_participant
from ..services.notifications import BackgroundDispatcher
from ..services.overview import get_session_detail, list_conversation_history, list_today_matches
from ..services.rate_limit import rate_limit_dependency
from ..services.topics import TOPIC_CATEGORY_ICONS, assign_topic, get_session_topic, topics_by_category

router = APIRouter()

RL_MATCH_START = rate_limit_dependency("match_start", RL_MATCH_START_LIMIT, RL_WINDOW_SECONDS)


@router.post("/matches", response_model=MatchResponse, dependencies=[RL_MATCH_START])
def start_match(
    payload: StartMatchRequest,
    background_tasks: BackgroundTasks,
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
    rng: random.Random = Depends(get_rng),
) -> dict[str, Any]:
    mode = resolve_mode(payload.mode, payload.community_id)
    result = allocate_daily_match(
        db,
        current_user["id"],
        mode,
        payload.community_id,
        clock=clock,
        rng=rng,
        dispatcher=BackgroundDispatcher(background_tasks, clock=clock),
    )
    return result.to_dict()


@router.get("/matches/eligibility", response_model=EligibilityResponse)
def match_eligibility(
    mode: str | None = None,
    community_id: str | None = None,
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    resolved = resolve_mode(mode, community_id)
    return check_can_match(db, current_user["id"], resolved, community_id, clock=clock)


@router.get("/matches/today")
def today_matches(
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    return {"matches": list_today_matches(db, current_user["id"], clock=clock)}


@router.get("/matches/history")
def match_history(
    limit: int | None = Query(default=None, ge=1, le=200),
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    return {"sessions": list_conversation_history(db, current_user["id"], clock=clock, limit=limit)}


@router.get("/sessions/{session_id}")
def session_detail(
    session_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    return get_session_detail(db, session_id, current_user["id"], clock=clock)


@router.get("/sessions/{session_id}/topic")
def session_topic(
    session_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
) -> dict[str, Any]:
    return get_session_topic(db, session_id, current_user["id"])


@router.post("/sessions/{session_id}/topic")
def ensure_session_topic(
    session_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    rng: random.Random = Depends(get_rng),
) -> dict[str, Any]:
    load_session_for_participant(db, session_id, current_user["id"])
    topic = assign_topic(db, session_id, rng=rng)
    return {"topic": topic.to_dict(), "needs_assignment": False}


@router.get("/topics")
def topic_catalog() -> dict[str, Any]:
    return {
        "categories": [
            {"id": category, "icon": icon, "topics": [t.to_dict() for t in topics_by_category(category)]}
            for category, icon in TOPIC_CATEGORY_ICONS.items()
        ],
    }
