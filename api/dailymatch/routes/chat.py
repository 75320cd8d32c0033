from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from ..auth.deps import get_current_user
from ..config import RL_CHAT_SEND_LIMIT, RL_WINDOW_SECONDS
from ..deps import get_clock, get_db
from ..schemas import MarkReadResponse, MessagePage, SendMessageRequest, UnreadResponse
from ..services.conversation import latest_unread, list_messages, mark_read, send_message, total_unread_today, unread_count
from ..services.notifications import BackgroundDispatcher
from ..services.rate_limit import rate_limit_dependency
from ..services.stamps import STAMP_CATEGORIES, stamps_by_category

router = APIRouter()

RL_CHAT_SEND = rate_limit_dependency("chat_send", RL_CHAT_SEND_LIMIT, RL_WINDOW_SECONDS)


@router.get("/sessions/{session_id}/messages", response_model=MessagePage)
def get_messages(
    session_id: str,
    cursor: str | None = None,
    limit: int | None = Query(default=None, ge=1),
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    return list_messages(db, session_id, current_user["id"], cursor=cursor, limit=limit, clock=clock)


@router.post("/sessions/{session_id}/messages", dependencies=[RL_CHAT_SEND])
def post_message(
    session_id: str,
    payload: SendMessageRequest,
    background_tasks: BackgroundTasks,
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    message = send_message(
        db,
        session_id,
        current_user["id"],
        payload.content,
        kind=payload.kind,
        stamp_id=payload.stamp_id,
        clock=clock,
        dispatcher=BackgroundDispatcher(background_tasks, clock=clock),
    )
    return {"message": message}


@router.post("/sessions/{session_id}/read", response_model=MarkReadResponse)
def read_messages(
    session_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    return {"marked_count": mark_read(db, session_id, current_user["id"], clock=clock)}


@router.get("/sessions/{session_id}/unread", response_model=UnreadResponse)
def session_unread(
    session_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
) -> dict[str, Any]:
    return {"unread_count": unread_count(db, session_id, current_user["id"])}


@router.get("/chat/unread")
def chat_unread(
    current_user: dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    return {
        "total_unread": total_unread_today(db, current_user["id"], clock=clock),
        "latest": latest_unread(db, current_user["id"], clock=clock),
    }


@router.get("/stamps")
def stamp_catalog() -> dict[str, Any]:
    return {
        "categories": [
            {"id": category, "stamps": [s.to_dict() for s in stamps_by_category(category)]}
            for category in STAMP_CATEGORIES
        ],
    }
