from typing import Any

from pydantic import BaseModel, Field


class StartMatchRequest(BaseModel):
    mode: str | None = None
    community_id: str | None = None


class MatchResponse(BaseModel):
    session_id: str
    day_key: str
    mode: str
    community_id: str | None = None
    matched_user: dict[str, Any]
    topic: dict[str, Any] | None = None
    created: bool


class EligibilityResponse(BaseModel):
    can_match: bool
    reason: str | None = None
    available_count: int = 0


class SendMessageRequest(BaseModel):
    content: str | None = None
    kind: str = "text"
    stamp_id: str | None = None


class MessagePage(BaseModel):
    messages: list[dict[str, Any]] = Field(default_factory=list)
    has_more: bool
    next_cursor: int | None = None
    session_state: str


class MarkReadResponse(BaseModel):
    marked_count: int


class UnreadResponse(BaseModel):
    unread_count: int


class SweepResponse(BaseModel):
    today: str
    scanned_count: int
    expired_count: int
    failed_count: int
