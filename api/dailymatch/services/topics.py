from __future__ import annotations

import random
from dataclasses import asdict, dataclass
from typing import Any

from .. import repo
from ..errors import Forbidden, SessionNotFound

TOPIC_CATEGORY_ICONS: dict[str, str] = {
    "daily": "💬",
    "hobby": "🎮",
    "food": "🍽️",
    "work": "💼",
    "random": "🎲",
}


@dataclass(frozen=True)
class Topic:
    id: str
    category: str

    @property
    def icon(self) -> str:
        return TOPIC_CATEGORY_ICONS[self.category]

    def to_dict(self) -> dict[str, str]:
        return {**asdict(self), "icon": self.icon}


def _catalog() -> tuple[Topic, ...]:
    # Text lives in the client's locale files; ids and categories are the contract.
    layout = [("daily", 10), ("hobby", 8), ("food", 6), ("work", 3), ("random", 3)]
    topics: list[Topic] = []
    for category, count in layout:
        for _ in range(count):
            topics.append(Topic(id=f"topic_{len(topics) + 1:03d}", category=category))
    return tuple(topics)


TOPICS: tuple[Topic, ...] = _catalog()
_BY_ID = {t.id: t for t in TOPICS}


def get_topic_by_id(topic_id: str | None) -> Topic | None:
    if not topic_id:
        return None
    return _BY_ID.get(topic_id)


def topics_by_category(category: str) -> list[Topic]:
    return [t for t in TOPICS if t.category == category]


def is_valid_topic_id(topic_id: str) -> bool:
    return topic_id in _BY_ID


def random_topic(rng: random.Random | None = None) -> Topic:
    return (rng or random).choice(TOPICS)


def assign_topic(db, session_id: str, *, rng: random.Random | None = None) -> Topic:
    """Attach a conversation starter to a session once; later calls return the same topic."""
    session = repo.get_session(db, session_id)
    if not session:
        raise SessionNotFound()

    existing = get_topic_by_id(session.get("topic_id"))
    if existing:
        return existing

    candidate = random_topic(rng)
    repo.set_session_topic_if_unset(db, session_id, candidate.id)
    db.commit()

    # A concurrent assigner may have won the guarded update; report whatever stuck.
    stored = repo.get_session(db, session_id) or session
    return get_topic_by_id(stored.get("topic_id")) or candidate


def get_session_topic(db, session_id: str, requester_id: str) -> dict[str, Any]:
    session = repo.get_session(db, session_id)
    if not session:
        raise SessionNotFound()
    if requester_id not in {str(session["user_a_id"]), str(session["user_b_id"])}:
        raise Forbidden()
    topic = get_topic_by_id(session.get("topic_id"))
    if not topic:
        return {"topic": None, "needs_assignment": True}
    return {"topic": topic.to_dict(), "needs_assignment": False}
