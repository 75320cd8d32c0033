import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class UserAccount(Base):
    __tablename__ = "user_account"

    id = Column(String(36), primary_key=True, default=_uuid)
    handle = Column(String(64), nullable=False, unique=True)
    display_name = Column(String(64), nullable=True)
    avatar_url = Column(String, nullable=True)
    disabled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Friendship(Base):
    __tablename__ = "friendship"

    id = Column(String(36), primary_key=True, default=_uuid)
    requester_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    addressee_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("requester_id", "addressee_id", name="uq_friendship_pair"),
        Index("idx_friendship_requester_status", "requester_id", "status"),
        Index("idx_friendship_addressee_status", "addressee_id", "status"),
    )


class Community(Base):
    __tablename__ = "community"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CommunityMembership(Base):
    __tablename__ = "community_membership"

    id = Column(String(36), primary_key=True, default=_uuid)
    community_id = Column(String(36), ForeignKey("community.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(16), nullable=False, default="active")
    joined_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_member"),
        Index("idx_community_membership_status", "community_id", "status"),
    )


class DailySession(Base):
    __tablename__ = "daily_session"

    id = Column(String(36), primary_key=True, default=_uuid)
    day_key = Column(String(10), nullable=False)
    user_a_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    user_b_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    state = Column(String(16), nullable=False, default="active")
    mode = Column(String(16), nullable=False)
    community_id = Column(String(36), ForeignKey("community.id", ondelete="SET NULL"), nullable=True)
    topic_id = Column(String(32), nullable=True)
    # epoch milliseconds; oldest-wins reconciliation orders on (created_at, id)
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("user_a_id <> user_b_id", name="ck_daily_session_distinct_users"),
        CheckConstraint("state IN ('active', 'expired')", name="ck_daily_session_state"),
        CheckConstraint(
            "(mode = 'friend' AND community_id IS NULL) OR (mode = 'community' AND community_id IS NOT NULL)",
            name="ck_daily_session_mode_community",
        ),
        Index("idx_daily_session_day_mode", "day_key", "mode"),
        Index("idx_daily_session_day_user_a", "day_key", "user_a_id", "mode"),
        Index("idx_daily_session_day_user_b", "day_key", "user_b_id", "mode"),
        Index("idx_daily_session_state_day", "state", "day_key"),
    )


class ChatMessage(Base):
    __tablename__ = "chat_message"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(36), ForeignKey("daily_session.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String(16), nullable=False, default="text")
    body = Column(Text, nullable=False)
    stamp_id = Column(String(32), nullable=True)
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (Index("idx_chat_message_session_order", "session_id", "created_at", "id"),)


class ChatMessageRead(Base):
    __tablename__ = "chat_message_read"

    message_id = Column(Integer, ForeignKey("chat_message.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), primary_key=True)
    read_at = Column(BigInteger, nullable=False)


class NotificationOutbox(Base):
    __tablename__ = "notifications_outbox"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    notification_type = Column(String(32), nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    payload_json = Column(Text, nullable=False, default="{}")
    status = Column(String(16), nullable=False, default="pending")
    created_at = Column(BigInteger, nullable=False)


class MatchEvent(Base):
    __tablename__ = "match_event"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False)
    day_key = Column(String(10), nullable=False)
    event_type = Column(String(48), nullable=False)
    payload = Column(Text, nullable=False, default="{}")
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (Index("idx_match_event_day_type", "day_key", "event_type"),)
