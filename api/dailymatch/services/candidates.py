from __future__ import annotations

from .. import repo
from ..errors import CommunityInactive, InvalidRequest, NoCandidates, NotAMember


def ensure_community_access(db, user_id: str, community_id: str) -> dict:
    if not repo.has_active_membership(db, community_id, user_id):
        raise NotAMember()
    community = repo.get_community(db, community_id)
    if not community or not bool(community.get("is_active")):
        raise CommunityInactive()
    return community


def resolve_candidates(db, user_id: str, mode: str, community_id: str | None = None) -> set[str]:
    if mode == "friend":
        candidates = set(repo.list_accepted_friend_ids(db, user_id))
        empty_message = "No friends available for matching"
    elif mode == "community":
        if not community_id:
            raise InvalidRequest("community_id is required for community matching")
        ensure_community_access(db, user_id, community_id)
        candidates = set(repo.list_active_member_ids(db, community_id))
        empty_message = "No other members in this community"
    else:
        raise InvalidRequest(f"Unknown matching mode: {mode}")

    candidates.discard(user_id)
    if not candidates:
        raise NoCandidates(empty_message)
    return candidates
