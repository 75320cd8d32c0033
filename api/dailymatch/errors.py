"""
Typed outcomes for matching and chat operations.

Every error here is an expected, user-actionable result rather than a crash.
The HTTP layer renders them as ``{"detail": {"code": ..., "message": ...}}``
with the class's ``status_code``.
"""

from typing import Any


class MatchingError(Exception):
    status_code = 400
    code = "matching_error"
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class Unauthenticated(MatchingError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class InvalidRequest(MatchingError):
    status_code = 400
    code = "invalid_request"
    default_message = "Invalid request"


class NotAMember(MatchingError):
    status_code = 403
    code = "not_a_member"
    default_message = "You are not a member of this community"


class CommunityInactive(MatchingError):
    status_code = 409
    code = "community_inactive"
    default_message = "Community is not active"


class NoCandidates(MatchingError):
    status_code = 409
    code = "no_candidates"
    default_message = "No one is available to match with"


class NoAvailableCandidates(MatchingError):
    status_code = 409
    code = "no_available_candidates"
    default_message = "Everyone available has already been matched today"


class AlreadyMatchedToday(MatchingError):
    status_code = 409
    code = "already_matched_today"
    default_message = "Already matched today in this mode"


class SessionNotFound(MatchingError):
    status_code = 404
    code = "session_not_found"
    default_message = "Session not found"


class SessionEnded(MatchingError):
    status_code = 410
    code = "session_ended"
    default_message = "Session has ended"


class Forbidden(MatchingError):
    status_code = 403
    code = "forbidden"
    default_message = "No permission to access this session"


class InvalidMessage(MatchingError):
    status_code = 400
    code = "invalid_message"
    default_message = "Invalid message"
