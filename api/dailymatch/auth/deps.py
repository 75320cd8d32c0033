"""
Identity resolution for FastAPI routes.

Callers present ``Authorization: Bearer <jwt>``. The token's ``sub`` must name
an existing, non-disabled ``user_account``; every other outcome is
``Unauthenticated``. Token issuance belongs to the external identity provider.
"""

import logging
import uuid
from typing import Any

from fastapi import Depends, Header

from .. import repo
from ..deps import get_db
from ..errors import Unauthenticated
from .security import decode_access_token

logger = logging.getLogger(__name__)


def _log_auth_failure(
    reason: str,
    trace_id: str,
    token_prefix: str | None = None,
    payload: dict[str, Any] | None = None,
    user_id: str | None = None,
) -> None:
    log_data = {
        "trace_id": trace_id,
        "reason": reason,
        "token_prefix": token_prefix,
        "token_user_id": payload.get("sub") if payload else None,
        "resolved_user_id": user_id,
    }
    logger.warning(f"[AUTH_FAILURE] {log_data}")


def _extract_bearer(authorization: str | None, trace_id: str) -> str:
    if not authorization:
        _log_auth_failure("missing_token", trace_id)
        raise Unauthenticated("Authentication required", reason="missing_token", trace_id=trace_id)
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        _log_auth_failure("malformed_token", trace_id)
        raise Unauthenticated("Invalid Authorization header", reason="malformed_token", trace_id=trace_id)
    return parts[1].strip()


def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    db=Depends(get_db),
) -> dict[str, Any]:
    trace_id = str(uuid.uuid4())
    token = _extract_bearer(authorization, trace_id)
    token_prefix = token[:8] + "..." if len(token) > 8 else token

    try:
        payload = decode_access_token(token)
    except Unauthenticated as exc:
        _log_auth_failure(str(exc.context.get("reason")), trace_id, token_prefix)
        raise

    user_id = str(payload.get("sub") or "")
    if not user_id:
        _log_auth_failure("token_missing_subject", trace_id, token_prefix, payload)
        raise Unauthenticated("Invalid token", reason="token_missing_subject", trace_id=trace_id)

    user = repo.get_user_by_id(db, user_id)
    if not user:
        _log_auth_failure("token_user_not_found", trace_id, token_prefix, payload, user_id)
        raise Unauthenticated("Invalid token", reason="token_user_not_found", trace_id=trace_id)
    if user.get("disabled_at"):
        _log_auth_failure("account_disabled", trace_id, token_prefix, payload, user_id)
        raise Unauthenticated("Account disabled", reason="account_disabled", trace_id=trace_id)

    logger.debug("[auth] user_id=%s", user_id)
    return {
        "id": str(user["id"]),
        "handle": user.get("handle"),
        "display_name": user.get("display_name"),
    }
