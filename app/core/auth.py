"""Bearer-token authentication via Supabase Auth.

Auth itself is owned by Supabase; this module only resolves the caller's
user id from the ``Authorization`` header.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.errors import Unauthorized
from app.db.supabase import get_supabase

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> UUID:
    """FastAPI dependency: the authenticated user's id, or 401."""
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Not authorized, no token", detail="MissingToken")

    try:
        response = get_supabase().auth.get_user(credentials.credentials)
    except Exception as exc:
        logger.info("auth_token_rejected", extra={"error_message": str(exc)})
        raise Unauthorized("Not authorized, token failed", detail="InvalidToken") from exc

    user = getattr(response, "user", None)
    if user is None:
        raise Unauthorized("Not authorized, token failed", detail="InvalidToken")
    return UUID(str(user.id))
