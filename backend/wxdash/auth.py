"""Role checks based on headers set by the reverse-proxy hub."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

ROLE_HEADER = "X-Hub-Role"
USER_HEADER = "X-Hub-User"
AUTHENTICATED_HEADER = "X-Hub-Authenticated"

ADMIN_ROLE = "admin"


def get_user_role(request: Request) -> str:
    """Return the caller's role.

    Without a hub in front (no role header) the dashboard runs standalone and
    every caller is treated as admin.
    """
    role = request.headers.get(ROLE_HEADER, "")
    logger.debug(
        "Auth headers - user=%s role=%s authenticated=%s",
        request.headers.get(USER_HEADER, ""),
        role,
        request.headers.get(AUTHENTICATED_HEADER, ""),
    )
    return role or ADMIN_ROLE


def is_admin(request: Request) -> bool:
    return get_user_role(request) == ADMIN_ROLE


def require_admin(request: Request) -> None:
    """FastAPI dependency that rejects non-admin callers with 403."""
    if not is_admin(request):
        raise HTTPException(status_code=403, detail="Forbidden: Admin access required")
