"""
api/caller.py

Caller identity for the HTTP layer.

Token validation happens upstream of this service (gateway or auth middleware),
which forwards the authenticated identity in request headers. This module turns
those headers into the `CallerContext` the core works with:

  - X-User-Id:    caller id used for credential resolution (default "unknown")
  - X-User-Name:  display name used in prompts (default "User")
  - X-User-Roles: comma-separated roles, most significant first (optional);
                  the credential role tier falls back to them
"""

from typing import Optional

from fastapi import Header

from shared.models import CallerContext


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_roles: Optional[str] = Header(None),
) -> CallerContext:
    """FastAPI dependency building the CallerContext from forwarded identity headers."""
    roles = tuple(r.strip() for r in (x_user_roles or "").split(",") if r.strip())
    return CallerContext(
        user_id=(x_user_id or "").strip() or "unknown",
        name=(x_user_name or "").strip() or "User",
        roles=roles,
    )
