# backend/activityhub/api/dependencies/auth.py
"""
Caller identity.

Authentication happens upstream; the gateway forwards the authenticated user's
id in ``X-User-Id``. Routes that act on behalf of a user depend on
``get_current_user_id``.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

USER_ID_HEADER = "X-User-Id"


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """
    Return the acting user's id.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user_id
