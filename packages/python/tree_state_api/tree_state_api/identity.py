"""Resolve the calling user for tree settings requests."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request


def _normalize_user_id(value: Optional[str]) -> Optional[str]:
    if isinstance(value, str):
        trimmed = value.strip()
        if trimmed:
            return trimmed
    return None


async def get_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
) -> str:
    """
    Return the user id the authentication layer placed in ``X-User-Id``.

    Authentication happens upstream; this only refuses requests that arrive
    without an identity. The id is cached on the request state.
    """

    cached = getattr(request.state, "user_id", None)
    if cached is not None:
        return cached

    user_id = _normalize_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    request.state.user_id = user_id
    return user_id
