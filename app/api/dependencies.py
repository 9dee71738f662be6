"""
app/api/dependencies.py

Shared FastAPI dependencies for request context.
"""

from __future__ import annotations

from fastapi import Header

INVOKING_USER_HEADER = "X-User-Id"


def get_invoking_user_id(
    x_user_id: str | None = Header(default=None, alias=INVOKING_USER_HEADER),
) -> str | None:
    """
    Return the caller identity resolved upstream, or None when absent.
    """

    if x_user_id is None:
        return None
    stripped = x_user_id.strip()
    return stripped[:64] if stripped else None
