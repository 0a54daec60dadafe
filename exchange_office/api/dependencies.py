"""
Shared request dependencies.

Authentication happens in front of this service; by the time a
request arrives here the acting user has been verified and is
passed along in the X-User-Id header.
"""

from fastapi import Header, Query

from exchange_office.config import get_settings


def get_current_user_id(
    x_user_id: int = Header(..., ge=1, description="Verified acting user"),
) -> int:
    return x_user_id


def get_pagination(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> tuple[int, int]:
    """Return (page, limit), with limit capped at MAX_PAGE_SIZE."""
    settings = get_settings()
    if limit is None:
        limit = settings.DEFAULT_PAGE_SIZE
    return page, min(limit, settings.MAX_PAGE_SIZE)
