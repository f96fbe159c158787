"""Offset pagination shared by every listing view."""

from dataclasses import dataclass
from typing import Optional

from vidtube.core.config import settings
from vidtube.core.errors import InvalidInputError


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_window(page: Optional[int], limit: Optional[int], default_limit: int) -> PageWindow:
    """
    Validate page/limit and compute the offset.

    page defaults to 1 and limit to ``default_limit``; both must be positive.
    limit is capped at MAX_PAGE_SIZE.
    """
    page = 1 if page is None else page
    limit = default_limit if limit is None else limit

    if page < 1:
        raise InvalidInputError("page must be a positive integer", field="page")
    if limit < 1:
        raise InvalidInputError("limit must be a positive integer", field="limit")

    return PageWindow(page=page, limit=min(limit, settings.MAX_PAGE_SIZE))
