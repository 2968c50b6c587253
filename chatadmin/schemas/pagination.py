"""Pagination metadata as sent by the admin backend.

Two spellings exist on the wire: channel endpoints send
``{page, limit, totalPages, totalCount}`` and the notification endpoint sends
``{currentPage, totalPages, totalNotifications, limit}``. Both validate into
``Pagination``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(1, validation_alias=AliasChoices("page", "currentPage", "current_page"))
    limit: int = Field(10, validation_alias=AliasChoices("limit", "per_page"))
    total_pages: Optional[int] = Field(None, validation_alias=AliasChoices("totalPages", "total_pages"))
    total_count: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("totalCount", "totalNotifications", "total_count"),
    )


class PageState(BaseModel):
    """What a list screen needs to draw its pager."""

    page: int
    limit: int
    total_pages: Optional[int] = None
    total_count: Optional[int] = None
    is_last_page: bool = False
    estimated: bool = False

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return not self.is_last_page
