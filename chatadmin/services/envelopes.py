"""Turn loosely shaped backend JSON into typed records.

The backend has changed its response wrappers a few times. Every accepted
shape is listed explicitly in the function that handles it. A body that
matches none of them is logged as ``envelope.shape_mismatch`` and treated as
an empty collection, so list pages keep rendering.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..schemas.pagination import PageState, Pagination

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _shape_mismatch(context: str, body: Any) -> None:
    logger.warning(
        "envelope.shape_mismatch",
        extra={"extra_data": {"context": context, "body_type": type(body).__name__}},
    )


def parse_records(model: Type[ModelT], items: Iterable[Any], context: str) -> list[ModelT]:
    """Validate each row, dropping (and logging) rows that do not fit ``model``."""

    records: list[ModelT] = []
    for item in items:
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "envelope.row_skipped",
                extra={"extra_data": {"context": context, "errors": exc.error_count()}},
            )
    return records


def extract_list(body: Any, context: str, key: str = "data") -> list[Any]:
    """Accepted shapes: bare ``[...]`` or ``{key: [...]}``."""

    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get(key), list):
        return body[key]
    _shape_mismatch(context, body)
    return []


def extract_members(body: Any) -> list[Any]:
    """Locate the channel member rows.

    Accepted shapes, probed in this order:

    1. ``{"members": [...]}``
    2. ``{"data": {"members": [...]}}``
    3. ``{"data": [...]}``
    4. ``[...]``
    """

    if isinstance(body, dict):
        if isinstance(body.get("members"), list):
            return body["members"]
        data = body.get("data")
        if isinstance(data, dict) and isinstance(data.get("members"), list):
            return data["members"]
        if isinstance(data, list):
            return data
    elif isinstance(body, list):
        return body
    _shape_mismatch("channel_members", body)
    return []


def extract_pagination(body: Any, page: int, limit: int) -> Optional[Pagination]:
    """Read ``pagination`` or ``data.pagination``; missing page/limit fall back to the request."""

    if not isinstance(body, dict):
        return None
    raw = body.get("pagination")
    if not isinstance(raw, dict):
        data = body.get("data")
        raw = data.get("pagination") if isinstance(data, dict) else None
    if not isinstance(raw, dict):
        return None
    merged = {"page": page, "limit": limit}
    merged.update({k: v for k, v in raw.items() if v is not None})
    if "currentPage" in merged:
        merged.pop("page")
    try:
        return Pagination.model_validate(merged)
    except ValidationError:
        _shape_mismatch("pagination", raw)
        return None


def extract_notifications(body: Any) -> tuple[list[Any], Any]:
    """Split a notifications body into rows and the object that may carry pagination.

    Accepted shapes: ``[...]``, ``{"notifications": [...]}``, ``{"data": [...]}``
    and ``{"data": {"notifications": [...], "pagination": {...}}}``.
    """

    container = body
    if isinstance(body, dict) and body.get("data") is not None:
        container = body["data"]
    if isinstance(container, list):
        return container, None
    if isinstance(container, dict):
        rows = container.get("notifications")
        if isinstance(rows, list):
            return rows, container
        _shape_mismatch("notifications", body)
        return [], container
    _shape_mismatch("notifications", body)
    return [], None


def is_send_success(body: Any) -> bool:
    """A send succeeded unless the backend explicitly says otherwise."""

    if not isinstance(body, dict) or "success" not in body:
        return True
    return body["success"] is True


def infer_page_state(
    page: int,
    limit: int,
    item_count: int,
    pagination: Optional[Pagination] = None,
    previous_total_pages: Optional[int] = None,
) -> PageState:
    """Work out pager state for one fetched page.

    Backend-supplied totals win outright, and a bare total count is turned into
    a page count. Without them the page is the last one when it came back
    short; a full page means there may be more, and a previously known page
    count is never shrunk. That guess cannot tell a full final page from a
    page with successors, so the result is flagged ``estimated``.
    """

    if pagination is not None and pagination.total_pages is None and pagination.total_count is not None and limit > 0:
        pagination = pagination.model_copy(update={"total_pages": math.ceil(pagination.total_count / limit)})

    if pagination is not None and pagination.total_pages is not None:
        total_pages = max(pagination.total_pages, 0)
        return PageState(
            page=page,
            limit=limit,
            total_pages=total_pages,
            total_count=pagination.total_count,
            is_last_page=page >= total_pages,
        )

    if limit <= 0 or item_count < limit:
        return PageState(
            page=page,
            limit=limit,
            total_pages=page,
            total_count=(page - 1) * max(limit, 0) + item_count,
            is_last_page=True,
            estimated=True,
        )

    return PageState(
        page=page,
        limit=limit,
        total_pages=max(previous_total_pages or 0, page + 1),
        total_count=pagination.total_count if pagination is not None else None,
        is_last_page=False,
        estimated=True,
    )
