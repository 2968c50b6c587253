"""Admin pages. By the time a handler runs the session gate has accepted the credential."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette import status

from ..core.config import settings_for
from ..core.errors import AdminApiError, InvalidCredential
from ..core.flash import flash, pop_flashes
from ..core.jinja import get_templates
from ..core import tables
from ..deps.auth import current_owner, get_api_client, get_snapshots
from ..schemas.notifications import NOTIFICATION_TYPES, NotificationPayload
from ..services.api_client import AdminApiClient
from ..services.envelopes import infer_page_state
from ..services.fetching import fetch_concurrently
from ..services.records import RecordSet, SnapshotCache

logger = logging.getLogger(__name__)

templates = get_templates()
router = APIRouter()

PAGE_SIZES = (5, 10, 25, 50)

PLACEHOLDER_PAGES = {
    "/analytics": "Analytics",
    "/settings": "Settings",
    "/groups/settings": "Group Settings",
    "/moderation/flags": "Content Flags",
    "/moderation/bans": "User Bans",
    "/reports/user-activity": "User Activity",
    "/reports/message-logs": "Message Logs",
}


def _render(request: Request, name: str, context: dict[str, Any], status_code: int = 200):
    context.setdefault("flashes", pop_flashes(request))
    context.setdefault("errors", [])
    return templates.TemplateResponse(request, name, context, status_code=status_code)


async def _fetch(request: Request, *calls):
    async def is_current() -> bool:
        return not await request.is_disconnected()

    return await fetch_concurrently(*calls, timeout=settings_for(request).API_TIMEOUT_SECONDS * 2, is_current=is_current)


def _split(outcome: Any, errors: list[str], default: Any = None) -> Any:
    """Return a fetch result, or record its user-facing error and return ``default``."""

    if isinstance(outcome, InvalidCredential):
        raise outcome
    if isinstance(outcome, AdminApiError):
        errors.append(outcome.user_message)
        return default
    if isinstance(outcome, BaseException):
        raise outcome
    return outcome


@router.get("/", response_class=HTMLResponse)
async def overview_page(request: Request, client: AdminApiClient = Depends(get_api_client)):
    errors: list[str] = []
    users_out, groups_out, channels_out = await _fetch(
        request, client.list_users(), client.list_groups(), client.list_channels(1, 1)
    )
    users = _split(users_out, errors, [])
    groups = _split(groups_out, errors, [])
    channel_page = _split(channels_out, errors)

    channels_total = None
    if channel_page is not None:
        pagination = channel_page.pagination
        channels_total = pagination.total_count if pagination and pagination.total_count is not None else len(channel_page.channels)

    stats = {
        "users_total": len(users),
        "users_online": sum(1 for u in users if u.is_online),
        "users_verified": sum(1 for u in users if (u.status or "").lower() == "verified"),
        "users_blocked": sum(1 for u in users if (u.status or "").lower() == "blocked"),
        "groups_total": len(groups),
        "channels_total": channels_total,
    }
    return _render(request, "overview.html", {"stats": stats, "errors": errors})


def _users_page(request: Request, records: RecordSet, errors: list[str], notices: Optional[list[dict]] = None):
    context = {
        "columns": tables.USER_COLUMNS,
        "rows": records.as_list(),
        "errors": errors,
    }
    if notices is not None:
        context["flashes"] = pop_flashes(request) + notices
    return _render(request, "users.html", context)


@router.get("/users", response_class=HTMLResponse)
async def users_page(
    request: Request,
    client: AdminApiClient = Depends(get_api_client),
    snapshots: SnapshotCache = Depends(get_snapshots),
    owner: str = Depends(current_owner),
):
    errors: list[str] = []
    (outcome,) = await _fetch(request, client.list_users())
    users = _split(outcome, errors, [])
    records = RecordSet(users, key="user_id")
    if not errors:
        snapshots.put(owner, "users", records)
    return _users_page(request, records, errors)


@router.post("/users/{user_id}/force-logout", response_class=HTMLResponse)
async def force_logout(
    request: Request,
    user_id: int,
    client: AdminApiClient = Depends(get_api_client),
    snapshots: SnapshotCache = Depends(get_snapshots),
    owner: str = Depends(current_owner),
):
    notices: list[dict] = []
    try:
        result = await client.force_logout_user(user_id)
    except InvalidCredential:
        raise
    except AdminApiError as exc:
        notices.append({"message": exc.user_message, "category": "error"})
        result = None

    records = snapshots.get(owner, "users")
    if result is not None:
        if result.status:
            logger.info("user.force_logout", extra={"extra_data": {"user_id": user_id}})
            if records is not None:
                records.patch(user_id, force_logout=1, is_online=0)
            notices.append({"message": result.message or f"User {user_id} has been logged out.", "category": "success"})
        else:
            notices.append({"message": result.message or "Failed to force logout user", "category": "error"})

    if records is None:
        # No snapshot to patch (e.g. after a restart); fall back to a fresh listing.
        for notice in notices:
            flash(request, notice["message"], notice["category"])
        return RedirectResponse(url="/users", status_code=status.HTTP_303_SEE_OTHER)
    return _users_page(request, records, [], notices)


def _notifications_url(**params: Any) -> str:
    query = {key: value for key, value in params.items() if value not in (None, "", 0)}
    return "/notifications" + (f"?{urlencode(query)}" if query else "")


@router.get("/notifications", response_class=HTMLResponse)
async def notifications_page(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    to_user_id: Optional[int] = Query(None, ge=0),
    pages: Optional[int] = Query(None, ge=1),
    client: AdminApiClient = Depends(get_api_client),
):
    errors: list[str] = []
    users_out, notes_out = await _fetch(
        request,
        client.list_users(),
        client.list_notifications(to_user_id or None, page, limit),
    )
    users = _split(users_out, errors, [])
    note_page = _split(notes_out, errors)
    notifications = note_page.notifications if note_page is not None else []
    page_state = infer_page_state(
        page,
        limit,
        len(notifications),
        note_page.pagination if note_page is not None else None,
        previous_total_pages=pages,
    )

    def page_url(target: int) -> str:
        return _notifications_url(
            page=target,
            limit=limit,
            to_user_id=to_user_id,
            pages=page_state.total_pages if page_state.estimated else None,
        )

    context = {
        "columns": tables.NOTIFICATION_COLUMNS,
        "rows": notifications,
        "users": users,
        "page_state": page_state,
        "page_url": page_url,
        "page_sizes": PAGE_SIZES,
        "types": NOTIFICATION_TYPES,
        "to_user_id": to_user_id or "",
        "errors": errors,
    }
    return _render(request, "notifications.html", context)


@router.post("/notifications", response_class=HTMLResponse)
async def send_notification(
    request: Request,
    from_user_id: str = Form(""),
    to_user_id: str = Form(""),
    title: str = Form(""),
    message: str = Form(""),
    type: str = Form("general"),
    limit: int = Form(10),
    client: AdminApiClient = Depends(get_api_client),
):
    back = _notifications_url(to_user_id=to_user_id.strip() or None, limit=limit)
    fields = [from_user_id.strip(), to_user_id.strip(), title.strip(), message.strip(), type.strip()]
    if not all(fields):
        flash(request, "All fields are required", "error")
        return RedirectResponse(url=back, status_code=status.HTTP_303_SEE_OTHER)
    try:
        payload = NotificationPayload(
            to_user_id=int(to_user_id),
            title=title.strip(),
            message=message.strip(),
            type=type.strip() if type.strip() in NOTIFICATION_TYPES else "general",
        )
    except ValueError:
        flash(request, "Recipient must be a user id", "error")
        return RedirectResponse(url=back, status_code=status.HTTP_303_SEE_OTHER)

    try:
        result = await client.send_notification(payload)
    except InvalidCredential:
        raise
    except AdminApiError as exc:
        flash(request, exc.user_message, "error")
        return RedirectResponse(url=back, status_code=status.HTTP_303_SEE_OTHER)

    if result.ok:
        # The backend derives the sender itself; the selection is kept for the audit line only.
        logger.info(
            "notification.sent",
            extra={"extra_data": {"to_user_id": payload.to_user_id, "selected_sender": from_user_id, "type": payload.type}},
        )
        flash(request, "Notification sent successfully!", "success")
    else:
        flash(request, result.message or "Unexpected response", "error")
    return RedirectResponse(url=back, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/messages", response_class=HTMLResponse)
async def messages_page(request: Request, client: AdminApiClient = Depends(get_api_client)):
    errors: list[str] = []
    (outcome,) = await _fetch(request, client.list_messages())
    messages = _split(outcome, errors, [])
    return _render(request, "messages.html", {"columns": tables.MESSAGE_COLUMNS, "rows": messages, "errors": errors})


@router.get("/groups/manage", response_class=HTMLResponse)
async def groups_page(
    request: Request,
    group_id: Optional[int] = Query(None),
    client: AdminApiClient = Depends(get_api_client),
):
    errors: list[str] = []
    calls = [client.list_groups()]
    if group_id is not None:
        calls.append(client.list_group_members(group_id))
    outcomes = await _fetch(request, *calls)
    groups = _split(outcomes[0], errors, [])
    members = _split(outcomes[1], errors, []) if group_id is not None else None
    selected = next((g for g in groups if g.group_id == group_id), None)
    context = {
        "columns": tables.GROUP_COLUMNS,
        "rows": groups,
        "member_columns": tables.GROUP_MEMBER_COLUMNS,
        "members": members,
        "selected_group": selected,
        "group_id": group_id,
        "errors": errors,
    }
    return _render(request, "groups.html", context)


@router.get("/groups/{group_id}/members", response_class=HTMLResponse)
async def group_members_partial(request: Request, group_id: int, client: AdminApiClient = Depends(get_api_client)):
    errors: list[str] = []
    (outcome,) = await _fetch(request, client.list_group_members(group_id))
    members = _split(outcome, errors, [])
    context = {"columns": tables.GROUP_MEMBER_COLUMNS, "rows": members, "errors": errors, "offset": 0}
    return templates.TemplateResponse(request, "_table.html", context)


@router.get("/channels/manage", response_class=HTMLResponse)
async def channels_page(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    client: AdminApiClient = Depends(get_api_client),
):
    errors: list[str] = []
    (outcome,) = await _fetch(request, client.list_channels(page, limit))
    channel_page = _split(outcome, errors)
    channels = channel_page.channels if channel_page is not None else []
    page_state = infer_page_state(page, limit, len(channels), channel_page.pagination if channel_page else None)
    context = {
        "columns": tables.CHANNEL_COLUMNS,
        "rows": channels,
        "page_state": page_state,
        "page_url": lambda target: f"/channels/manage?{urlencode({'page': target, 'limit': limit})}",
        "errors": errors,
    }
    return _render(request, "channels.html", context)


@router.get("/channels/{channel_id}", response_class=HTMLResponse)
async def channel_detail_page(request: Request, channel_id: int, client: AdminApiClient = Depends(get_api_client)):
    errors: list[str] = []
    detail_out, members_out = await _fetch(
        request,
        client.get_channel_detail(channel_id),
        client.list_channel_members(channel_id, 1, 5),
    )
    channel = _split(detail_out, errors)
    members_page = _split(members_out, errors)
    context = {
        "channel": channel,
        "member_columns": tables.CHANNEL_MEMBER_COLUMNS,
        "members": members_page.members if members_page is not None else [],
        "errors": errors,
    }
    return _render(request, "channel_detail.html", context)


@router.get("/channels/{channel_id}/members", response_class=HTMLResponse)
async def channel_members_page(
    request: Request,
    channel_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(15, ge=1, le=100),
    pages: Optional[int] = Query(None, ge=1),
    client: AdminApiClient = Depends(get_api_client),
):
    errors: list[str] = []
    (outcome,) = await _fetch(request, client.list_channel_members(channel_id, page, limit))
    members_page = _split(outcome, errors)
    members = members_page.members if members_page is not None else []
    page_state = infer_page_state(
        page,
        limit,
        len(members),
        members_page.pagination if members_page is not None else None,
        previous_total_pages=pages,
    )

    def page_url(target: int) -> str:
        query = {"page": target, "limit": limit}
        if page_state.estimated and page_state.total_pages:
            query["pages"] = page_state.total_pages
        return f"/channels/{channel_id}/members?{urlencode(query)}"

    context = {
        "channel_id": channel_id,
        "channel_info": members_page.channel_info if members_page is not None else None,
        "columns": tables.CHANNEL_MEMBER_COLUMNS,
        "rows": members,
        "offset": (page - 1) * limit,
        "page_state": page_state,
        "page_url": page_url,
        "errors": errors,
    }
    return _render(request, "channel_members.html", context)


def _placeholder(title: str):
    async def placeholder_page(request: Request):
        return _render(request, "placeholder.html", {"title": title})

    return placeholder_page


for _path, _title in PLACEHOLDER_PAGES.items():
    router.add_api_route(_path, _placeholder(_title), methods=["GET"], response_class=HTMLResponse, name=_path.strip("/"))
