"""Column definitions for the generic ``_table.html`` renderer.

A page hands the partial a list of ``Column`` objects and a list of records;
each column knows how to turn one record into one cell.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from markupsafe import Markup, escape

from . import jinja

CellFn = Callable[[Any, int], Any]


@dataclass(frozen=True)
class Column:
    header: str
    key: Optional[str] = None
    cell: Optional[CellFn] = None
    css: str = ""

    def render(self, record: Any, index: int) -> Any:
        if self.cell is not None:
            return self.cell(record, index)
        value = getattr(record, self.key, None) if self.key else None
        return "" if value is None else value


def serial() -> Column:
    return Column("S.No", cell=lambda record, index: index, css="num")


def link(header: str, key: str, href: Callable[[Any], str]) -> Column:
    return Column(
        header,
        cell=lambda record, index: Markup('<a href="{}">{}</a>').format(href(record), escape(getattr(record, key, ""))),
    )


def formatted(header: str, key: str, fn: Callable[[Any], Any]) -> Column:
    return Column(header, cell=lambda record, index: fn(getattr(record, key, None)))


def _force_logout_cell(user: Any, index: int) -> Markup:
    if user.force_logout:
        return jinja.badge("Logged out", "error")
    return Markup(
        '<form method="post" action="/users/{}/force-logout" class="inline">'
        '<button type="submit" class="btn btn-danger btn-sm">Force logout</button></form>'
    ).format(user.user_id)


USER_COLUMNS: Sequence[Column] = (
    serial(),
    Column("User ID", "user_id"),
    Column("Name", "name"),
    Column("Phone Number", "phone_number"),
    formatted("Status", "status", jinja.status_badge),
    formatted("Last Seen", "last_seen", jinja.time_ago),
    formatted("Online", "is_online", jinja.yes_no),
    formatted("Last Logged In", "last_logged_in", jinja.fmt_dt),
    Column("Action", cell=_force_logout_cell),
)

GROUP_COLUMNS: Sequence[Column] = (
    serial(),
    Column("Group ID", "group_id"),
    link("Group Name", "group_name", lambda g: f"/groups/manage?group_id={g.group_id}"),
    Column("Creator", "creator_name"),
    Column("Members", "member_count", css="num"),
    formatted("Created", "created_at", jinja.fmt_date),
)

GROUP_MEMBER_COLUMNS: Sequence[Column] = (
    serial(),
    Column("User ID", "user_id"),
    Column("Name", "member_name"),
    Column("Phone Number", "phone_number"),
    Column("Role", "role_name"),
    formatted("Added On", "added_on", jinja.fmt_date),
    formatted("Active", "is_active", jinja.yes_no),
)

CHANNEL_COLUMNS: Sequence[Column] = (
    serial(),
    Column("Channel ID", "channel_id"),
    link("Channel Name", "channel_name", lambda c: f"/channels/{c.channel_id}"),
    Column("Creator", cell=lambda c, i: c.creator_name or c.created_by or ""),
    formatted("Public", "is_public", jinja.yes_no),
    Column("Members", "total_members", css="num"),
    formatted("Created", "created_at", jinja.fmt_date),
    formatted("Deleted", "delete_status", jinja.yes_no),
)

CHANNEL_MEMBER_COLUMNS: Sequence[Column] = (
    serial(),
    Column("User ID", "user_id"),
    Column("Name", "name"),
    Column("Email", "email"),
    Column("Role", "role_name"),
    formatted("Joined", "joined_at", jinja.fmt_dt),
    formatted("Active", "is_active", jinja.yes_no),
    formatted("Removed", "removed_at", jinja.fmt_dt),
)

NOTIFICATION_COLUMNS: Sequence[Column] = (
    Column("ID", "id"),
    Column("From", cell=lambda n, i: n.from_username or n.from_user_id or "System"),
    Column("To", cell=lambda n, i: n.to_username or n.to_user_id or ""),
    Column("Title", "title"),
    Column("Message", "message"),
    formatted("Type", "type", lambda value: jinja.badge(value or "general", "light")),
    formatted("Created", "created_at", jinja.fmt_dt),
)

MESSAGE_COLUMNS: Sequence[Column] = (
    Column("ID", "message_id"),
    Column("Sender", "sender"),
    Column("Recipient", "recipient"),
    Column("Message", "message"),
    formatted("Sent", "timestamp", jinja.fmt_dt),
    Column("Status", "status"),
)
