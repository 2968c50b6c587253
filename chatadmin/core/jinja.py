"""Jinja2 environment shared by every page, plus the display filters it needs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates
from markupsafe import Markup, escape

from .config import settings

_LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None

_STATUS_BADGES = {
    "verified": ("Verified", "success"),
    "blocked": ("Blocked", "error"),
}


def _to_dt(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    # Backend timestamps without an offset are UTC.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    if _LOCAL_TZ:
        dt = dt.astimezone(_LOCAL_TZ)
    return dt


def fmt_dt(value: Any, fmt: str = "%d %b %Y, %I:%M:%S %p") -> str:
    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else "Never"


def fmt_date(value: Any, fmt: str = "%d %b %Y") -> str:
    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else "N/A"


def time_ago(value: Any, now: datetime | None = None) -> str:
    """Rough "5 minutes ago" wording for last-seen style columns."""

    dt = _to_dt(value)
    if dt is None:
        return "Never"
    now = now or datetime.now(timezone.utc)
    seconds = int((now - dt).total_seconds())
    if seconds < 0:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "less than a minute ago"


def badge(label: Any, color: str = "light") -> Markup:
    return Markup('<span class="badge badge-{}">{}</span>').format(color, escape(label))


def status_badge(value: Any) -> Markup:
    label, color = _STATUS_BADGES.get(str(value or "").lower(), ("Unverified", "warning"))
    return badge(label, color)


def yes_no(value: Any) -> Markup:
    return badge("Yes", "success") if value else badge("No", "light")


def get_templates() -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with our standard filters registered."""

    templates = Jinja2Templates(directory=str(settings.TEMPLATES_DIR))
    env = templates.env
    env.filters["fmt_dt"] = fmt_dt
    env.filters["fmt_date"] = fmt_date
    env.filters["time_ago"] = time_ago
    env.filters["status_badge"] = status_badge
    env.filters["yes_no"] = yes_no
    env.globals["app_name"] = settings.APP_NAME
    return templates
