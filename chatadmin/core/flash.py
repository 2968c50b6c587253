from __future__ import annotations

from starlette.requests import Request

FLASH_KEY = "_flashes"


def flash(request: Request, message: str, category: str = "info") -> None:
    """Queue a one-shot message for the next rendered page (POST/redirect/GET)."""

    queued = list(request.session.get(FLASH_KEY, []))
    queued.append({"message": message, "category": category})
    request.session[FLASH_KEY] = queued


def pop_flashes(request: Request) -> list[dict[str, str]]:
    if "session" not in request.scope:
        return []
    return request.session.pop(FLASH_KEY, [])
