"""Where the operator's bearer token lives between requests.

The token is issued by the backend at login and kept in a browser cookie. Each
request gets a ``CookieCredentialStore`` bound to it; the API client and the
session gate only talk to the ``CredentialStore`` interface, so tests can hand
them a ``MemoryCredentialStore`` instead.

Lifecycle: ``set`` after a successful login, ``get`` on every API call,
``clear`` on the first 401 from any call or when the gate rejects the token.
Pending changes are written to the outgoing response by ``apply_to_response``.
"""

from __future__ import annotations

import hashlib
from typing import Protocol

from starlette.requests import Request
from starlette.responses import Response

from ..core.config import AppSettings, settings as default_settings, settings_for


class CredentialStore(Protocol):
    def get(self) -> str | None: ...

    def set(self, token: str) -> None: ...

    def clear(self) -> None: ...


def fingerprint(token: str | None) -> str | None:
    """Short, non-reversible label for a token, safe to put in logs."""

    if not token:
        return None
    return "tok:" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:10]


class MemoryCredentialStore:
    def __init__(self, token: str | None = None) -> None:
        self.token = token or None
        self.cleared = False

    def get(self) -> str | None:
        return self.token

    def set(self, token: str) -> None:
        self.token = token or None
        self.cleared = False

    def clear(self) -> None:
        self.token = None
        self.cleared = True


_UNCHANGED = object()


class CookieCredentialStore:
    def __init__(self, request: Request, app_settings: AppSettings | None = None) -> None:
        self.settings = app_settings or default_settings
        self._token = (request.cookies.get(self.settings.SESSION_COOKIE_NAME) or "").strip() or None
        self._pending: object = _UNCHANGED

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token or None
        self._pending = self._token

    def clear(self) -> None:
        self._token = None
        self._pending = None

    @property
    def cleared(self) -> bool:
        return self._pending is None

    def apply_to_response(self, response: Response) -> None:
        if self._pending is _UNCHANGED:
            return
        name = self.settings.SESSION_COOKIE_NAME
        if self._pending is None:
            response.delete_cookie(name, path="/")
            return
        response.set_cookie(
            name,
            str(self._pending),
            max_age=self.settings.SESSION_MAX_AGE,
            path="/",
            httponly=True,
            secure=self.settings.is_production,
            samesite="strict" if self.settings.is_production else "lax",
        )


def store_for_request(request: Request) -> CredentialStore:
    """Return the store the session gate attached, creating one if it did not run."""

    store = getattr(request.state, "credentials", None)
    if store is None:
        store = CookieCredentialStore(request, settings_for(request))
        request.state.credentials = store
    return store
