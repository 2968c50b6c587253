import sys
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chatadmin.services.credentials import MemoryCredentialStore

BASE_URL = "https://backend.test/backend"


class FakeBackend:
    """Stand-in for the chat backend, served through ``httpx.MockTransport``.

    Routes are keyed by method and path relative to ``/backend``. A route is
    either ``(status, json_body)``, an exception class to raise, or a callable
    taking the ``httpx.Request``.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, json: Any = None) -> None:
        self.routes[(method.upper(), path)] = (status, json)

    def fail(self, method: str, path: str, exc: type[Exception] = httpx.ConnectError) -> None:
        self.routes[(method.upper(), path)] = exc

    def handle(self, method: str, path: str, fn: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method.upper(), path)] = fn

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path
        if path.startswith("/backend"):
            path = path[len("/backend"):]
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(route, type) and issubclass(route, Exception):
            raise route("backend down", request=request)
        if callable(route):
            return route(request)
        status, body = route
        if isinstance(body, (str, bytes)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.calls
            if r.method == method.upper() and r.url.path.endswith(path)
        ]


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def store() -> MemoryCredentialStore:
    return MemoryCredentialStore("abc123")


def user_row(user_id: int, name: Optional[str] = None, **overrides: Any) -> dict[str, Any]:
    row = {
        "user_id": user_id,
        "name": name or f"User {user_id}",
        "phone_number": f"+91 90000000{user_id:02d}",
        "email": None,
        "profile_picture_url": None,
        "status": "verified",
        "created_at": "2025-09-01T10:00:00.000Z",
        "public_key": None,
        "key_created_at": None,
        "last_seen": "2025-09-13T17:23:48.000Z",
        "is_online": True,
        "force_logout": 0,
        "logged_in_status": 1,
        "last_logged_in": "2025-09-13T17:00:00.000Z",
    }
    row.update(overrides)
    return row


def member_row(member_id: int) -> dict[str, Any]:
    return {
        "member_id": member_id,
        "user_id": 100 + member_id,
        "role_id": 2,
        "joined_at": "2025-09-10T08:00:00.000Z",
        "is_active": 1,
        "email": None,
        "name": f"Member {member_id}",
        "removed_at": None,
        "role_name": "member",
    }
