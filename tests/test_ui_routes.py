"""Page flows through the whole app with the backend mocked out."""

import json

import pytest
from fastapi.testclient import TestClient

from chatadmin import create_app
from chatadmin.core.config import AppSettings
from chatadmin.services.credentials import fingerprint

from conftest import member_row, user_row

OWNER = fingerprint("abc123")


@pytest.fixture()
def app(backend):
    return create_app(transport=backend.transport)


@pytest.fixture()
def client(app, backend):
    backend.add("GET", "/admin/users", json=[user_row(41, "Asha"), user_row(42, "Ravi")])
    with TestClient(app, follow_redirects=False) as test_client:
        test_client.cookies.set("auth_token", "abc123")
        yield test_client


def calls_since(backend, mark):
    return [(r.method, r.url.path) for r in backend.calls[mark:]]


class TestForceLogout:
    def test_success_patches_row_without_refetch(self, app, client, backend):
        assert client.get("/users").status_code == 200
        backend.add("POST", "/api/users/force-logout", json={"status": True, "message": "User logged out"})
        mark = len(backend.calls)

        response = client.post("/users/42/force-logout")

        assert response.status_code == 200
        assert "User logged out" in response.text
        # One session check from the gate, one write; the listing is not fetched again.
        assert calls_since(backend, mark) == [
            ("GET", "/backend/admin/users"),
            ("POST", "/backend/api/users/force-logout"),
        ]
        records = app.state.snapshots.get(OWNER, "users")
        assert records.get(42).force_logout == 1
        assert records.get(42).is_online == 0
        assert records.get(41).force_logout == 0

    def test_refusal_leaves_row_unchanged(self, app, client, backend):
        client.get("/users")
        backend.add("POST", "/api/users/force-logout", json={"status": False, "message": "busy"})

        response = client.post("/users/42/force-logout")

        assert response.status_code == 200
        assert "busy" in response.text
        row = app.state.snapshots.get(OWNER, "users").get(42)
        assert row.force_logout == 0
        assert row.is_online == 1

    def test_without_snapshot_redirects_to_listing(self, client, backend):
        backend.add("POST", "/api/users/force-logout", json={"status": True})

        response = client.post("/users/42/force-logout")

        assert response.status_code == 303
        assert response.headers["location"] == "/users"
        page = client.get("/users")
        assert "User 42 has been logged out." in page.text

    def test_backend_error_is_reported(self, app, client, backend):
        client.get("/users")
        backend.add("POST", "/api/users/force-logout", status=500, json={})

        response = client.post("/users/42/force-logout")

        assert response.status_code == 200
        assert "Failed to force logout user" in response.text
        assert app.state.snapshots.get(OWNER, "users").get(42).force_logout == 0


class TestNotifications:
    def test_missing_fields_are_rejected_without_backend_call(self, client, backend):
        mark = len(backend.calls)

        response = client.post("/notifications", data={"to_user_id": "42", "title": "Hi", "message": ""})

        assert response.status_code == 303
        assert not any(path.endswith("send_notifications") for _, path in calls_since(backend, mark))

    def test_missing_fields_flash(self, client, backend):
        backend.add("GET", "/admin/notifications", json={"notifications": []})
        client.post("/notifications", data={"to_user_id": "42"})

        page = client.get("/notifications")

        assert "All fields are required" in page.text

    def test_send_success(self, client, backend):
        backend.add("POST", "/admin/send_notifications", json={"message": "Notification sent"})
        backend.add("GET", "/admin/notifications", json={"notifications": []})
        form = {
            "from_user_id": "41",
            "to_user_id": "42",
            "title": "Maintenance",
            "message": "Back soon",
            "type": "alert",
        }

        response = client.post("/notifications", data=form)

        assert response.status_code == 303
        assert response.headers["location"] == "/notifications?to_user_id=42&limit=10"
        sent = backend.requests_to("POST", "/admin/send_notifications")
        assert json.loads(sent[0].content) == {
            "to_user_id": 42,
            "title": "Maintenance",
            "message": "Back soon",
            "type": "alert",
        }
        page = client.get(response.headers["location"])
        assert "Notification sent successfully!" in page.text

    def test_send_explicit_failure(self, client, backend):
        backend.add("POST", "/admin/send_notifications", json={"success": False, "message": "Recipient muted"})
        backend.add("GET", "/admin/notifications", json={"notifications": []})
        form = {"from_user_id": "41", "to_user_id": "42", "title": "t", "message": "m", "type": "general"}

        client.post("/notifications", data=form)
        page = client.get("/notifications")

        assert "Recipient muted" in page.text
        assert "Notification sent successfully!" not in page.text

    def test_listing_filter_and_full_page(self, client, backend):
        rows = [{"id": n, "title": f"Note {n}", "message": "m"} for n in range(1, 11)]
        backend.add("GET", "/admin/notifications", json={"data": rows})

        page = client.get("/notifications?to_user_id=42&limit=10")

        assert page.status_code == 200
        assert "Note 10" in page.text
        listing = backend.requests_to("GET", "/admin/notifications")[0]
        assert listing.url.params["to_user_id"] == "42"
        assert "page=2" in page.text


def test_channel_members_page_uses_backend_totals(client, backend):
    backend.add(
        "GET",
        "/admin/channels/7/members",
        json={
            "channelInfo": {"channel_id": 7, "channel_name": "News"},
            "members": [member_row(n) for n in range(1, 16)],
            "pagination": {"page": 1, "limit": 15, "totalPages": 1, "totalCount": 15},
        },
    )

    page = client.get("/channels/7/members")

    assert page.status_code == 200
    assert "Member 15" in page.text
    assert "page=2" not in page.text


def test_failed_panel_does_not_hide_the_others(client, backend):
    backend.add("GET", "/admin/groups", status=500, json={})
    backend.add("GET", "/admin/channels", json={"channels": [], "pagination": {"totalCount": 3}})

    page = client.get("/")

    assert page.status_code == 200
    assert "Failed to fetch groups." in page.text


class TestLogin:
    def test_success_sets_cookie(self, backend):
        backend.add("POST", "/admin/login", json={"token": "tok-1"})
        app = create_app(transport=backend.transport)
        with TestClient(app, follow_redirects=False) as client:
            response = client.post("/Login", data={"email": "admin@demo.com", "password": "secret"})

        assert response.status_code == 303
        assert response.headers["location"] == "/"
        cookies = response.headers.get_list("set-cookie")
        assert any(c.startswith("auth_token=tok-1") and "HttpOnly" in c for c in cookies)

    def test_refused_shows_backend_message(self, backend):
        backend.add("POST", "/admin/login", status=401, json={"message": "Invalid credentials"})
        app = create_app(transport=backend.transport)
        with TestClient(app, follow_redirects=False) as client:
            response = client.post("/Login", data={"email": "admin@demo.com", "password": "nope"})

        assert response.status_code == 401
        assert "Invalid credentials" in response.text
        assert not any(c.startswith("auth_token=") for c in response.headers.get_list("set-cookie"))

    def test_empty_fields(self, backend):
        app = create_app(transport=backend.transport)
        with TestClient(app, follow_redirects=False) as client:
            response = client.post("/Login", data={"email": "", "password": ""})

        assert response.status_code == 400
        assert backend.calls == []

    def test_logout_clears_cookie(self, app, client):
        response = client.get("/logout")
        assert response.status_code == 302
        assert response.headers["location"] == "/Login"
        assert any(
            c.startswith("auth_token=") and "Max-Age=0" in c for c in response.headers.get_list("set-cookie")
        )


def test_messages_page(client, backend):
    backend.add(
        "GET",
        "/admin/messages",
        json={"success": True, "data": [{"message_id": 5, "sender": "Asha", "recipient": "Ravi", "message": "ping"}]},
    )

    page = client.get("/messages")

    assert page.status_code == 200
    assert "ping" in page.text


def test_group_members_partial(client, backend):
    backend.add(
        "GET",
        "/admin/groups/3/members",
        json={"data": [{"user_id": 41, "member_name": "Asha", "role_name": "admin"}]},
    )

    partial = client.get("/groups/3/members")

    assert partial.status_code == 200
    assert "Asha" in partial.text
    assert "<html" not in partial.text


def test_channel_detail_shows_recent_members(client, backend):
    backend.add("GET", "/admin/channels/7", json={"channel": {"channel_id": 7, "channel_name": "News"}})
    backend.add("GET", "/admin/channels/7/members", json=[member_row(1)])

    page = client.get("/channels/7")

    assert page.status_code == 200
    assert "News" in page.text
    assert "Member 1" in page.text
    listing = backend.requests_to("GET", "/admin/channels/7/members")[0]
    assert listing.url.params["limit"] == "5"


def test_channels_page_estimates_next_page(client, backend):
    rows = [{"channel_id": n, "channel_name": f"Channel {n}"} for n in range(1, 6)]
    backend.add("GET", "/admin/channels", json={"channels": rows})

    page = client.get("/channels/manage?limit=5")

    assert page.status_code == 200
    assert "Channel 5" in page.text
    assert "page=2" in page.text


class TestAppSettingsAreHonoured:
    @pytest.fixture()
    def custom_app(self, backend):
        app_settings = AppSettings(ADMIN_API_BASE="https://other.test/backend", LOGIN_PATH="/signin")
        return create_app(app_settings, transport=backend.transport)

    def test_pages_call_the_configured_backend(self, custom_app, backend):
        backend.add("GET", "/admin/users", json=[user_row(41, "Asha")])
        with TestClient(custom_app, follow_redirects=False) as client:
            client.cookies.set("auth_token", "abc123")
            page = client.get("/users")

        assert page.status_code == 200
        assert "Asha" in page.text
        assert len(backend.calls) == 2
        assert {r.url.host for r in backend.calls} == {"other.test"}

    def test_login_form_served_at_configured_path(self, custom_app, backend):
        with TestClient(custom_app, follow_redirects=False) as client:
            gated = client.get("/users")
            form = client.get("/signin")

        assert gated.status_code == 302
        assert gated.headers["location"] == "/signin"
        assert form.status_code == 200
        assert 'action="/signin"' in form.text
        assert backend.calls == []

    def test_login_submit_at_configured_path(self, custom_app, backend):
        backend.add("POST", "/admin/login", json={"token": "tok-1"})
        with TestClient(custom_app, follow_redirects=False) as client:
            response = client.post("/signin", data={"email": "admin@demo.com", "password": "secret"})

        assert response.status_code == 303
        assert backend.requests_to("POST", "/admin/login")[0].url.host == "other.test"

    def test_logout_and_expired_session_use_configured_path(self, custom_app, backend):
        backend.add("GET", "/admin/users", json=[user_row(41, "Asha")])
        backend.add("GET", "/admin/groups", status=401, json={"message": "expired"})
        with TestClient(custom_app, follow_redirects=False) as client:
            client.cookies.set("auth_token", "abc123")
            expired = client.get("/groups/manage", headers={"accept": "text/html"})
            client.cookies.set("auth_token", "abc123")
            logout = client.get("/logout")

        assert expired.status_code == 302
        assert expired.headers["location"] == "/signin"
        assert logout.headers["location"] == "/signin"
