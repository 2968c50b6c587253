from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..core.config import AppSettings
from ..core.errors import BackendRejection, InvalidCredential, TransportFailure
from ..schemas.auth import LoginRequest, LoginResponse
from ..schemas.channels import Channel, ChannelInfo, ChannelMember, ChannelMembersPage, ChannelPage
from ..schemas.groups import Group, GroupMember
from ..schemas.messages import Message
from ..schemas.notifications import Notification, NotificationPage, NotificationPayload, SendResult
from ..schemas.pagination import Pagination
from ..schemas.users import ForceLogoutResult, User
from .credentials import CredentialStore, MemoryCredentialStore, fingerprint
from .envelopes import (
    extract_list,
    extract_members,
    extract_notifications,
    extract_pagination,
    is_send_success,
    parse_records,
)

logger = logging.getLogger(__name__)

VALIDATE_PATH = "/admin/users"
LOGIN_FAILED = "Login failed. Please try again."

NOTIFICATION_ROUTES = {
    False: ("/admin/notifications", "/admin/send_notifications"),
    True: ("/api/notification/notifications", "/api/notification/send_notification"),
}


class AdminApiClient:
    """Async client for the chat backend's admin endpoints.

    Every call sends ``Authorization: Bearer <token>`` when the credential
    store holds a token. A 401 from any call clears the store and raises
    ``InvalidCredential``.
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialStore | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        legacy_notification_routes: bool = False,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials if credentials is not None else MemoryCredentialStore()
        self.timeout = timeout
        self.transport = transport
        self.notifications_path, self.send_notification_path = NOTIFICATION_ROUTES[legacy_notification_routes]

    @classmethod
    def from_settings(
        cls,
        app_settings: AppSettings,
        credentials: CredentialStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "AdminApiClient":
        return cls(
            app_settings.api_base_url,
            credentials,
            timeout=app_settings.API_TIMEOUT_SECONDS,
            transport=transport,
            legacy_notification_routes=app_settings.NOTIFICATIONS_LEGACY_ROUTES,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.credentials.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _check_status(self, response: httpx.Response, context: str, failure_message: str) -> None:
        if response.status_code == 401:
            logger.warning("Admin API rejected credential during %s", context)
            self.credentials.clear()
            raise InvalidCredential(f"401 during {context}")
        if response.status_code >= 500:
            logger.error("Admin API server error %s during %s", response.status_code, context)
        elif response.status_code >= 400:
            logger.error("Admin API request error %s during %s", response.status_code, context)
        if response.status_code >= 400:
            raise BackendRejection(response.status_code, f"HTTP {response.status_code} during {context}", user_message=failure_message)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        context: str,
        failure_message: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, params=params, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.error("Admin API unreachable during %s: %s", context, exc)
            raise TransportFailure(f"{context}: {exc}", user_message=failure_message) from exc
        self._check_status(response, context, failure_message)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Admin API returned a non-JSON body during %s", context)
            raise TransportFailure(f"{context}: malformed body", user_message=failure_message) from exc

    async def validate_session(self, credential: str | None) -> bool:
        """Ask the backend whether ``credential`` is still accepted. Never raises."""

        if not credential:
            return False
        headers = {
            "Authorization": f"Bearer {credential}",
            "Accept": "application/json",
            "Cache-Control": "no-store",
        }
        try:
            async with self._client() as client:
                response = await client.get(VALIDATE_PATH, headers=headers)
        except Exception as exc:  # fail closed on anything, including bad URLs
            logger.warning(
                "session.validate_failed",
                extra={"extra_data": {"principal": fingerprint(credential), "error": type(exc).__name__}},
            )
            return False
        if response.status_code == 401:
            return False
        return True

    async def login(self, email: str, password: str) -> str:
        """Exchange operator credentials for a bearer token."""

        try:
            async with self._client() as client:
                response = await client.post(
                    "/admin/login",
                    json=LoginRequest(email=email, password=password).model_dump(),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.error("Admin login unreachable: %s", exc)
            raise TransportFailure(str(exc), user_message=LOGIN_FAILED) from exc
        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}
        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            logger.info("Admin login refused with HTTP %s", response.status_code)
            raise BackendRejection(response.status_code, user_message=message or LOGIN_FAILED)
        try:
            return LoginResponse.model_validate(body).token
        except ValidationError as exc:
            raise TransportFailure("login response carried no token", user_message=LOGIN_FAILED) from exc

    async def list_users(self) -> List[User]:
        body = await self._request(
            "GET", "/admin/users", context="list_users", failure_message="Failed to fetch users."
        )
        return parse_records(User, extract_list(body, "users"), "users")

    async def list_messages(self) -> List[Message]:
        failure = "Failed to fetch messages. Please try again."
        body = await self._request("GET", "/admin/messages", context="list_messages", failure_message=failure)
        if not isinstance(body, dict) or body.get("success") is not True:
            raise BackendRejection(200, "messages response without success flag", user_message=failure)
        return parse_records(Message, extract_list(body, "messages"), "messages")

    async def list_groups(self) -> List[Group]:
        body = await self._request(
            "GET", "/admin/groups", context="list_groups", failure_message="Failed to fetch groups."
        )
        return parse_records(Group, extract_list(body, "groups"), "groups")

    async def list_group_members(self, group_id: int) -> List[GroupMember]:
        body = await self._request(
            "GET",
            f"/admin/groups/{group_id}/members",
            context="list_group_members",
            failure_message="Failed to fetch group members.",
        )
        return parse_records(GroupMember, extract_list(body, "group_members"), "group_members")

    async def list_channels(self, page: int = 1, limit: int = 10) -> ChannelPage:
        body = await self._request(
            "GET",
            "/admin/channels",
            params={"page": page, "limit": limit},
            context="list_channels",
            failure_message="Failed to fetch channels.",
        )
        rows = body.get("channels") if isinstance(body, dict) else None
        if not isinstance(rows, list):
            rows = extract_list(body, "channels")
        pagination = None
        if isinstance(body, dict) and isinstance(body.get("pagination"), dict):
            pagination = Pagination.model_validate(body["pagination"])
        return ChannelPage(channels=parse_records(Channel, rows, "channels"), pagination=pagination)

    async def get_channel_detail(self, channel_id: int) -> Channel:
        failure = "Failed to fetch channel details."
        body = await self._request(
            "GET", f"/admin/channels/{channel_id}", context="get_channel_detail", failure_message=failure
        )
        raw = body.get("channel") if isinstance(body, dict) else None
        if not isinstance(raw, dict):
            raise BackendRejection(200, "channel detail without channel object", user_message=failure)
        return Channel.model_validate(raw)

    async def list_channel_members(self, channel_id: int, page: int = 1, limit: int = 15) -> ChannelMembersPage:
        body = await self._request(
            "GET",
            f"/admin/channels/{channel_id}/members",
            params={"page": page, "limit": limit},
            context="list_channel_members",
            failure_message="Failed to fetch channel members.",
        )
        channel_info = None
        if isinstance(body, dict) and isinstance(body.get("channelInfo"), dict):
            channel_info = parse_records(ChannelInfo, [body["channelInfo"]], "channel_info")
        return ChannelMembersPage(
            channel_info=channel_info[0] if channel_info else None,
            members=parse_records(ChannelMember, extract_members(body), "channel_members"),
            pagination=extract_pagination(body, page, limit),
        )

    async def list_notifications(
        self,
        to_user_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> NotificationPage:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if to_user_id:
            params["to_user_id"] = to_user_id
        body = await self._request(
            "GET",
            self.notifications_path,
            params=params,
            context="list_notifications",
            failure_message="Failed to fetch notifications. Please try again.",
        )
        rows, container = extract_notifications(body)
        return NotificationPage(
            notifications=parse_records(Notification, rows, "notifications"),
            pagination=extract_pagination(container, page, limit) if container is not None else None,
        )

    async def send_notification(self, payload: NotificationPayload) -> SendResult:
        body = await self._request(
            "POST",
            self.send_notification_path,
            json=payload.model_dump(),
            context="send_notification",
            failure_message="Failed to send notification. Please try again.",
        )
        raw = body if isinstance(body, dict) else {}
        return SendResult(ok=is_send_success(body), message=str(raw.get("message") or ""), raw=raw)

    async def force_logout_user(self, user_id: int) -> ForceLogoutResult:
        body = await self._request(
            "POST",
            "/api/users/force-logout",
            json={"user_id": user_id},
            context="force_logout_user",
            failure_message="Failed to force logout user",
        )
        if not isinstance(body, dict):
            return ForceLogoutResult(status=False, message="Failed to force logout user")
        try:
            return ForceLogoutResult.model_validate(body)
        except ValidationError:
            return ForceLogoutResult(status=False, message=str(body.get("message") or "Failed to force logout user"))
