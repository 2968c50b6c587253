from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings, settings_for


class AdminApiError(Exception):
    """Base class for failures talking to the admin backend.

    ``user_message`` is the generic string shown on a page; pages do not
    distinguish between subclasses when rendering it.
    """

    default_message = "Request failed. Please try again."

    def __init__(self, message: str | None = None, *, user_message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.user_message = user_message or self.default_message


class NoCredential(AdminApiError):
    default_message = "Login required"


class InvalidCredential(AdminApiError):
    default_message = "Session expired. Please log in again."


class TransportFailure(AdminApiError):
    default_message = "Backend unreachable. Please try again."


class BackendRejection(AdminApiError):
    default_message = "Backend rejected the request."

    def __init__(self, status_code: int, message: str | None = None, *, user_message: str | None = None) -> None:
        super().__init__(message or f"HTTP {status_code}", user_message=user_message)
        self.status_code = status_code


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def wants_html(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return "text/html" in accept or accept in ("", "*/*")


def login_redirect(request: Request | None = None) -> RedirectResponse:
    app_settings = settings_for(request) if request is not None else settings
    return RedirectResponse(url=app_settings.LOGIN_PATH, status_code=status.HTTP_302_FOUND)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        path = request.url.path
        if wants_html(request) and not path.startswith("/api") and path != settings_for(request).LOGIN_PATH:
            return login_redirect(request)
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, details=details)


async def credential_exception_handler(request: Request, exc: AdminApiError):
    """Send the operator back through the login page.

    The credential store has already been cleared by whoever raised; the
    session gate middleware turns that into a cookie deletion on the way out.
    """

    store = getattr(request.state, "credentials", None)
    if store is not None:
        store.clear()
    if wants_html(request):
        return login_redirect(request)
    return ErrorEnvelope(
        status_code=status.HTTP_401_UNAUTHORIZED,
        code="unauthorized",
        message=exc.user_message,
    )


async def validation_exception_handler(request: Request, exc):  # type: ignore[override]
    from fastapi.exceptions import RequestValidationError

    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": exc.errors()},
        )
    raise exc
