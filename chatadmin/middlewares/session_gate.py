"""Per-request authorization checkpoint for the admin pages.

Every navigation goes through ``SessionGate.evaluate`` exactly once; page
handlers never re-check the credential themselves. Each request starts
unauthenticated, nothing is cached between requests, and a failed validation
is final for that request.

Decision order:

1. public asset paths are allowed (strict mode: they need a credential
   unless the login page asked for them, otherwise a bare 401);
2. the login page is always allowed;
3. exempt prefixes and paths outside the protected set are allowed;
4. a protected path without a credential is redirected to login;
5. a credential is checked against the backend; rejection, a network error
   or a malformed answer all lead to the same redirect (or 401 for assets).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional
from urllib.parse import urlsplit

from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from ..core.config import AppSettings, settings as default_settings
from ..core.errors import ErrorEnvelope
from ..services.credentials import CookieCredentialStore, fingerprint
from .request_id import principal_ctx_var

logger = logging.getLogger("chatadmin.gate")

Validator = Callable[[str], Awaitable[bool]]


class Validation(str, enum.Enum):
    ABSENT = "absent"
    VALID = "valid"
    INVALID = "invalid"


class GateState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    VALIDATING = "validating"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


class Outcome(str, enum.Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class GateDecision:
    outcome: Outcome
    reason: str
    validation: Optional[Validation] = None

    @property
    def state(self) -> GateState:
        return GateState.AUTHENTICATED if self.outcome is Outcome.ALLOW else GateState.REJECTED

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW


def _matches(path: str, prefix: str) -> bool:
    prefix = prefix.rstrip("/")
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True)
class GatePolicy:
    """Which paths the gate guards. An empty ``protected_prefixes`` protects everything."""

    login_path: str = "/Login"
    asset_prefixes: tuple[str, ...] = ("/static/", "/favicon.ico")
    exempt_prefixes: tuple[str, ...] = ("/api/", "/health", "/metrics")
    protected_prefixes: tuple[str, ...] = field(default_factory=tuple)
    strict_assets: bool = False

    @classmethod
    def from_settings(cls, app_settings: AppSettings) -> "GatePolicy":
        return cls(
            login_path=app_settings.LOGIN_PATH,
            asset_prefixes=tuple(app_settings.PUBLIC_ASSET_PREFIXES),
            exempt_prefixes=tuple(app_settings.GATE_EXEMPT_PREFIXES),
            protected_prefixes=tuple(app_settings.GATE_PROTECTED_PREFIXES),
            strict_assets=app_settings.GATE_STRICT_ASSETS,
        )

    def is_asset(self, path: str) -> bool:
        return any(_matches(path, prefix) for prefix in self.asset_prefixes)

    def is_login(self, path: str) -> bool:
        return path.rstrip("/") == self.login_path.rstrip("/")

    def is_protected(self, path: str) -> bool:
        if any(_matches(path, prefix) for prefix in self.exempt_prefixes):
            return False
        if not self.protected_prefixes:
            return True
        return any(_matches(path, prefix) for prefix in self.protected_prefixes)

    def came_from_login(self, referer: Optional[str]) -> bool:
        if not referer:
            return False
        return self.is_login(urlsplit(referer).path or "/")


class SessionGate:
    def __init__(self, policy: GatePolicy, validator: Validator) -> None:
        self.policy = policy
        self.validator = validator

    async def _validate(self, credential: str) -> Validation:
        try:
            valid = await self.validator(credential)
        except Exception:  # the validator should not raise; if it does, fail closed
            logger.exception("gate.validator_error")
            return Validation.INVALID
        return Validation.VALID if valid else Validation.INVALID

    async def evaluate(
        self,
        path: str,
        credential: Optional[str],
        referer: Optional[str] = None,
    ) -> GateDecision:
        policy = self.policy
        credential = credential or None

        if policy.is_asset(path):
            if not policy.strict_assets:
                return GateDecision(Outcome.ALLOW, "public")
            if policy.came_from_login(referer):
                return GateDecision(Outcome.ALLOW, "login_asset")
            if credential is None:
                return GateDecision(Outcome.UNAUTHORIZED, "absent", Validation.ABSENT)
            validation = await self._validate(credential)
            if validation is Validation.VALID:
                return GateDecision(Outcome.ALLOW, "valid", validation)
            return GateDecision(Outcome.UNAUTHORIZED, "invalid", validation)

        if policy.is_login(path):
            return GateDecision(Outcome.ALLOW, "login")
        if not policy.is_protected(path):
            return GateDecision(Outcome.ALLOW, "unprotected")
        if credential is None:
            return GateDecision(Outcome.REDIRECT, "absent", Validation.ABSENT)

        validation = await self._validate(credential)
        if validation is Validation.VALID:
            return GateDecision(Outcome.ALLOW, "valid", validation)
        return GateDecision(Outcome.REDIRECT, "invalid", validation)


class SessionGateMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, gate: SessionGate, app_settings: AppSettings | None = None) -> None:  # type: ignore[override]
        super().__init__(app)
        self.gate = gate
        self.settings = app_settings or default_settings

    def _rejection(self, decision: GateDecision) -> Response:
        if decision.outcome is Outcome.UNAUTHORIZED:
            return ErrorEnvelope(
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="unauthorized",
                message="Login required",
            )
        return RedirectResponse(url=self.gate.policy.login_path, status_code=status.HTTP_302_FOUND)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        store = CookieCredentialStore(request, self.settings)
        request.state.credentials = store
        credential = store.get()
        decision = await self.gate.evaluate(request.url.path, credential, request.headers.get("referer"))
        request.state.gate_outcome = decision.reason

        if decision.allowed:
            if decision.validation is Validation.VALID:
                principal = fingerprint(credential)
                request.state.principal = principal
                principal_ctx_var.set(principal)
            logger.debug(
                "gate.allowed",
                extra={"extra_data": {"path": request.url.path, "reason": decision.reason}},
            )
            response = await call_next(request)
        else:
            if credential is not None:
                store.clear()
            logger.info(
                "gate.rejected",
                extra={
                    "extra_data": {
                        "path": request.url.path,
                        "reason": decision.reason,
                        "outcome": decision.outcome.value,
                        "principal": fingerprint(credential),
                    }
                },
            )
            response = self._rejection(decision)

        store.apply_to_response(response)
        return response
