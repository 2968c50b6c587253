from __future__ import annotations

from .request_id import RequestIdMiddleware, principal_ctx_var, request_id_ctx_var
from .security_headers import SecurityHeadersMiddleware
from .session_gate import GatePolicy, SessionGate, SessionGateMiddleware

__all__ = [
    "GatePolicy",
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
    "SessionGate",
    "SessionGateMiddleware",
    "request_id_ctx_var",
    "principal_ctx_var",
]
