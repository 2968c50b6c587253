from __future__ import annotations

from fastapi import Depends, Request

from ..core.config import settings_for
from ..core.errors import NoCredential
from ..services.api_client import AdminApiClient
from ..services.credentials import CredentialStore, fingerprint, store_for_request
from ..services.records import SnapshotCache


def get_credential_store(request: Request) -> CredentialStore:
    return store_for_request(request)


def get_api_client(
    request: Request,
    credentials: CredentialStore = Depends(get_credential_store),
) -> AdminApiClient:
    transport = getattr(request.app.state, "api_transport", None)
    return AdminApiClient.from_settings(settings_for(request), credentials, transport=transport)


def get_snapshots(request: Request) -> SnapshotCache:
    return request.app.state.snapshots


def require_credential(credentials: CredentialStore = Depends(get_credential_store)) -> str:
    """Token of the current operator; the gate has already validated it."""

    token = credentials.get()
    if not token:
        raise NoCredential()
    return token


def current_owner(token: str = Depends(require_credential)) -> str:
    return fingerprint(token) or ""
