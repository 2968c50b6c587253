from .auth import current_owner, get_api_client, get_credential_store, get_snapshots, require_credential

__all__ = [
    "current_owner",
    "get_api_client",
    "get_credential_store",
    "get_snapshots",
    "require_credential",
]
