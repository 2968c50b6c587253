from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    user_id: int
    name: str = ""
    phone_number: str = ""
    email: Optional[str] = None
    profile_picture_url: Optional[str] = None
    status: str = ""
    created_at: Optional[str] = None
    last_seen: Optional[str] = None
    is_online: int = 0
    force_logout: int = 0
    logged_in_status: int = 0
    last_logged_in: Optional[str] = None


class ForceLogoutResult(BaseModel):
    status: bool = False
    message: Optional[str] = None
