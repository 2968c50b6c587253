from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class Group(BaseModel):
    group_id: int
    group_name: str = ""
    creator_name: str = ""
    member_count: int = 0
    created_at: Optional[str] = None
    group_dp: Optional[str] = None
    creator_id: Optional[int] = None
    creator_dp: Optional[str] = None


class GroupMember(BaseModel):
    user_id: int
    member_name: str = ""
    phone_number: str = ""
    email: Optional[str] = None
    role_name: str = ""
    added_on: Optional[str] = None
    is_active: int = 0
