from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .pagination import Pagination


class Channel(BaseModel):
    channel_id: int
    channel_name: str = ""
    description: Optional[str] = None
    created_by: Optional[str] = None
    creator_name: Optional[str] = None
    created_at: Optional[str] = None
    firebase_channel_id: Optional[str] = None
    channel_dp: Optional[str] = None
    is_public: int = 0
    max_members: Optional[int] = None
    total_members: int = 0
    delete_status: int = 0
    deleted_at: Optional[str] = None


class ChannelInfo(BaseModel):
    channel_id: int
    channel_name: str = ""
    channel_dp: Optional[str] = None


class ChannelMember(BaseModel):
    member_id: Optional[int] = None
    user_id: int
    role_id: Optional[int] = None
    joined_at: Optional[str] = None
    is_active: int = 0
    email: Optional[str] = None
    name: str = ""
    removed_at: Optional[str] = None
    role_name: str = ""


class ChannelPage(BaseModel):
    channels: list[Channel] = Field(default_factory=list)
    pagination: Optional[Pagination] = None


class ChannelMembersPage(BaseModel):
    channel_info: Optional[ChannelInfo] = None
    members: list[ChannelMember] = Field(default_factory=list)
    pagination: Optional[Pagination] = None
