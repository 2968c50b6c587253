from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Message(BaseModel):
    message_id: int
    sender: str = ""
    recipient: str = ""
    message: str = ""
    timestamp: Optional[str] = None
    status: str = ""
    actions: list[str] = Field(default_factory=list)
