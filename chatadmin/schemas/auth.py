from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"email": "admin@demo.com", "password": "123456"}
        },
    }


class LoginResponse(BaseModel):
    token: str = Field(..., min_length=1)
