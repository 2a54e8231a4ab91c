from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

_EXTRA_ALLOW = ConfigDict(extra="allow", populate_by_name=True)


class User(BaseModel):
    model_config = _EXTRA_ALLOW

    id: str
    email: str
    device_id: str | None = Field(default=None, alias="deviceId")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")


class Device(BaseModel):
    model_config = _EXTRA_ALLOW

    id: str
    name: str
    user_id: str | None = Field(default=None, alias="userId")
    # Only returned for the caller's own device.
    secret: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")


class Credentials(BaseModel):
    """Body of ``/auth/login`` and ``/auth/register``."""

    email: str
    password: str


class AuthResponse(BaseModel):
    model_config = _EXTRA_ALLOW

    access_token: str
    user: User
