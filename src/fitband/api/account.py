"""Account operations: register, login, profile."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fitband.models.api import AuthResponse, Credentials, User

if TYPE_CHECKING:
    from fitband.api.client import FitbandClient


class AccountAPI:
    """Account-related API operations (composition over FitbandClient)."""

    def __init__(self, client: FitbandClient) -> None:
        self._client = client

    async def register(self, credentials: Credentials) -> AuthResponse:
        data = await self._client.post("/auth/register", json=credentials.model_dump())
        return AuthResponse.model_validate(data)

    async def login(self, credentials: Credentials) -> AuthResponse:
        data = await self._client.post("/auth/login", json=credentials.model_dump())
        return AuthResponse.model_validate(data)

    async def get_profile(self) -> User:
        """Fetch the logged-in user (the backend exposes this as a POST)."""
        data = await self._client.post("/auth/profile")
        return User.model_validate(data)
