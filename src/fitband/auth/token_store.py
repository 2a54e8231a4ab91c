"""Keyring-backed session credential persistence."""

from __future__ import annotations

import contextlib
import json
import logging
from typing import TYPE_CHECKING

import keyring
from keyring.errors import PasswordDeleteError
from pydantic import ValidationError

from fitband.models.api import User

if TYPE_CHECKING:
    from fitband.models.api import AuthResponse

logger = logging.getLogger(__name__)

SERVICE_NAME = "fitband"


class TokenStore:
    """Read / write the backend access token and user via the OS keyring."""

    def __init__(self, profile: str = "default") -> None:
        self._profile = profile

    # -- key helpers ---------------------------------------------------------

    def _key(self, name: str) -> str:
        return f"{self._profile}/{name}"

    # -- properties ----------------------------------------------------------

    @property
    def token(self) -> str | None:
        """Return the stored access token, or *None*."""
        return keyring.get_password(SERVICE_NAME, self._key("token"))

    @property
    def user(self) -> User | None:
        """Return the stored user, or *None* if missing or unreadable."""
        raw = keyring.get_password(SERVICE_NAME, self._key("user"))
        if raw is None:
            return None
        try:
            return User.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Ignoring unreadable stored user for profile %s", self._profile)
            return None

    @property
    def is_authenticated(self) -> bool:
        """Return *True* if an access token is stored."""
        return bool(self.token)

    # -- mutators ------------------------------------------------------------

    def save(self, auth: AuthResponse) -> None:
        """Persist the token and user from a login / register response."""
        keyring.set_password(SERVICE_NAME, self._key("token"), auth.access_token)
        keyring.set_password(
            SERVICE_NAME,
            self._key("user"),
            auth.user.model_dump_json(by_alias=True),
        )

    def clear(self) -> None:
        """Delete all stored credentials, ignoring missing entries."""
        for name in ("token", "user"):
            with contextlib.suppress(PasswordDeleteError):
                keyring.delete_password(SERVICE_NAME, self._key(name))
