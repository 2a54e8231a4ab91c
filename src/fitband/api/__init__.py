"""REST client for the fitband backend."""

from __future__ import annotations

from fitband.api.account import AccountAPI
from fitband.api.client import FitbandClient
from fitband.api.devices import DeviceAPI
from fitband.api.errors import ApiError, AuthError, ConfigError, FitbandError, NotFoundError

__all__ = [
    "AccountAPI",
    "ApiError",
    "AuthError",
    "ConfigError",
    "DeviceAPI",
    "FitbandClient",
    "FitbandError",
    "NotFoundError",
]
