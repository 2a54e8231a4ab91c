from __future__ import annotations


class FitbandError(Exception):
    """Base class for fitband errors."""


class ConfigError(FitbandError):
    """Missing credentials or settings."""


class ApiError(FitbandError):
    """Non-success HTTP response from the REST backend."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(ApiError):
    """The backend rejected the access token (HTTP 401)."""


class NotFoundError(ApiError):
    """The requested resource does not exist (HTTP 404)."""
