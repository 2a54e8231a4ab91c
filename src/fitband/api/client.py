"""Async HTTP transport for the fitband REST backend."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from fitband.api.errors import ApiError, AuthError, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class FitbandClient:
    """Thin JSON client: base URL, bearer token, status-code mapping.

    *on_unauthorized* runs on every 401 before :class:`AuthError` is raised,
    so the caller can drop stale credentials.
    """

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self._on_unauthorized = on_unauthorized
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    async def __aenter__(self) -> FitbandClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, *, json: dict[str, Any] | None = None) -> Any:
        return await self._request("POST", path, json=json)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        logger.debug("%s %s", method, path)
        try:
            response = await self._http.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        status = response.status_code
        if status == 401:
            if self._on_unauthorized is not None:
                self._on_unauthorized()
            raise AuthError(_error_message(response, "Unauthorized"), status_code=status)
        if status == 404:
            raise NotFoundError(_error_message(response, "Not found"), status_code=status)
        if status >= 400:
            raise ApiError(
                _error_message(response, f"HTTP {status}"),
                status_code=status,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                f"{method} {path} returned a non-JSON body", status_code=status
            ) from exc


def _error_message(response: httpx.Response, default: str) -> str:
    """Pull ``message`` out of a JSON error body when there is one."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, list):
            return "; ".join(str(m) for m in message)
        if message:
            return str(message)
    return default
