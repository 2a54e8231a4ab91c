"""Shared helpers for building API clients and channel sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fitband.api.account import AccountAPI
from fitband.api.client import FitbandClient
from fitband.api.devices import DeviceAPI
from fitband.api.errors import ConfigError
from fitband.auth.token_store import TokenStore
from fitband.channel.session import ChannelSession
from fitband.models.config import AppSettings

if TYPE_CHECKING:
    from fitband.cli.main import AppContext

logger = logging.getLogger(__name__)


def get_token_store(app_ctx: AppContext) -> TokenStore:
    return TokenStore(profile=app_ctx.profile)


def get_client(app_ctx: AppContext, *, require_auth: bool = True) -> FitbandClient:
    """Build a :class:`FitbandClient` from settings / token store.

    A 401 from the backend clears the stored credentials, so the next command
    asks the user to log in again.
    """
    settings = AppSettings()
    store = get_token_store(app_ctx)

    access_token = settings.access_token or store.token
    if require_auth and not access_token:
        raise ConfigError(
            "Not logged in. Run 'fitband auth login' or set FITBAND_ACCESS_TOKEN."
        )

    def _on_unauthorized() -> None:
        logger.info("Access token rejected; clearing stored credentials")
        store.clear()

    return FitbandClient(
        settings.api_base_url,
        access_token=access_token,
        on_unauthorized=_on_unauthorized,
    )


def get_device_api(app_ctx: AppContext) -> tuple[FitbandClient, DeviceAPI]:
    """Build a :class:`FitbandClient` + :class:`DeviceAPI`."""
    client = get_client(app_ctx)
    return client, DeviceAPI(client)


def get_account_api(
    app_ctx: AppContext, *, require_auth: bool = True
) -> tuple[FitbandClient, AccountAPI]:
    """Build a :class:`FitbandClient` + :class:`AccountAPI`."""
    client = get_client(app_ctx, require_auth=require_auth)
    return client, AccountAPI(client)


def build_session() -> ChannelSession:
    """Build a fresh channel session owned by the calling command."""
    return ChannelSession.from_settings(AppSettings())
