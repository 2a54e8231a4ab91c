"""CLI commands for browsing devices and their stored telemetry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import click

from fitband._internal.async_utils import run_async
from fitband.api.devices import DEFAULT_TELEMETRY_LIMIT
from fitband.api.errors import NotFoundError
from fitband.cli._client import get_device_api
from fitband.cli._options import global_options

if TYPE_CHECKING:
    from fitband.api.devices import DeviceAPI
    from fitband.cli.main import AppContext
    from fitband.models.api import Device

logger = logging.getLogger(__name__)

device_group = click.Group("device", help="Device commands")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def fetch_my_device(api: DeviceAPI) -> Device | None:
    """Return the caller's device, or *None* when the account has none."""
    try:
        return await api.get_my_device()
    except NotFoundError:
        logger.debug("Account has no device")
        return None


# ---------------------------------------------------------------------------
# Command registrations
# ---------------------------------------------------------------------------


@device_group.command("list")
@global_options
def list_cmd(app_ctx: AppContext) -> None:
    """List all registered devices."""
    run_async(_cmd_list(app_ctx))


@device_group.command("show")
@click.argument("device_id")
@global_options
def show_cmd(app_ctx: AppContext, device_id: str) -> None:
    """Show one device and whether you own it."""
    run_async(_cmd_show(app_ctx, device_id))


@device_group.command("telemetry")
@click.argument("device_id")
@click.option(
    "--limit",
    type=click.IntRange(1, 500),
    default=DEFAULT_TELEMETRY_LIMIT,
    show_default=True,
    help="Number of recent samples to fetch",
)
@global_options
def telemetry_cmd(app_ctx: AppContext, device_id: str, limit: int) -> None:
    """Show the most recent stored telemetry for DEVICE_ID."""
    run_async(_cmd_telemetry(app_ctx, device_id, limit))


# ---------------------------------------------------------------------------
# Async implementations
# ---------------------------------------------------------------------------


async def _cmd_list(app_ctx: AppContext) -> None:
    formatter = app_ctx.formatter
    client, api = get_device_api(app_ctx)
    async with client:
        devices = await api.list_devices()
        mine = await fetch_my_device(api)

    my_id = mine.id if mine else None
    if formatter.format == "json":
        formatter.output({"devices": devices, "myDeviceId": my_id}, command="device.list")
    elif not devices:
        formatter.rich.info("[dim]No devices registered.[/dim]")
    else:
        formatter.rich.device_list(devices, my_id)


async def _cmd_show(app_ctx: AppContext, device_id: str) -> None:
    formatter = app_ctx.formatter
    client, api = get_device_api(app_ctx)
    async with client:
        device = await api.get_device(device_id)
        mine = await fetch_my_device(api)

    is_mine = mine is not None and mine.id == device.id
    if formatter.format == "json":
        # Never echo the secret of the caller's own device.
        formatter.output(
            {"device": device.model_copy(update={"secret": None}), "isMine": is_mine},
            command="device.show",
        )
    else:
        formatter.rich.device_detail(device, is_mine=is_mine)


async def _cmd_telemetry(app_ctx: AppContext, device_id: str, limit: int) -> None:
    formatter = app_ctx.formatter
    client, api = get_device_api(app_ctx)
    async with client:
        samples = await api.get_device_telemetry(device_id, limit=limit)

    if formatter.format == "json":
        formatter.output(samples, command="device.telemetry")
    else:
        formatter.rich.telemetry_log(samples, detailed=True)
