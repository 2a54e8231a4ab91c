"""CLI commands for live telemetry: ``simulate`` (owner) and ``watch`` (viewer)."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import click

from fitband._internal.async_utils import run_async
from fitband.api.devices import DeviceAPI
from fitband.api.errors import ConfigError
from fitband.channel.errors import ChannelError
from fitband.cli._client import build_session, get_client, get_device_api
from fitband.cli._options import global_options
from fitband.cli.device import fetch_my_device
from fitband.models.api import Device
from fitband.models.config import AppSettings
from fitband.telemetry.generator import TelemetryGenerator
from fitband.views.device import DeviceView

if TYPE_CHECKING:
    from fitband.cli.main import AppContext
    from fitband.models.telemetry import Command
    from fitband.output.formatter import OutputFormatter

logger = logging.getLogger(__name__)


class _LogPrinter:
    """Prints log entries the first time they appear, oldest first."""

    def __init__(self, formatter: OutputFormatter, *, prefix: str) -> None:
        self._formatter = formatter
        self._prefix = prefix
        self._seen: set[str] = set()

    def __call__(self, view: DeviceView) -> None:
        for sample in reversed(view.telemetry_log.entries()):
            if sample.message_id in self._seen:
                continue
            self._seen.add(sample.message_id)
            if self._formatter.format == "json":
                self._formatter.output_event("telemetry", sample)
            elif self._formatter.format == "rich":
                self._formatter.rich.sample_line(sample, prefix=self._prefix)


def _print_command(formatter: OutputFormatter, command: Command) -> None:
    if formatter.format == "json":
        formatter.output_event("command", command)
    elif formatter.format == "rich":
        formatter.rich.command_line(command)


# ---------------------------------------------------------------------------
# Command registrations
# ---------------------------------------------------------------------------


@click.command("simulate")
@click.argument("device_id", required=False, default=None)
@click.option(
    "--secret",
    default=None,
    envvar="FITBAND_DEVICE_SECRET",
    help="Device secret; with DEVICE_ID skips the REST lookup (env: FITBAND_DEVICE_SECRET)",
)
@click.option(
    "--interval-ms",
    type=click.IntRange(1000, 10000),
    default=None,
    help="Milliseconds between samples, 1000-10000 (default: FITBAND_SIMULATE_INTERVAL_MS)",
)
@click.option(
    "--count",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after sending this many samples (default: run until Ctrl-C)",
)
@global_options
def simulate_cmd(
    app_ctx: AppContext,
    device_id: str | None,
    secret: str | None,
    interval_ms: int | None,
    count: int | None,
) -> None:
    """Join the telemetry channel as your device and stream synthetic samples.

    \b
    Examples:
      fitband simulate                          # your own device, via the API
      fitband simulate --count 5 --interval-ms 1000
      fitband simulate DEVICE_ID --secret S3CR3T
    """
    if secret and not device_id:
        raise click.UsageError("--secret needs a DEVICE_ID")
    run_async(_cmd_simulate(app_ctx, device_id, secret, interval_ms, count))


@click.command("watch")
@click.argument("device_id")
@click.option(
    "--duration",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Stop after this many seconds (default: run until Ctrl-C)",
)
@global_options
def watch_cmd(app_ctx: AppContext, device_id: str, duration: float | None) -> None:
    """Follow a device's stored telemetry by polling the API."""
    run_async(_cmd_watch(app_ctx, device_id, duration))


# ---------------------------------------------------------------------------
# Async implementations
# ---------------------------------------------------------------------------


async def _resolve_owned_device(api: DeviceAPI, device_id: str | None) -> Device:
    mine = await fetch_my_device(api)
    if mine is None:
        raise ConfigError("This account has no device to simulate.")
    if device_id and device_id != mine.id:
        raise ConfigError(
            f"Device {device_id} is not yours and is view-only."
            f" Run 'fitband watch {device_id}' to follow it."
        )
    if not mine.secret:
        raise ConfigError(f"The API returned no secret for device {mine.id}.")
    return mine


async def _cmd_simulate(
    app_ctx: AppContext,
    device_id: str | None,
    secret: str | None,
    interval_ms: int | None,
    count: int | None,
) -> None:
    formatter = app_ctx.formatter
    settings = AppSettings()
    interval = (interval_ms or settings.simulate_interval_ms) / 1000

    if secret and device_id:
        client = get_client(app_ctx, require_auth=False)
        api = DeviceAPI(client)
        device = Device(id=device_id, name=device_id, secret=secret)
    else:
        client, api = get_device_api(app_ctx)

    async with client:
        if not secret:
            device = await _resolve_owned_device(api, device_id)

        session = build_session()
        view = DeviceView(
            session,
            TelemetryGenerator(),
            api,
            device,
            device,
            interval=interval,
            on_change=_LogPrinter(formatter, prefix="Sent"),
        )
        unsubscribe = session.on_command(lambda cmd: _print_command(formatter, cmd))

        try:
            await view.start()
            if not view.is_connected:
                raise ChannelError(view.last_error or "Could not join the telemetry channel")

            if formatter.format == "json":
                formatter.output_event("connected", {"deviceId": device.id})
            elif formatter.format == "rich":
                formatter.rich.connection_status(True, f"device {device.id}")
                formatter.rich.info(
                    f"[dim]Sending a sample every {interval:.1f}s. Press Ctrl-C to stop.[/dim]"
                )

            await view.start_simulation(max_samples=count)
            await view.wait_simulation()
        finally:
            unsubscribe()
            await view.close()

        state = view.device_state
        if formatter.format == "json":
            formatter.output_event("state", state)
        elif formatter.format == "rich":
            formatter.rich.device_state(state)
            formatter.rich.info(f"[dim]{session.send_count} sample(s) sent.[/dim]")


async def _cmd_watch(app_ctx: AppContext, device_id: str, duration: float | None) -> None:
    formatter = app_ctx.formatter
    settings = AppSettings()
    client, api = get_device_api(app_ctx)

    async with client:
        device = await api.get_device(device_id)
        view = DeviceView(
            build_session(),
            TelemetryGenerator(),
            api,
            device,
            None,
            poll_interval=settings.poll_interval,
            on_change=_LogPrinter(formatter, prefix="Recv"),
        )

        if formatter.format == "rich":
            formatter.rich.info(
                f"Watching [bold]{device.name}[/bold] [dim]({device.id})[/dim]"
                f"  [dim]polling every {settings.poll_interval:g}s[/dim]"
            )
        try:
            await view.start()
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            await view.close()
