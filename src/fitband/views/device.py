"""Device screen coordinator.

Binds the generator and the channel session to the on-screen state of one
device. Two update paths feed the same :class:`TelemetryLog`:

- **Owner** (holds the device secret): joins the channel, generates samples
  every ``interval`` seconds, sends them and logs them locally. Relayed
  samples for the same device are merged in (duplicates dropped by id).
- **Viewer**: polls the REST history every ``poll_interval`` seconds and
  replaces the log with the latest rows.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from fitband._internal.async_utils import cancel_task, maybe_await
from fitband.api.errors import ConfigError, FitbandError
from fitband.channel.errors import ChannelClosedError, ChannelError
from fitband.views.logs import TELEMETRY_LOG_SIZE, CommandLog, TelemetryLog

if TYPE_CHECKING:
    from collections.abc import Callable

    from fitband.api.devices import DeviceAPI
    from fitband.channel.session import ChannelSession
    from fitband.models.api import Device
    from fitband.models.telemetry import Command, DeviceState, TelemetrySample
    from fitband.telemetry.generator import TelemetryGenerator

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3.0
DEFAULT_POLL_INTERVAL = 5.0


class DeviceView:
    """State and background tasks for one device's detail screen."""

    def __init__(
        self,
        session: ChannelSession,
        generator: TelemetryGenerator,
        devices: DeviceAPI,
        device: Device,
        my_device: Device | None,
        *,
        interval: float = DEFAULT_INTERVAL,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_change: Callable[[DeviceView], Any] | None = None,
    ) -> None:
        self._session = session
        self._generator = generator
        self._devices = devices
        self._device = device
        self._my_device = my_device
        self._interval = interval
        self._poll_interval = poll_interval
        self._on_change = on_change
        self.telemetry_log = TelemetryLog()
        self.command_log = CommandLog()
        self.last_error: str | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._poll_task: asyncio.Task[None] | None = None
        self._simulate_task: asyncio.Task[None] | None = None

    @property
    def device(self) -> Device:
        return self._device

    @property
    def is_my_device(self) -> bool:
        return self._my_device is not None and self._my_device.id == self._device.id

    @property
    def can_simulate(self) -> bool:
        return self.is_my_device and bool(self._my_device and self._my_device.secret)

    @property
    def is_connected(self) -> bool:
        return self._session.is_connected

    @property
    def is_simulating(self) -> bool:
        return self._simulate_task is not None and not self._simulate_task.done()

    @property
    def device_state(self) -> DeviceState:
        return self._generator.get_device_state()

    # -- Lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the channel and start the role-specific update path.

        A failed owner connection is logged and recorded in
        :attr:`last_error`; the view stays usable but cannot simulate.
        """
        self._unsubscribers.append(self._session.on_telemetry(self._on_telemetry))
        if self.can_simulate:
            assert self._my_device is not None and self._my_device.secret is not None
            self._unsubscribers.append(self._session.on_command(self._on_command))
            try:
                await self._session.connect(self._device.id, self._my_device.secret)
                self.last_error = None
            except ChannelError as exc:
                logger.warning("Could not join channel for %s: %s", self._device.id, exc)
                self.last_error = str(exc)
        else:
            self._poll_task = asyncio.create_task(self._poll_loop())
        await self._notify()

    async def close(self) -> None:
        """Stop background work, drop subscriptions, and disconnect an owner session."""
        await self.stop_simulation()
        await cancel_task(self._poll_task)
        self._poll_task = None
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self.can_simulate:
            await self._session.disconnect()

    # -- Owner path -----------------------------------------------------------

    async def start_simulation(self, *, max_samples: int | None = None) -> None:
        """Reset the generator and the log, then emit a sample every interval.

        Runs until :meth:`stop_simulation`, or until *max_samples* were sent.
        """
        if not self.can_simulate:
            raise ConfigError(f"Device {self._device.id} is view-only: no device secret")
        if not self._session.is_connected:
            raise ChannelClosedError("Telemetry channel is not connected")
        if self.is_simulating:
            return
        self._generator.reset_state()
        self.telemetry_log.clear()
        self._simulate_task = asyncio.create_task(self._simulate_loop(max_samples))
        logger.info("Simulation started for %s every %.1fs", self._device.id, self._interval)
        await self._notify()

    async def stop_simulation(self) -> None:
        if self._simulate_task is None:
            return
        await cancel_task(self._simulate_task)
        self._simulate_task = None
        logger.info("Simulation stopped for %s", self._device.id)

    async def simulate_once(self) -> TelemetrySample:
        """Generate one sample, send it and log it."""
        sample = self._generator.generate_telemetry(self._device.id)
        await self._session.send_telemetry(sample)
        self.telemetry_log.push(sample)
        await self._notify()
        return sample

    async def wait_simulation(self) -> None:
        """Block until the simulation loop ends (sample limit reached or stopped)."""
        if self._simulate_task is not None:
            await asyncio.wait({self._simulate_task})

    async def _simulate_loop(self, max_samples: int | None) -> None:
        sent = 0
        while max_samples is None or sent < max_samples:
            await asyncio.sleep(self._interval)
            await self.simulate_once()
            sent += 1

    # -- Viewer path ----------------------------------------------------------

    async def refresh(self) -> None:
        """Replace the log with the latest REST samples; failures leave it as is."""
        try:
            samples = await self._devices.get_device_telemetry(
                self._device.id, limit=TELEMETRY_LOG_SIZE
            )
        except FitbandError as exc:
            logger.debug("Telemetry poll for %s failed: %s", self._device.id, exc)
            return
        except Exception:
            logger.warning("Telemetry poll for %s failed", self._device.id, exc_info=True)
            return
        self.telemetry_log.replace(samples)
        await self._notify()

    async def _poll_loop(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self._poll_interval)

    # -- Channel callbacks ----------------------------------------------------

    async def _on_telemetry(self, sample: TelemetrySample) -> None:
        if sample.device_id != self._device.id:
            return
        if self.telemetry_log.push(sample):
            await self._notify()

    async def _on_command(self, command: Command) -> None:
        self.command_log.push(command)
        await self._notify()

    async def _notify(self) -> None:
        if self._on_change is not None:
            await maybe_await(self._on_change(self))
