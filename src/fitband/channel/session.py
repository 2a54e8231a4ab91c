"""Socket.IO client for the fitness-band telemetry channel.

Implements the channel join protocol (bidirectional):

1. Open a Socket.IO connection to the telemetry endpoint (auto-reconnect off)
2. Sign ``deviceId:timestamp`` with the device secret (HMAC-SHA256)
3. Emit ``join`` with ``{deviceId, timestamp, signature}``
4. Receive ``joined`` (or ``connect_error`` / ``error``)
5. OUTBOUND: emit ``telemetry`` samples, fire-and-forget
6. INBOUND:  ``command`` pushes and ``telemetry:new`` relays to subscribers

Steps 1-4 run under a single deadline (10 s by default). States::

    disconnected -> connecting -> awaiting_join_ack -> joined -> disconnected

Any failure returns the session to ``disconnected``; the caller sees it as
the exception raised by :meth:`ChannelSession.connect`.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from fitband.channel.errors import (
    ChannelClosedError,
    ChannelError,
    ChannelTimeoutError,
    ChannelTransportError,
)
from fitband.channel.registry import SubscriberRegistry
from fitband.channel.signer import build_join_payload
from fitband.models.telemetry import Command, TelemetryBroadcast, TelemetrySample

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from fitband.models.config import AppSettings

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_PATH = "/ws"
DEFAULT_TRANSPORTS = ("websocket", "polling")

EVENT_JOIN = "join"
EVENT_JOINED = "joined"
EVENT_TELEMETRY = "telemetry"
EVENT_TELEMETRY_BROADCAST = "telemetry:new"
EVENT_COMMAND = "command"


class ChannelState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_JOIN_ACK = "awaiting_join_ack"
    JOINED = "joined"


def _default_client_factory() -> Any:
    import socketio

    return socketio.AsyncClient(reconnection=False)


@dataclasses.dataclass(slots=True)
class _Attempt:
    """One connection: its transport, its join result, and whether connect() returned."""

    client: Any
    joined: asyncio.Future[None]
    finished: asyncio.Event = dataclasses.field(default_factory=asyncio.Event)


def _describe(args: tuple[Any, ...]) -> str:
    if not args or args[0] is None:
        return "unknown error"
    data = args[0]
    if isinstance(data, dict):
        return str(data.get("message") or data)
    return str(data)


class ChannelSession:
    """Owns at most one live telemetry channel connection.

    Create one per consuming view; nothing here is process-global. The
    transport is built by *client_factory* (a ``socketio.AsyncClient`` by
    default) so tests can substitute a fake.
    """

    def __init__(
        self,
        url: str,
        *,
        path: str = DEFAULT_PATH,
        transports: Sequence[str] = DEFAULT_TRANSPORTS,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._url = url
        self._path = path
        self._transports = list(transports)
        self._connect_timeout = connect_timeout
        self._client_factory = client_factory or _default_client_factory
        self._attempt: _Attempt | None = None
        self._state = ChannelState.DISCONNECTED
        self._device_id: str | None = None
        self._commands: SubscriberRegistry[Command] = SubscriberRegistry("command")
        self._telemetry: SubscriberRegistry[TelemetrySample] = SubscriberRegistry("telemetry")
        self._send_count = 0
        self._recv_count = 0

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        client_factory: Callable[[], Any] | None = None,
    ) -> ChannelSession:
        return cls(
            settings.ws_url,
            path=settings.ws_path,
            transports=settings.ws_transports,
            connect_timeout=settings.connect_timeout,
            client_factory=client_factory,
        )

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """True only once the backend has acknowledged the join."""
        return self._state is ChannelState.JOINED

    @property
    def device_id(self) -> str | None:
        return self._device_id

    @property
    def send_count(self) -> int:
        return self._send_count

    @property
    def recv_count(self) -> int:
        return self._recv_count

    # -- Connection lifecycle -------------------------------------------------

    async def connect(self, device_id: str, secret: str) -> None:
        """Connect, sign the join and wait for ``joined``.

        Any existing connection is closed first. Raises
        :class:`ChannelTimeoutError`, :class:`ChannelTransportError`,
        :class:`ChannelClosedError` or :class:`SigningError`; the transport is
        torn down before the exception propagates.
        """
        if self._attempt is not None:
            logger.info("Closing existing channel before reconnecting")
            previous, self._attempt = self._attempt, None
            await self._close(previous, ChannelClosedError("Superseded by a new connection"))

        loop = asyncio.get_running_loop()
        attempt = _Attempt(client=self._client_factory(), joined=loop.create_future())
        self._attempt = attempt
        self._device_id = device_id
        self._state = ChannelState.CONNECTING
        self._register_handlers(attempt)
        logger.info("Connecting telemetry channel for %s at %s", device_id, self._url)

        try:
            async with asyncio.timeout(self._connect_timeout):
                await self._join(attempt, device_id, secret)
        except ChannelError as exc:
            await self._abort(attempt, exc)
            raise
        except TimeoutError:
            error = ChannelTimeoutError(
                f"Connection timeout: no join acknowledgment within {self._connect_timeout:g}s"
            )
            await self._abort(attempt, error)
            raise error from None
        except asyncio.CancelledError:
            await self._abort(attempt, ChannelClosedError("Connection attempt cancelled"))
            raise
        finally:
            attempt.finished.set()

        self._state = ChannelState.JOINED
        logger.info("Joined telemetry channel for %s", device_id)

    async def _join(self, attempt: _Attempt, device_id: str, secret: str) -> None:
        client = attempt.client
        try:
            await client.connect(
                self._url,
                transports=self._transports,
                socketio_path=self._path.strip("/"),
                wait_timeout=self._connect_timeout,
            )
        except Exception as exc:
            if attempt.joined.done():
                # connect_error / disconnect() already settled the attempt.
                await attempt.joined
            raise ChannelTransportError(f"Failed to connect to {self._url}: {exc}") from exc

        if not attempt.joined.done():
            self._state = ChannelState.AWAITING_JOIN_ACK
            payload = build_join_payload(device_id, secret)
            logger.debug("Sending join for %s (ts=%s)", device_id, payload.timestamp)
            try:
                await client.emit(EVENT_JOIN, payload.to_wire())
            except Exception as exc:
                raise ChannelTransportError(f"Failed to send join: {exc}") from exc
        await attempt.joined

    async def disconnect(self) -> None:
        """Close the channel, fail any pending connect and drop command subscribers.

        Telemetry subscribers are kept.
        """
        attempt, self._attempt = self._attempt, None
        self._state = ChannelState.DISCONNECTED
        self._commands.clear()
        if attempt is not None:
            await self._close(
                attempt, ChannelClosedError("Disconnected before join acknowledgment")
            )
            logger.info("Telemetry channel disconnected")

    async def _abort(self, attempt: _Attempt, error: ChannelError) -> None:
        if self._attempt is attempt:
            self._attempt = None
            self._state = ChannelState.DISCONNECTED
        await self._close(attempt, error)
        logger.warning("Telemetry channel connect failed: %s", error)

    async def _close(self, attempt: _Attempt, error: ChannelError) -> None:
        self._settle(attempt.joined, error)
        # Mark the result as retrieved; the waiting connect() reports it.
        if not attempt.joined.cancelled():
            attempt.joined.exception()
        with contextlib.suppress(Exception):
            await attempt.client.disconnect()

    @staticmethod
    def _settle(joined: asyncio.Future[None], error: ChannelError | None = None) -> None:
        """Resolve *joined* unless already resolved; the first outcome wins."""
        if joined.done():
            return
        if error is None:
            joined.set_result(None)
        else:
            joined.set_exception(error)

    # -- Inbound events -------------------------------------------------------

    def _register_handlers(self, attempt: _Attempt) -> None:
        client = attempt.client

        async def on_joined(*_args: Any) -> None:
            if self._attempt is attempt:
                self._settle(attempt.joined)

        async def on_connect_error(*args: Any) -> None:
            self._settle(
                attempt.joined, ChannelTransportError(f"Connection error: {_describe(args)}")
            )

        async def on_error(*args: Any) -> None:
            logger.warning("Telemetry channel error: %s", _describe(args))
            self._settle(attempt.joined, ChannelTransportError(_describe(args)))

        async def on_disconnect(*_args: Any) -> None:
            self._settle(
                attempt.joined,
                ChannelClosedError("Connection closed before join acknowledgment"),
            )
            if self._attempt is attempt and self._state is ChannelState.JOINED:
                logger.info("Telemetry channel closed by server")
                self._attempt = None
                self._state = ChannelState.DISCONNECTED

        async def on_command(data: Any = None) -> None:
            if await self._ready(attempt):
                await self._handle_command(data)

        async def on_broadcast(data: Any = None) -> None:
            if await self._ready(attempt):
                await self._handle_broadcast(data)

        client.on(EVENT_JOINED, on_joined)
        client.on("connect_error", on_connect_error)
        client.on("error", on_error)
        client.on("disconnect", on_disconnect)
        client.on(EVENT_COMMAND, on_command)
        client.on(EVENT_TELEMETRY_BROADCAST, on_broadcast)

    async def _ready(self, attempt: _Attempt) -> bool:
        """Hold inbound events until connect() has returned, then accept them if still joined."""
        if not attempt.finished.is_set():
            await attempt.finished.wait()
        return self._attempt is attempt and self._state is ChannelState.JOINED

    async def _handle_command(self, data: Any) -> None:
        try:
            command = Command.model_validate(data)
        except ValidationError:
            logger.warning("Dropping malformed command frame: %r", data)
            return
        self._recv_count += 1
        logger.info("Received command %s", command.name)
        await self._commands.dispatch(command)

    async def _handle_broadcast(self, data: Any) -> None:
        try:
            broadcast = TelemetryBroadcast.model_validate(data)
        except ValidationError:
            logger.warning("Dropping malformed telemetry broadcast: %r", data)
            return
        self._recv_count += 1
        await self._telemetry.dispatch(broadcast.telemetry)

    # -- Outbound / subscriptions ---------------------------------------------

    async def send_telemetry(self, sample: TelemetrySample) -> None:
        """Emit *sample* on the ``telemetry`` event.

        Silently dropped (not queued) unless joined. Never raises on send
        failure; the failure is logged instead.
        """
        attempt = self._attempt
        if attempt is None or self._state is not ChannelState.JOINED:
            logger.debug("Dropping telemetry %s: channel not joined", sample.message_id)
            return
        try:
            await attempt.client.emit(EVENT_TELEMETRY, sample.to_wire())
            self._send_count += 1
        except Exception:
            logger.warning("Send failed for telemetry %s", sample.message_id, exc_info=True)

    def on_command(self, callback: Callable[[Command], Any]) -> Callable[[], None]:
        """Subscribe to ``command`` pushes; returns the unsubscribe function."""
        return self._commands.subscribe(callback)

    def on_telemetry(self, callback: Callable[[TelemetrySample], Any]) -> Callable[[], None]:
        """Subscribe to relayed samples (``telemetry:new``); returns the unsubscribe function."""
        return self._telemetry.subscribe(callback)
