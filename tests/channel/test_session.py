"""Tests for fitband.channel.session: ChannelSession against a fake Socket.IO client."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest

from fitband.channel.errors import (
    ChannelClosedError,
    ChannelTimeoutError,
    ChannelTransportError,
    SigningError,
)
from fitband.channel.session import ChannelSession, ChannelState
from fitband.channel.signer import build_join_message, sign_join
from fitband.models.config import AppSettings
from fitband.models.telemetry import CommandName

DEVICE_ID = "dev-1"
SECRET = "s3cr3t"


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class TestConnect:
    @pytest.mark.asyncio
    async def test_join_ack_marks_session_joined(self, make_session: Any, sockets: list) -> None:
        session = make_session()
        assert session.state is ChannelState.DISCONNECTED

        await session.connect(DEVICE_ID, SECRET)

        assert session.is_connected
        assert session.state is ChannelState.JOINED
        assert session.device_id == DEVICE_ID
        assert len(sockets) == 1

    @pytest.mark.asyncio
    async def test_connect_options(self, make_session: Any, sockets: list) -> None:
        session = make_session()
        await session.connect(DEVICE_ID, SECRET)

        url, kwargs = sockets[0].connect_args
        assert url == "http://telemetry.test"
        assert kwargs["transports"] == ["websocket", "polling"]
        assert kwargs["socketio_path"] == "ws"

    @pytest.mark.asyncio
    async def test_join_payload_is_signed(self, make_session: Any, sockets: list) -> None:
        session = make_session()
        await session.connect(DEVICE_ID, SECRET)

        [payload] = sockets[0].sent("join")
        assert set(payload) == {"deviceId", "timestamp", "signature"}
        assert payload["deviceId"] == DEVICE_ID
        expected = sign_join(SECRET, build_join_message(DEVICE_ID, payload["timestamp"]))
        assert payload["signature"] == expected

    @pytest.mark.asyncio
    async def test_timeout_without_ack(self, make_session: Any, sockets: list) -> None:
        session = make_session(reply=None, connect_timeout=0.05)

        with pytest.raises(ChannelTimeoutError, match="Connection timeout"):
            await session.connect(DEVICE_ID, SECRET)

        assert session.state is ChannelState.DISCONNECTED
        assert sockets[0].disconnect_calls >= 1

    @pytest.mark.asyncio
    async def test_connect_error_rejects(self, make_session: Any, sockets: list) -> None:
        session = make_session(reply="connect_error")

        with pytest.raises(ChannelTransportError, match="Invalid signature"):
            await session.connect(DEVICE_ID, SECRET)

        assert not session.is_connected
        assert sockets[0].disconnect_calls >= 1

    @pytest.mark.asyncio
    async def test_error_event_rejects(self, make_session: Any) -> None:
        session = make_session(reply="error")

        with pytest.raises(ChannelTransportError, match="Device not found"):
            await session.connect(DEVICE_ID, SECRET)

    @pytest.mark.asyncio
    async def test_transport_failure_rejects(self, make_session: Any) -> None:
        session = make_session(connect_exc=OSError("connection refused"))

        with pytest.raises(ChannelTransportError, match="connection refused"):
            await session.connect(DEVICE_ID, SECRET)

        assert session.state is ChannelState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_join_emit_failure_tears_down(
        self, make_session: Any, sockets: list
    ) -> None:
        session = make_session(join_exc=RuntimeError("/ is not a connected namespace."))

        with pytest.raises(ChannelTransportError, match="Failed to send join"):
            await session.connect(DEVICE_ID, SECRET)

        assert session.state is ChannelState.DISCONNECTED
        assert sockets[0].disconnect_calls == 1
        assert not session.is_connected

    @pytest.mark.asyncio
    async def test_server_close_during_join_rejects(self, make_session: Any) -> None:
        session = make_session(reply="disconnect")

        with pytest.raises(ChannelClosedError):
            await session.connect(DEVICE_ID, SECRET)

    @pytest.mark.asyncio
    async def test_empty_secret_fails_before_join(self, make_session: Any, sockets: list) -> None:
        session = make_session()

        with pytest.raises(SigningError):
            await session.connect(DEVICE_ID, "")

        assert sockets[0].sent("join") == []
        assert session.state is ChannelState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_while_pending_fails_connect(
        self, make_session: Any, sockets: list
    ) -> None:
        session = make_session(reply=None, connect_timeout=5.0)
        task = asyncio.create_task(session.connect(DEVICE_ID, SECRET))
        await _settle()
        assert session.state is ChannelState.AWAITING_JOIN_ACK

        await session.disconnect()

        with pytest.raises(ChannelClosedError):
            await task
        assert session.state is ChannelState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_reconnect_closes_previous_transport(
        self, make_session: Any, sockets: list
    ) -> None:
        session = make_session()
        await session.connect(DEVICE_ID, SECRET)
        await session.connect(DEVICE_ID, SECRET)

        assert len(sockets) == 2
        assert sockets[0].disconnect_calls == 1
        assert sockets[1].disconnect_calls == 0
        assert session.is_connected

    def test_from_settings(self) -> None:
        settings = AppSettings(ws_url="http://ws.example:4000", ws_path="/socket", connect_timeout=3)
        session = ChannelSession.from_settings(settings, client_factory=MagicMock())
        assert session.state is ChannelState.DISCONNECTED
        assert session.send_count == 0


class TestSendTelemetry:
    @pytest.mark.asyncio
    async def test_sends_exactly_one_unmodified_sample(
        self, make_session: Any, sockets: list, sample_factory: Any
    ) -> None:
        session = make_session()
        await session.connect(DEVICE_ID, SECRET)
        sample = sample_factory()

        await session.send_telemetry(sample)

        assert sockets[0].sent("telemetry") == [sample.to_wire()]
        assert session.send_count == 1

    @pytest.mark.asyncio
    async def test_wire_payload_is_camel_case(
        self, make_session: Any, sockets: list, sample_factory: Any
    ) -> None:
        session = make_session()
        await session.connect(DEVICE_ID, SECRET)

        await session.send_telemetry(sample_factory())

        [payload] = sockets[0].sent("telemetry")
        assert payload["deviceId"] == DEVICE_ID
        assert payload["messageId"] == "msg-1"
        assert payload["metrics"]["heartRate"] == 72
        assert payload["metrics"]["stepsDelta"] == 3

    @pytest.mark.asyncio
    async def test_dropped_before_connect(self, make_session: Any, sample_factory: Any) -> None:
        session = make_session()
        await session.send_telemetry(sample_factory())
        assert session.send_count == 0

    @pytest.mark.asyncio
    async def test_dropped_after_disconnect(
        self, make_session: Any, sockets: list, sample_factory: Any
    ) -> None:
        session = make_session()
        await session.connect(DEVICE_ID, SECRET)
        await session.disconnect()

        await session.send_telemetry(sample_factory())

        assert sockets[0].sent("telemetry") == []
        assert not session.is_connected

    @pytest.mark.asyncio
    async def test_emit_failure_is_not_raised(
        self, make_session: Any, sockets: list, sample_factory: Any
    ) -> None:
        session = make_session()
        await session.connect(DEVICE_ID, SECRET)
        sockets[0].emit_exc = RuntimeError("socket gone")

        await session.send_telemetry(sample_factory())

        assert session.send_count == 0
        assert session.is_connected

    @pytest.mark.asyncio
    async def test_server_close_after_join(
        self, make_session: Any, sockets: list, sample_factory: Any
    ) -> None:
        session = make_session()
        await session.connect(DEVICE_ID, SECRET)

        await sockets[0].fire("disconnect")
        await session.send_telemetry(sample_factory())

        assert session.state is ChannelState.DISCONNECTED
        assert sockets[0].sent("telemetry") == []


class TestInbound:
    @pytest.mark.asyncio
    async def test_command_reaches_every_subscriber(
        self, make_session: Any, sockets: list
    ) -> None:
        session = make_session()
        first: list = []
        second: list = []
        session.on_command(first.append)
        session.on_command(second.append)
        await session.connect(DEVICE_ID, SECRET)

        await sockets[0].fire("command", {"name": "vibrate", "payload": {"ms": 200}})

        assert [c.name for c in first] == [CommandName.VIBRATE]
        assert second[0].payload == {"ms": 200}
        assert session.recv_count == 1

    @pytest.mark.asyncio
    async def test_unsubscribed_callback_not_called(
        self, make_session: Any, sockets: list
    ) -> None:
        session = make_session()
        kept: list = []
        dropped: list = []
        session.on_command(kept.append)
        unsubscribe = session.on_command(dropped.append)
        await session.connect(DEVICE_ID, SECRET)

        unsubscribe()
        await sockets[0].fire("command", {"name": "startSession"})

        assert len(kept) == 1
        assert dropped == []

    @pytest.mark.asyncio
    async def test_frames_during_join_wait_for_connect(
        self, make_session: Any, sockets: list
    ) -> None:
        session = make_session()
        seen_connected: list[bool] = []
        session.on_command(lambda _cmd: seen_connected.append(session.is_connected))
        # Queue a command that the fake server pushes before acknowledging.
        original = session._client_factory

        def factory() -> Any:
            sock = original()
            sock.before_reply.append(("command", {"name": "stopSession"}))
            return sock

        session._client_factory = factory

        await session.connect(DEVICE_ID, SECRET)
        await asyncio.gather(*sockets[0].tasks)

        assert seen_connected == [True]

    @pytest.mark.asyncio
    async def test_malformed_frames_dropped(self, make_session: Any, sockets: list) -> None:
        session = make_session()
        commands: list = []
        samples: list = []
        session.on_command(commands.append)
        session.on_telemetry(samples.append)
        await session.connect(DEVICE_ID, SECRET)

        await sockets[0].fire("command", {"name": "selfDestruct"})
        await sockets[0].fire("command", None)
        await sockets[0].fire("telemetry:new", {"deviceId": DEVICE_ID})

        assert commands == []
        assert samples == []
        assert session.recv_count == 0

    @pytest.mark.asyncio
    async def test_broadcast_delivers_inner_sample(
        self, make_session: Any, sockets: list, sample_factory: Any
    ) -> None:
        session = make_session()
        samples: list = []
        session.on_telemetry(samples.append)
        await session.connect(DEVICE_ID, SECRET)
        sample = sample_factory(message_id="relayed")

        await sockets[0].fire(
            "telemetry:new", {"deviceId": DEVICE_ID, "telemetry": sample.to_wire()}
        )

        assert samples == [sample]

    @pytest.mark.asyncio
    async def test_failing_subscriber_isolated(self, make_session: Any, sockets: list) -> None:
        session = make_session()
        received: list = []

        def boom(_cmd: Any) -> None:
            raise ValueError("subscriber bug")

        session.on_command(boom)
        session.on_command(received.append)
        await session.connect(DEVICE_ID, SECRET)

        await sockets[0].fire("command", {"name": "vibrate"})

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_disconnect_clears_commands_keeps_telemetry(
        self, make_session: Any, sockets: list, sample_factory: Any
    ) -> None:
        session = make_session()
        commands: list = []
        samples: list = []
        session.on_command(commands.append)
        session.on_telemetry(samples.append)
        await session.connect(DEVICE_ID, SECRET)
        await session.disconnect()
        await session.connect(DEVICE_ID, SECRET)

        await sockets[1].fire("command", {"name": "vibrate"})
        await sockets[1].fire(
            "telemetry:new", {"deviceId": DEVICE_ID, "telemetry": sample_factory().to_wire()}
        )

        assert commands == []
        assert len(samples) == 1

    @pytest.mark.asyncio
    async def test_stale_transport_events_ignored(
        self, make_session: Any, sockets: list
    ) -> None:
        session = make_session()
        commands: list = []
        session.on_command(commands.append)
        await session.connect(DEVICE_ID, SECRET)
        await session.connect(DEVICE_ID, SECRET)

        await sockets[0].fire("command", {"name": "vibrate"})

        assert commands == []
