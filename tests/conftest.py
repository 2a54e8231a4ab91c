"""Shared fixtures: in-memory Socket.IO client and keyring, sample builders."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterator
from typing import Any
from unittest.mock import patch

import pytest
from keyring.errors import PasswordDeleteError

from fitband.channel.session import ChannelSession
from fitband.models.telemetry import Metrics, Motion, TelemetrySample

DEVICE_ID = "dev-1"
SECRET = "s3cr3t"


class FakeSocket:
    """Stands in for ``socketio.AsyncClient``.

    *reply* decides what the server does when ``join`` is emitted:
    ``"joined"``, ``"connect_error"``, ``"error"``, ``"disconnect"`` or
    ``None`` (stay silent).
    """

    def __init__(
        self,
        *,
        reply: str | None = "joined",
        connect_exc: Exception | None = None,
        join_exc: Exception | None = None,
    ):
        self.reply = reply
        self.connect_exc = connect_exc
        self.join_exc = join_exc
        self.handlers: dict[str, Any] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.connect_args: tuple[str, dict[str, Any]] | None = None
        self.disconnect_calls = 0
        self.before_reply: list[tuple[str, Any]] = []
        self.emit_exc: Exception | None = None
        self.tasks: list[asyncio.Task[None]] = []

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_args = (url, kwargs)
        if self.connect_exc is not None:
            raise self.connect_exc

    async def emit(self, event: str, data: Any = None) -> None:
        if event == "join" and self.join_exc is not None:
            raise self.join_exc
        if self.emit_exc is not None and event != "join":
            raise self.emit_exc
        self.emitted.append((event, data))
        if event != "join":
            return
        # Frames pushed by the server while the join is still in flight.
        for name, payload in self.before_reply:
            self.tasks.append(asyncio.create_task(self.fire(name, payload)))
        if self.reply == "joined":
            await self.fire("joined", {"deviceId": data["deviceId"]})
        elif self.reply == "connect_error":
            await self.fire("connect_error", {"message": "Invalid signature"})
        elif self.reply == "error":
            await self.fire("error", {"message": "Device not found"})
        elif self.reply == "disconnect":
            await self.fire("disconnect")

    async def disconnect(self) -> None:
        self.disconnect_calls += 1

    async def fire(self, event: str, *args: Any) -> None:
        await self.handlers[event](*args)

    def sent(self, event: str) -> list[Any]:
        return [data for name, data in self.emitted if name == event]


@pytest.fixture()
def sockets() -> list[FakeSocket]:
    """Every FakeSocket handed out by :func:`make_session`, in creation order."""
    return []


@pytest.fixture()
def make_session(sockets: list[FakeSocket]) -> Any:
    """Build a :class:`ChannelSession` whose transports are FakeSockets."""

    def _make(*, connect_timeout: float = 1.0, **socket_kwargs: Any) -> ChannelSession:
        def factory() -> FakeSocket:
            sock = FakeSocket(**socket_kwargs)
            sockets.append(sock)
            return sock

        return ChannelSession(
            "http://telemetry.test",
            connect_timeout=connect_timeout,
            client_factory=factory,
        )

    return _make


def make_sample(
    *,
    device_id: str = DEVICE_ID,
    message_id: str = "msg-1",
    heart_rate: int = 72,
    steps: int = 3,
) -> TelemetrySample:
    return TelemetrySample(
        device_id=device_id,
        timestamp="2025-01-15T10:30:00.000Z",
        message_id=message_id,
        metrics=Metrics(
            heart_rate=heart_rate,
            steps_delta=steps,
            calories_delta=round(steps * 0.04, 3),
            battery=0.9,
        ),
        motion=Motion(ax=0.01, ay=-0.02, az=0.98),
    )


@pytest.fixture()
def sample_factory() -> Any:
    return make_sample


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Keep developer ``FITBAND_*`` variables and ``.env`` files out of tests."""
    for key in list(os.environ):
        if key.startswith("FITBAND_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


class MemoryKeyring:
    """Dict-backed replacement for the OS keyring."""

    def __init__(self) -> None:
        self.data: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, key: str) -> str | None:
        return self.data.get((service, key))

    def set_password(self, service: str, key: str, value: str) -> None:
        self.data[(service, key)] = value

    def delete_password(self, service: str, key: str) -> None:
        if (service, key) not in self.data:
            raise PasswordDeleteError("not found")
        del self.data[(service, key)]


@pytest.fixture()
def memory_keyring() -> Iterator[MemoryKeyring]:
    backend = MemoryKeyring()
    with (
        patch("keyring.get_password", backend.get_password),
        patch("keyring.set_password", backend.set_password),
        patch("keyring.delete_password", backend.delete_password),
    ):
        yield backend
