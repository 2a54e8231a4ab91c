from __future__ import annotations

from fitband.models.api import AuthResponse, Credentials, Device, User
from fitband.models.config import AppSettings
from fitband.models.telemetry import (
    Command,
    CommandName,
    DeviceState,
    JoinPayload,
    Metrics,
    Motion,
    TelemetryBroadcast,
    TelemetrySample,
)

__all__ = [
    # api
    "AuthResponse",
    "Credentials",
    "Device",
    "User",
    # config
    "AppSettings",
    # telemetry
    "Command",
    "CommandName",
    "DeviceState",
    "JoinPayload",
    "Metrics",
    "Motion",
    "TelemetryBroadcast",
    "TelemetrySample",
]
