"""View coordinators that turn channel and REST updates into screen state."""

from __future__ import annotations

from fitband.views.device import DeviceView
from fitband.views.logs import BoundedLog, CommandLog, TelemetryLog

__all__ = ["BoundedLog", "CommandLog", "DeviceView", "TelemetryLog"]
