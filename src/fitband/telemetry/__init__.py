"""Synthetic telemetry generation."""

from __future__ import annotations

from fitband.telemetry.generator import TelemetryGenerator

__all__ = ["TelemetryGenerator"]
