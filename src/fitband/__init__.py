"""fitband - terminal dashboard and telemetry simulator for fitness bands."""

__version__ = "0.3.0"
