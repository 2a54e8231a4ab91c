from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.panel import Panel
from rich.table import Table

from fitband._internal.timeutil import format_date, format_time

if TYPE_CHECKING:
    from rich.console import Console

    from fitband.models.api import Device, User
    from fitband.models.telemetry import Command, DeviceState, TelemetrySample


def _percent(value: float) -> str:
    return f"{value * 100:.1f}%"


class RichOutput:
    """Rich-based terminal output helpers for *fitband*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def device_list(self, devices: list[Device], my_device_id: str | None = None) -> None:
        """Print a table of devices, marking the caller's own."""
        table = Table(title="Devices")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Created")
        table.add_column("")

        for d in devices:
            mine = "[green]Your device[/green]" if d.id == my_device_id else ""
            table.add_row(d.id, d.name, format_date(d.created_at), mine)

        self._con.print(table)

    def device_detail(self, device: Device, *, is_mine: bool) -> None:
        table = Table(title=device.name, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Device ID", device.id)
        table.add_row("Created", format_date(device.created_at))
        table.add_row("Access", "[green]owner[/green]" if is_mine else "[yellow]view-only[/yellow]")
        self._con.print(table)

    def profile(self, user: User) -> None:
        table = Table(title="Profile", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Email", user.email)
        table.add_row("User ID", user.id)
        table.add_row("Device ID", user.device_id or "N/A")
        table.add_row("Member since", format_date(user.created_at))
        self._con.print(table)

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def telemetry_log(self, samples: list[TelemetrySample], *, detailed: bool = True) -> None:
        """Print the telemetry log, newest first.

        Owners see calories and battery too; viewers only heart rate and steps.
        """
        table = Table(title=f"Telemetry Log ({len(samples)})")
        table.add_column("Time", style="dim")
        table.add_column("ID", style="dim")
        table.add_column("HR", justify="right")
        table.add_column("Steps", justify="right")
        if detailed:
            table.add_column("Cal", justify="right")
            table.add_column("Batt", justify="right")

        for s in samples:
            row = [
                format_time(s.timestamp),
                s.message_id[:8],
                str(s.metrics.heart_rate),
                f"+{s.metrics.steps_delta}",
            ]
            if detailed:
                row += [f"+{s.metrics.calories_delta:.3f}", _percent(s.metrics.battery)]
            table.add_row(*row)

        if not samples:
            self._con.print("[dim]No telemetry yet.[/dim]")
            return
        self._con.print(table)

    def sample_line(self, sample: TelemetrySample, *, prefix: str = "Sent") -> None:
        """Print one sample as a single log line."""
        m = sample.metrics
        self._con.print(
            f"[dim]{format_time(sample.timestamp)}[/dim] {prefix} "
            f"HR=[bold]{m.heart_rate}[/bold] steps=+{m.steps_delta} "
            f"cal=+{m.calories_delta:.3f} batt={_percent(m.battery)} "
            f"[dim]{sample.message_id[:8]}[/dim]"
        )

    def device_state(self, state: DeviceState) -> None:
        session = "Active" if state.session_active else "Inactive"
        self._con.print(
            Panel(
                f"Battery: [bold]{_percent(state.battery)}[/bold]   "
                f"Total Steps: [bold]{state.steps_total}[/bold]   "
                f"Session: [bold]{session}[/bold]",
                title="Current State",
                expand=False,
            )
        )

    # ------------------------------------------------------------------
    # Channel
    # ------------------------------------------------------------------

    def command_line(self, command: Command) -> None:
        text = f"[blue]Command[/blue] [bold]{command.name}[/bold]"
        if command.payload:
            text += f"  [dim]payload: {json.dumps(command.payload)}[/dim]"
        self._con.print(text)

    def command_log(self, commands: list[Command]) -> None:
        if not commands:
            self._con.print("[dim]No commands received yet[/dim]")
            return
        self._con.print(f"[bold]Commands Received ({len(commands)})[/bold]")
        for cmd in commands:
            self.command_line(cmd)

    def connection_status(self, connected: bool, detail: str | None = None) -> None:
        text = "[green]Connected[/green]" if connected else "[red]Disconnected[/red]"
        if detail:
            text += f"  [dim]{detail}[/dim]"
        self._con.print(f"Channel: {text}")

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
