"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import dataclasses
import logging
import sys

import click

from fitband.api.errors import AuthError, ConfigError
from fitband.channel.errors import ChannelError, ChannelTimeoutError
from fitband.output.formatter import FORMATS, OutputFormatter

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# ---------------------------------------------------------------------------
# Application context (stored in ctx.obj)
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class AppContext:
    """Shared state passed to every Click command via ``@click.pass_obj``."""

    profile: str
    output_format: str | None
    quiet: bool
    verbose: bool
    command_name: str = "unknown"
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        if self._formatter is None:
            force = "quiet" if self.quiet else self.output_format
            self._formatter = OutputFormatter(force_format=force)
        return self._formatter

    def configure_logging(self) -> None:
        """Route log records to stderr: DEBUG with ``--verbose``, WARNING otherwise."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(level=level, format=_LOG_FORMAT, force=True)
        if not self.verbose:
            return
        # Engine.IO / Socket.IO packet traces drown out our own debug lines.
        for name in ("engineio", "socketio", "httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.INFO)


# ---------------------------------------------------------------------------
# Root Click group
# ---------------------------------------------------------------------------


@click.group()
@click.option("--profile", default="default", envvar="FITBAND_PROFILE", help="Credential profile")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(FORMATS),
    default=None,
    help="Output format (default: auto-detect)",
)
@click.option("--quiet", is_flag=True, default=False, help="Suppress normal output")
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.pass_context
def cli(
    ctx: click.Context,
    profile: str,
    output_format: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """Browse fitness-band devices and simulate live telemetry."""
    ctx.ensure_object(dict)
    ctx.obj = AppContext(
        profile=profile,
        output_format=output_format,
        quiet=quiet,
        verbose=verbose,
    )
    ctx.obj.configure_logging()


# ---------------------------------------------------------------------------
# Register subcommand groups
# ---------------------------------------------------------------------------


def _register_commands() -> None:
    """Import and attach all subcommand groups to the root CLI."""
    from fitband.cli.auth import auth_group, profile_cmd
    from fitband.cli.device import device_group
    from fitband.cli.simulate import simulate_cmd, watch_cmd

    cli.add_command(auth_group)
    cli.add_command(profile_cmd)
    cli.add_command(device_group)
    cli.add_command(simulate_cmd)
    cli.add_command(watch_cmd)


_register_commands()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the appropriate command handler."""
    args = sys.argv[1:] if argv is None else list(argv)
    root: click.Context | None = None
    try:
        root = cli.make_context("fitband", args)
        with root:
            cli.invoke(root)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.exceptions.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except SystemExit:
        raise
    except Exception as exc:
        # The Click context stack is already unwound; the root context keeps the AppContext.
        app_ctx = root.obj if root is not None and isinstance(root.obj, AppContext) else None
        formatter = app_ctx.formatter if app_ctx else OutputFormatter()
        cmd_name = app_ctx.command_name if app_ctx else "unknown"

        if not _handle_known_error(exc, formatter, cmd_name):
            formatter.output_error(
                code=type(exc).__name__,
                message=str(exc),
                command=cmd_name,
            )
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# Helpers for error handling
# ---------------------------------------------------------------------------


def _handle_known_error(exc: Exception, formatter: OutputFormatter, cmd_name: str) -> bool:
    """Print a friendly message for well-known errors.

    Returns ``True`` if the error was handled.
    """
    if isinstance(exc, AuthError):
        _report(
            formatter,
            cmd_name,
            code="auth_failed",
            message=str(exc) or "Your session has expired.",
            hint="Run 'fitband auth login' to sign in again.",
        )
        return True
    if isinstance(exc, ConfigError):
        _report(formatter, cmd_name, code="config_error", message=str(exc))
        return True
    if isinstance(exc, ChannelTimeoutError):
        _report(
            formatter,
            cmd_name,
            code="channel_timeout",
            message=str(exc),
            hint="Check FITBAND_WS_URL and that the telemetry service is running.",
        )
        return True
    if isinstance(exc, ChannelError):
        _report(
            formatter,
            cmd_name,
            code="channel_error",
            message=str(exc),
            hint="The device secret may be wrong, or the device is not yours.",
        )
        return True
    return False


def _report(
    formatter: OutputFormatter,
    cmd_name: str,
    *,
    code: str,
    message: str,
    hint: str | None = None,
) -> None:
    if formatter.format == "json":
        full = f"{message} {hint}" if hint else message
        formatter.output_error(code=code, message=full, command=cmd_name)
        return
    formatter.rich.error(message)
    if hint:
        formatter.rich.info(f"[dim]{hint}[/dim]")
