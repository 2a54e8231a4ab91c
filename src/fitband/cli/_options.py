"""Shared CLI decorator that propagates global options to leaf commands."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any

import click

from fitband.output.formatter import FORMATS

if TYPE_CHECKING:
    from fitband.cli.main import AppContext


def global_options(f: Any) -> Any:
    """Add global CLI options to a leaf command.

    Allows ``--profile``, ``--format``, ``--quiet`` and ``--verbose`` after the
    subcommand name (e.g. ``fitband device list --format json``).
    Command-level values override the root-group values stored in
    :class:`AppContext`.
    """

    @click.option(
        "--verbose",
        "local_verbose",
        is_flag=True,
        default=False,
        help="Enable verbose logging",
    )
    @click.option(
        "--quiet",
        "local_quiet",
        is_flag=True,
        default=False,
        help="Suppress normal output",
    )
    @click.option(
        "--format",
        "local_output_format",
        type=click.Choice(FORMATS),
        default=None,
        help="Output format (default: auto-detect)",
    )
    @click.option("--profile", "local_profile", default=None, help="Credential profile name")
    @click.pass_obj
    def wrapper(app_ctx: AppContext, /, **kwargs: Any) -> Any:
        # "fitband device list" -> "device.list"
        path = click.get_current_context().command_path.split()
        app_ctx.command_name = ".".join(path[1:]) or "unknown"

        local_profile: str | None = kwargs.pop("local_profile", None)
        local_output_format: str | None = kwargs.pop("local_output_format", None)
        local_quiet: bool = kwargs.pop("local_quiet", False)
        local_verbose: bool = kwargs.pop("local_verbose", False)

        if local_profile is not None:
            app_ctx.profile = local_profile
        if local_output_format is not None:
            app_ctx.output_format = local_output_format
            app_ctx._formatter = None
        if local_quiet:
            app_ctx.quiet = True
            app_ctx._formatter = None
        if local_verbose:
            app_ctx.verbose = True
            app_ctx.configure_logging()

        return f(app_ctx, **kwargs)

    functools.update_wrapper(wrapper, f)
    return wrapper
