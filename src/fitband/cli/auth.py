"""CLI commands for account authentication (login, register, logout, status, profile)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from fitband._internal.async_utils import run_async
from fitband.cli._client import get_account_api, get_token_store
from fitband.cli._options import global_options
from fitband.models.api import Credentials

if TYPE_CHECKING:
    from fitband.cli.main import AppContext
    from fitband.models.api import AuthResponse

auth_group = click.Group("auth", help="Account authentication commands")


def _prompt_credentials(email: str | None, password: str | None) -> Credentials:
    if not email:
        email = click.prompt("Email")
    if not password:
        password = click.prompt("Password", hide_input=True)
    return Credentials(email=email, password=password)


# ---------------------------------------------------------------------------
# Command registrations
# ---------------------------------------------------------------------------


@auth_group.command("login")
@click.option("--email", default=None, help="Account email (prompted if omitted)")
@click.option(
    "--password",
    default=None,
    envvar="FITBAND_PASSWORD",
    help="Account password (prompted if omitted; env: FITBAND_PASSWORD)",
)
@global_options
def login_cmd(app_ctx: AppContext, email: str | None, password: str | None) -> None:
    """Log in with email and password and store the session token."""
    credentials = _prompt_credentials(email, password)
    run_async(_cmd_authenticate(app_ctx, credentials, register=False))


@auth_group.command("register")
@click.option("--email", default=None, help="Account email (prompted if omitted)")
@click.option(
    "--password",
    default=None,
    envvar="FITBAND_PASSWORD",
    help="Account password (prompted if omitted; env: FITBAND_PASSWORD)",
)
@global_options
def register_cmd(app_ctx: AppContext, email: str | None, password: str | None) -> None:
    """Create an account. The backend provisions a device for it."""
    credentials = _prompt_credentials(email, password)
    run_async(_cmd_authenticate(app_ctx, credentials, register=True))


@auth_group.command("logout")
@global_options
def logout_cmd(app_ctx: AppContext) -> None:
    """Clear the stored session token."""
    get_token_store(app_ctx).clear()
    formatter = app_ctx.formatter
    if formatter.format == "json":
        formatter.output({"status": "logged_out"}, command="auth.logout")
    else:
        formatter.rich.info("Logged out.")


@auth_group.command("status")
@global_options
def status_cmd(app_ctx: AppContext) -> None:
    """Show whether a session token is stored for this profile."""
    store = get_token_store(app_ctx)
    formatter = app_ctx.formatter
    user = store.user

    if formatter.format == "json":
        formatter.output(
            {
                "authenticated": store.is_authenticated,
                "profile": app_ctx.profile,
                "user": user,
            },
            command="auth.status",
        )
        return

    if not store.is_authenticated:
        formatter.rich.info("Not logged in.")
        formatter.rich.info("[dim]Run 'fitband auth login' to sign in.[/dim]")
        return
    formatter.rich.info(f"Logged in as [bold]{user.email if user else 'unknown user'}[/bold]")
    formatter.rich.info(f"Profile: {app_ctx.profile}")
    if user and user.device_id:
        formatter.rich.info(f"Device: [cyan]{user.device_id}[/cyan]")


@click.command("profile")
@global_options
def profile_cmd(app_ctx: AppContext) -> None:
    """Show the logged-in account."""
    run_async(_cmd_profile(app_ctx))


# ---------------------------------------------------------------------------
# Async implementations
# ---------------------------------------------------------------------------


async def _cmd_authenticate(
    app_ctx: AppContext, credentials: Credentials, *, register: bool
) -> None:
    formatter = app_ctx.formatter
    client, api = get_account_api(app_ctx, require_auth=False)
    async with client:
        if register:
            auth: AuthResponse = await api.register(credentials)
        else:
            auth = await api.login(credentials)

    get_token_store(app_ctx).save(auth)

    command = "auth.register" if register else "auth.login"
    if formatter.format == "json":
        formatter.output({"user": auth.user}, command=command)
        return

    verb = "Registered" if register else "Logged in"
    formatter.rich.info(f"[bold green]{verb} as {auth.user.email}[/bold green]")
    formatter.rich.info("")
    formatter.rich.info("Try it out:")
    formatter.rich.info("  [cyan]fitband device list[/cyan]")
    formatter.rich.info("  [cyan]fitband simulate[/cyan]")


async def _cmd_profile(app_ctx: AppContext) -> None:
    formatter = app_ctx.formatter
    client, api = get_account_api(app_ctx)
    async with client:
        user = await api.get_profile()

    if formatter.format == "json":
        formatter.output(user, command="profile")
    else:
        formatter.rich.profile(user)
