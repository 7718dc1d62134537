"""CLI entry point for modauth."""

import asyncio
from pathlib import Path

import click

from modauth import __version__
from modauth.auth_connection import AuthConnection
from modauth.config import load_config
from modauth.errors import UpgradeRoleError
from modauth.logging import setup_logging
from modauth.memory import InMemoryAuthority, InMemoryConnection, InMemorySession


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None, log_level: str | None) -> None:
    """modauth - Upgrade conference participants to moderator."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["logger"] = setup_logging(ctx.obj["config"], level=log_level)


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"modauth version {__version__}")


def _parse_accounts(values: tuple[str, ...]) -> dict[str, str]:
    accounts = {}
    for value in values:
        user_id, sep, password = value.partition(":")
        if not sep or not user_id:
            raise click.BadParameter(
                f"expected ID:PASSWORD, got {value!r}", param_hint="--account"
            )
        accounts[user_id] = password
    return accounts


def describe_outcome(error: UpgradeRoleError | None) -> str:
    """Human readable outcome of a role upgrade."""
    if error is None:
        return "upgraded"
    if error.connection_error is not None:
        return f"connection error: {error.connection_error} ({error.message})"
    if error.timed_out:
        return "timed out"
    if error.is_canceled:
        return "canceled"
    return f"authentication error: {error.authentication_error} ({error.message})"


@main.command()
@click.option("--id", "user_id", required=True, help="User ID to log in with.")
@click.option("--password", required=True, help="Password to log in with.")
@click.option("--room", default=None, help="Room to join (defaults to config).")
@click.option("--room-password", default=None, help="Password to join the room.")
@click.option(
    "--account",
    "accounts",
    multiple=True,
    help="Known account as ID:PASSWORD. Defaults to the login itself.",
)
@click.option(
    "--moderator",
    "moderators",
    multiple=True,
    help="Account allowed to moderate. Defaults to every account.",
)
@click.option(
    "--locked-with",
    default=None,
    help="Password the room is locked with.",
)
@click.option("--cancel", is_flag=True, help="Cancel right after starting.")
@click.option("--timeout", type=float, default=None, help="Handshake timeout (s).")
@click.pass_context
def simulate(
    ctx: click.Context,
    user_id: str,
    password: str,
    room: str | None,
    room_password: str | None,
    accounts: tuple[str, ...],
    moderators: tuple[str, ...],
    locked_with: str | None,
    cancel: bool,
    timeout: float | None,
) -> None:
    """Run a role upgrade against an in-memory session authority."""
    config = ctx.obj["config"]
    room = room or config.room
    if room_password is None:
        room_password = config.room_password
    if timeout is None:
        timeout = config.handshake.timeout

    known = _parse_accounts(accounts) if accounts else {user_id: password}
    authority = InMemoryAuthority(
        accounts=known,
        moderators=set(moderators) if moderators else None,
        room_passwords={room: locked_with} if locked_with is not None else None,
    )

    async def _simulate() -> tuple[UpgradeRoleError | None, str | None]:
        primary = InMemoryConnection({"authority": authority, "settings": {}})
        session = InMemorySession(room, primary)
        auth = AuthConnection(session, timeout=timeout)

        future = auth.authenticate_and_upgrade_role(
            id=user_id,
            password=password,
            room_password=room_password,
            on_login_successful=lambda: click.echo(f"Logged in as {user_id}"),
        )
        if cancel:
            auth.cancel()

        try:
            await future
        except UpgradeRoleError as e:
            return e, session.role
        return None, session.role

    error, role = asyncio.run(_simulate())
    click.echo(describe_outcome(error))
    if error is not None:
        raise SystemExit(1)
    click.echo(f"Joined {room} as {role}")
