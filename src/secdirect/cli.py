"""Thin CLI wrapper over :class:`secdirect.AlarmClient`."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from collections.abc import Coroutine
from dataclasses import asdict
from typing import Any, TypeVar

import typer

from secdirect._constants import CONFIG_FILE, DEFAULT_COUNTRY
from secdirect.client import AlarmClient
from secdirect.config import Config, load_config, save_config
from secdirect.errors import ApiError
from secdirect.models import AlarmStatus, AuthResult, CommandResult, Credentials, Installation
from secdirect.operations import ArmMode, DisarmMode, resolve_mode

app = typer.Typer(help="Control Securitas Direct alarms.", invoke_without_command=True)

T = TypeVar("T")

_ARM_MODES = " | ".join(m.name.lower() for m in ArmMode)


@app.callback()
def main(
    ctx: typer.Context,
    country: str = typer.Option(
        DEFAULT_COUNTRY, "--country", "-c", envvar="SECURITAS_COUNTRY", help="Account country"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Control Securitas Direct alarms."""
    _setup_logging(debug)
    ctx.obj = {"country": country.upper()}
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _setup_logging(debug: bool) -> None:
    """Configure logging from the --debug flag or the LOG_LEVEL env var."""
    level = logging.DEBUG if debug or os.environ.get("LOG_LEVEL") == "debug" else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_json(obj: object) -> None:
    """Print JSON: syntax-highlighted when stdout is a TTY, compact otherwise."""
    if sys.stdout.isatty():
        try:
            from rich.console import Console
            from rich.syntax import Syntax

            Console().print(Syntax(json.dumps(obj, indent=2), "json"))
        except ImportError:
            typer.echo(json.dumps(obj, indent=2))
    else:
        typer.echo(json.dumps(obj))


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro*, rendering any :class:`ApiError` as a one-line failure."""
    try:
        return asyncio.run(coro)
    except ApiError as e:
        typer.echo(f"Error ({e.code}): {e.message}", err=True)
        raise typer.Exit(1) from None


async def _connect(client: AlarmClient, config: Config) -> None:
    """Authenticate *client* with the saved credentials or exit with an error."""
    if not config.has_credentials:
        typer.echo("No saved credentials. Run `secdirect login` first.", err=True)
        raise typer.Exit(1)
    assert config.username is not None and config.password is not None
    result = await client.authenticate(
        Credentials(config.username, config.password, client.country)
    )
    if not result.success:
        typer.echo(f"Authentication failed: {result.message}", err=True)
        raise typer.Exit(1)


async def _select(client: AlarmClient, config: Config, number: str | None) -> Installation:
    """Resolve the installation to act on and remember it in the config file."""
    try:
        inst = await client.select_installation(number or config.installationId)
    except KeyError as e:
        typer.echo(str(e.args[0]), err=True)
        raise typer.Exit(1) from None
    if config.installationId != inst.number:
        config.installationId = inst.number
        save_config(config)
    return inst


def _echo_command_result(result: CommandResult) -> None:
    if result.success:
        typer.echo(result.message or "OK")
        if result.reference_id:
            typer.echo(f"  Reference ID: {result.reference_id}")
    else:
        typer.echo(f"Rejected: {result.message}", err=True)
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def login(
    ctx: typer.Context,
    username: str = typer.Option(
        ..., prompt=True, envvar="SECURITAS_USERNAME", help="Securitas account username"
    ),
    password: str = typer.Option(
        ...,
        prompt=True,
        hide_input=True,
        envvar="SECURITAS_PASSWORD",
        help="Securitas account password",
    ),
) -> None:
    """Authenticate and save credentials locally."""
    country = ctx.obj["country"]
    typer.echo(f"Logging in as {username}...")
    result = _run(_login_async(Credentials(username, password, country)))
    if not result.success:
        typer.echo(f"Authentication failed: {result.message}", err=True)
        raise typer.Exit(1)

    config = load_config()
    config.username = username
    config.password = password
    save_config(config)
    typer.echo("Logged in. Credentials saved.")


async def _login_async(credentials: Credentials) -> AuthResult:
    async with AlarmClient(credentials.country or DEFAULT_COUNTRY) as client:
        return await client.authenticate(credentials)


@app.command()
def logout() -> None:
    """Forget saved credentials and the selected installation."""
    save_config(Config())
    typer.echo("Logged out.")


@app.command()
def installations(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List installations on the account."""
    config = load_config()
    found = _run(_installations_async(ctx.obj["country"], config))
    if as_json:
        _print_json([asdict(i) for i in found])
        return
    if not found:
        typer.echo("No installations found.", err=True)
        raise typer.Exit(1)

    for i, inst in enumerate(found):
        marker = "*" if inst.number == config.installationId else " "
        typer.echo(f"  {marker} [{i}] {inst.display_name}")
        typer.echo(f"        Number: {inst.number}  Panel: {inst.panel}")
        if inst.address:
            typer.echo(f"        Address: {inst.address}, {inst.city}")
    typer.echo("\n  * = selected.  Use `secdirect select <number>` to change.")


async def _installations_async(country: str, config: Config) -> list[Installation]:
    async with AlarmClient(country) as client:
        await _connect(client, config)
        return await client.get_installations()


@app.command()
def select(ctx: typer.Context, number: str) -> None:
    """Select the installation used by status, arm and disarm."""
    config = load_config()
    inst = _run(_select_async(ctx.obj["country"], config, number))
    typer.echo(f"Selected: {inst.display_name} (Number: {inst.number})")


async def _select_async(country: str, config: Config, number: str) -> Installation:
    async with AlarmClient(country) as client:
        await _connect(client, config)
        return await _select(client, config, number)


@app.command()
def status(
    ctx: typer.Context,
    installation: str | None = typer.Option(
        None, "--installation", "-i", help="Installation number"
    ),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the alarm status of an installation."""
    config = load_config()
    inst, alarm = _run(_status_async(ctx.obj["country"], config, installation))
    if as_json:
        _print_json(asdict(alarm))
        return

    typer.echo(inst.display_name)
    typer.echo(f"  Status: {alarm.status}")
    typer.echo(f"  Last update: {alarm.timestamp_update}")
    if alarm.exceptions:
        typer.echo(f"  Exceptions ({len(alarm.exceptions)}):")
        for exc in alarm.exceptions:
            typer.echo(f"    {exc.alias}: {exc.status} ({exc.device_type})")


async def _status_async(
    country: str, config: Config, number: str | None
) -> tuple[Installation, AlarmStatus]:
    async with AlarmClient(country) as client:
        await _connect(client, config)
        inst = await _select(client, config, number)
        return inst, await client.get_status(inst.number)


@app.command()
def arm(
    ctx: typer.Context,
    mode: str = typer.Option("full", "--mode", "-m", help=f"Arm mode: {_ARM_MODES}"),
    installation: str | None = typer.Option(
        None, "--installation", "-i", help="Installation number"
    ),
) -> None:
    """Arm the alarm."""
    try:
        request = resolve_mode(mode, ArmMode)
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None
    config = load_config()
    typer.echo(f"Arming ({request})...")
    _echo_command_result(_run(_arm_async(ctx.obj["country"], config, installation, request)))


async def _arm_async(
    country: str, config: Config, number: str | None, request: str
) -> CommandResult:
    async with AlarmClient(country) as client:
        await _connect(client, config)
        inst = await _select(client, config, number)
        return await client.arm(inst.number, inst.panel, request)


@app.command()
def disarm(
    ctx: typer.Context,
    installation: str | None = typer.Option(
        None, "--installation", "-i", help="Installation number"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Disarm the alarm."""
    if not yes:
        typer.confirm("Are you sure you want to disarm the alarm?", abort=True)
    config = load_config()
    typer.echo("Disarming...")
    _echo_command_result(_run(_disarm_async(ctx.obj["country"], config, installation)))


async def _disarm_async(country: str, config: Config, number: str | None) -> CommandResult:
    async with AlarmClient(country) as client:
        await _connect(client, config)
        inst = await _select(client, config, number)
        return await client.disarm(inst.number, inst.panel, DisarmMode.FULL)


@app.command("config")
def show_config() -> None:
    """Show the saved configuration (password hidden)."""
    config = load_config()
    typer.echo(f"Config file: {CONFIG_FILE}")
    typer.echo(f"Username: {config.username or 'Not set'}")
    typer.echo(f"Installation: {config.installationId or 'Not set'}")
