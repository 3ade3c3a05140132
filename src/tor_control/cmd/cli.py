"""Command-line interface for the control client.

This module provides the ``tor-control`` command, handling:
- Control port address, port, password and timeout options
- Sending signals and registered commands
- Rendering GETINFO/GETCONF replies as tables
- Local daemon discovery
- Error reporting

Every option can also be set through the environment (``TOR_CONTROL_ADDRESS``,
``TOR_CONTROL_PORT``, ``TOR_CONTROL_PASSWORD``, ``TOR_CONTROL_TIMEOUT``).

Example:
    # Run from command line:
    $ tor-control --port 9051 --password secret signal NEWNYM
    $ tor-control getinfo version status/bootstrap-phase
"""

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from tor_control import __version__
from tor_control.core.command import (
    CommandExchange,
    CommandResponse,
    PairsResponse,
    ResponsePairs,
    dispatch,
    dispatch_and_return,
    registered_commands,
)
from tor_control.core.commands import GetConfCommand, GetInfoCommand, SetConfCommand, SignalCommand
from tor_control.core.config import (
    DEFAULT_ADDRESS,
    DEFAULT_CONTROL_PORT,
    DEFAULT_TIMEOUT,
    ENV_ADDRESS,
    ENV_PASSWORD,
    ENV_PORT,
    ENV_TIMEOUT,
    ControlSettings,
)
from tor_control.core.discovery import find_control_listeners
from tor_control.core.exceptions import DispatchError
from tor_control.core.utils.log_config import configure_logging

console = Console()
app = typer.Typer(help="Send commands to a Tor control port")


def _settings(ctx: typer.Context) -> ControlSettings:
    return ctx.obj


def _build(command_type, *args) -> CommandExchange[CommandResponse]:
    try:
        return command_type(*args)
    except ValueError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(code=2) from e


def _dispatch(ctx: typer.Context, command: CommandExchange[CommandResponse]) -> CommandResponse:
    settings = _settings(ctx)
    try:
        return dispatch(
            command,
            settings.address,
            settings.port,
            settings.password,
            timeout=settings.timeout,
        )
    except DispatchError as e:
        logger.error(f"{e}: {e.cause}")
        console.print(f"[red]Error: {e}")
        console.print(f"[red]Cause: {e.cause}")
        raise typer.Exit(code=1) from e


def _report(response: CommandResponse) -> None:
    if response.success:
        console.print("[green]OK")
    else:
        console.print("[red]FAILED")
        raise typer.Exit(code=1)


def _pairs_table(title: str, pairs: ResponsePairs) -> Table:
    table = Table(title=title)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in pairs.items():
        table.add_row(key, value)
    return table


def _show_pairs(title: str, response: CommandResponse) -> None:
    if not isinstance(response, PairsResponse) or not response.success:
        _report(response)
        return
    console.print(_pairs_table(title, response.pairs))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    address: str = typer.Option(DEFAULT_ADDRESS, "--address", "-a", envvar=ENV_ADDRESS, help="Control port host"),
    port: int = typer.Option(DEFAULT_CONTROL_PORT, "--port", "-p", envvar=ENV_PORT, help="Control port"),
    password: str = typer.Option("", "--password", envvar=ENV_PASSWORD, help="Control port password"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", envvar=ENV_TIMEOUT, help="Socket timeout in seconds"),
    debug: bool = typer.Option(
        default=False,
        help="Enable debug logging",
    ),
):
    """Send commands to a Tor control port."""
    if debug:
        configure_logging("DEBUG")

    ctx.obj = ControlSettings(address=address, port=port, password=password, timeout=timeout)
    if ctx.invoked_subcommand is None:
        console.print(f"[cyan]Tor Control v{__version__}[/cyan]")


@app.command(name="run")
def run_command(ctx: typer.Context, name: str = typer.Argument(..., help="Registered command name")):
    """Run a registered command, reporting only success or failure."""
    settings = _settings(ctx)
    if name not in registered_commands():
        console.print(f"[red]Unknown command: {name}")
        console.print(f"[yellow]Available: {', '.join(registered_commands())}")
        raise typer.Exit(code=2)

    logger.info(f"Running {name} against {settings.address}:{settings.port}")
    if dispatch_and_return(name, settings.address, settings.port, settings.password, timeout=settings.timeout):
        console.print("[green]OK")
    else:
        console.print("[red]FAILED")
        raise typer.Exit(code=1)


@app.command(name="signal")
def send_signal(ctx: typer.Context, name: str = typer.Argument(..., help="Signal name, e.g. NEWNYM")):
    """Send a signal to the daemon."""
    _report(_dispatch(ctx, _build(SignalCommand, name)))


@app.command(name="getinfo")
def get_info(ctx: typer.Context, keys: list[str] = typer.Argument(..., help="GETINFO keys")):
    """Query daemon information."""
    _show_pairs("GETINFO", _dispatch(ctx, _build(GetInfoCommand, *keys)))


@app.command(name="getconf")
def get_conf(ctx: typer.Context, keys: list[str] = typer.Argument(..., help="Configuration options")):
    """Query configuration options."""
    _show_pairs("GETCONF", _dispatch(ctx, _build(GetConfCommand, *keys)))


@app.command(name="setconf")
def set_conf(ctx: typer.Context, settings: list[str] = typer.Argument(..., help="OPTION=VALUE pairs")):
    """Change configuration options; a bare OPTION resets it to its default."""
    values = {}
    for setting in settings:
        key, sep, value = setting.partition("=")
        values[key] = value if sep else None
    _report(_dispatch(ctx, _build(SetConfCommand, values)))


@app.command(name="commands")
def list_commands():
    """List the commands available to ``run``."""
    for name in registered_commands():
        console.print(name)


@app.command(name="scan")
def scan():
    """Show listening sockets of local Tor daemons."""
    listeners = find_control_listeners()
    if not listeners:
        console.print("[yellow]No listening tor process found")
        raise typer.Exit(code=1)

    table = Table(title="Tor listeners")
    table.add_column("PID", style="cyan")
    table.add_column("Process", style="cyan")
    table.add_column("Address", style="green")
    for listener in listeners:
        table.add_row(str(listener.pid), listener.name, f"{listener.ip}:{listener.port}")
    console.print(table)


if __name__ == "__main__":
    app()
