"""Command line interface for the FortiClient VPN controller."""

from __future__ import annotations

import datetime as dt
import logging
import signal
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.bridge import BridgeClient
from .core.catalog import ConnectionCatalog
from .core.errors import FortiVPNError
from .core.launcher import ensure_client_running
from .core.reconcile import Reconciler
from .core.settings import Settings, load_settings
from .core.state import Status, build_status, display_name
from .core.watch import Watcher
from .utils.logging import enable_console_logging, get_logger
from .utils.processes import ClientApp

EXIT_OK = 0
EXIT_NOT_CONNECTED = 1
EXIT_NOT_CONVERGED = 2
EXIT_ERROR = 3

console = Console()
err_console = Console(stderr=True)
logger = get_logger("cli")

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="FortiClient VPN helper CLI.",
)

CONNECTION_HELP = "VPN connection name, e.g. prod/int."


@dataclass
class Services:
    settings: Settings
    bridge: BridgeClient
    catalog: ConnectionCatalog
    reconciler: Reconciler
    client_app: ClientApp


def make_bridge(settings: Settings) -> BridgeClient:
    script = Path(settings.bridge_script).expanduser() if settings.bridge_script else None
    return BridgeClient(
        script=script,
        node=settings.node_binary,
        module_path=settings.module_path,
        timeout=settings.bridge_timeout,
    )


def make_client_app(settings: Settings) -> ClientApp:
    return ClientApp(settings.app_name)


def make_services(settings: Settings) -> Services:
    bridge = make_bridge(settings)
    return Services(
        settings=settings,
        bridge=bridge,
        catalog=ConnectionCatalog(bridge),
        reconciler=Reconciler(bridge),
        client_app=make_client_app(settings),
    )


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except FortiVPNError as exc:
        logger.error("%s", exc)
        err_console.print(f"[red]error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=EXIT_ERROR) from exc


def _services(ctx: typer.Context) -> Services:
    if ctx.obj is None:
        with _reported_errors():
            ctx.obj = make_services(load_settings())
    return ctx.obj


def _seconds(value: Optional[float], default: float) -> float:
    if value is None:
        value = default
    return max(value, 0.0)


def _timestamp() -> str:
    return dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _echo(text: str) -> None:
    console.print(escape(text), highlight=False)


def _print_status(status: Status, as_json: bool) -> None:
    if as_json:
        console.print_json(data=status.to_dict())
        return
    _echo(f"state: {status.state}")
    _echo(f"current connection: {display_name(status.current_connection)}")
    if status.selected_connection:
        _echo(f"selected connection: {status.selected_connection}")


def _version_callback(value: bool) -> None:
    if value:
        console.print(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="Path to the YAML configuration file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Mirror log output to the terminal."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
) -> None:
    if verbose:
        enable_console_logging(logging.DEBUG)
    if config is not None:
        with _reported_errors():
            ctx.obj = make_services(load_settings(config))


@app.command()
def connections(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output."),
) -> None:
    """List FortiClient VPN connections."""

    services = _services(ctx)
    with _reported_errors():
        found = services.catalog.fetch()
    if not found:
        _echo("No FortiClient VPN connections found.")
        raise typer.Exit(code=EXIT_NOT_CONNECTED)

    if as_json:
        console.print_json(data=[connection.to_dict() for connection in found])
        return
    table = Table(title="FortiClient VPN connections")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Default")
    for connection in found:
        table.add_row(escape(connection.name), connection.kind.value, "Yes" if connection.is_default else "")
    console.print(table)


app.command("services", hidden=True, help="Alias for connections.")(connections)


@app.command()
def status(
    ctx: typer.Context,
    connection: str = typer.Option("", "--connection", "-c", help=CONNECTION_HELP),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output."),
) -> None:
    """Show whether the tunnel is up."""

    services = _services(ctx)
    with _reported_errors():
        selected = ""
        if connection.strip():
            selected = services.catalog.resolve(connection).name
        state = services.reconciler.observe()
    result = build_status(state, selected)
    _print_status(result, as_json)
    if not result.connected:
        raise typer.Exit(code=EXIT_NOT_CONNECTED)


@app.command()
def connect(
    ctx: typer.Context,
    connection: str = typer.Option("", "--connection", "-c", help=CONNECTION_HELP),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Wait timeout in seconds."),
    interval: Optional[float] = typer.Option(None, "--interval", help="Polling interval in seconds."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output."),
) -> None:
    """Connect to a VPN connection and wait until the tunnel is up."""

    services = _services(ctx)
    settings = services.settings
    with _reported_errors():
        ensure_client_running(services.client_app, settings.app_launch_timeout)
        target = services.catalog.resolve(connection)
        result = services.reconciler.connect(
            target,
            timeout=_seconds(timeout, settings.connect_timeout),
            interval=_seconds(interval, settings.poll_interval),
        )
    _print_status(result, as_json)
    if not result.connected:
        raise typer.Exit(code=EXIT_NOT_CONVERGED)


@app.command()
def disconnect(
    ctx: typer.Context,
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Wait timeout in seconds."),
    interval: Optional[float] = typer.Option(None, "--interval", help="Polling interval in seconds."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output."),
) -> None:
    """Disconnect the active tunnel and wait until it is down."""

    services = _services(ctx)
    settings = services.settings
    with _reported_errors():
        result = services.reconciler.disconnect(
            timeout=_seconds(timeout, settings.disconnect_timeout),
            interval=_seconds(interval, settings.poll_interval),
        )
    _print_status(result, as_json)
    if result.connected:
        raise typer.Exit(code=EXIT_NOT_CONVERGED)


@app.command()
def watch(
    ctx: typer.Context,
    connection: str = typer.Option("", "--connection", "-c", help=CONNECTION_HELP),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Reconnect wait timeout in seconds."),
    interval: Optional[float] = typer.Option(None, "--interval", help="Polling interval in seconds."),
) -> None:
    """Keep a connection up, reconnecting whenever it drops. Runs until stopped."""

    services = _services(ctx)
    settings = services.settings
    with _reported_errors():
        target = services.catalog.resolve(connection)

    watcher = Watcher(
        services.reconciler,
        target,
        interval=_seconds(interval, settings.watch_interval),
        reconnect_timeout=_seconds(timeout, settings.watch_reconnect_timeout),
        listener=lambda message: _echo(f"{_timestamp()} {message}"),
    )
    _echo(
        f'Watching "{target.name}". interval={watcher.interval:g}s '
        f"reconnect-timeout={watcher.reconnect_timeout:g}s"
    )

    previous = signal.signal(signal.SIGTERM, lambda signum, frame: watcher.stop())
    try:
        with _reported_errors():
            watcher.run()
    except KeyboardInterrupt:
        watcher.stop()
    finally:
        signal.signal(signal.SIGTERM, previous)
    _echo(f"{_timestamp()} stopped watching {target.name!r}")


@app.command("help")
def help_command(ctx: typer.Context) -> None:
    """Show this message and exit."""

    parent = ctx.parent or ctx
    console.print(parent.get_help(), markup=False, highlight=False)


def run_cli(argv: List[str] | None = None) -> int:
    try:
        app(args=argv, prog_name="fortivpn", standalone_mode=True)
    except typer.Exit as exc:
        return exc.exit_code
    except SystemExit as exc:
        if exc.code is None:
            return EXIT_OK
        if isinstance(exc.code, int):
            return exc.code
        err_console.print(str(exc.code), markup=False)
        return EXIT_ERROR
    return EXIT_OK
