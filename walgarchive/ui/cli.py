"""Command line entry point.

    walg-archive check              - handshake with the daemon
    walg-archive push %f [%p]       - archive one segment (archive_command)
    walg-archive settings           - show effective configuration
"""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from walgarchive.archive.module import WalgArchiveModule
from walgarchive.core.configs import (
    CONFIG_PATH,
    ArchiveSettings,
    get_archive_settings,
    load_raw_config,
)
from walgarchive.exceptions import ConfigurationError
from walgarchive.ui.output import UIManager

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="walg-archive - hand completed WAL segments to the WAL-G daemon.",
)

ui = UIManager()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_settings(socket: Optional[str], timeout: Optional[float]) -> ArchiveSettings:
    """Load config, apply command line overrides. Exits on error."""
    try:
        raw = load_raw_config()
        if socket is not None:
            raw["walg_socket"] = socket
        if timeout is not None:
            raw["timeout"] = str(timeout)
        return get_archive_settings(raw)
    except ConfigurationError as e:
        ui.error(f"Error loading configuration: {e}")
        raise typer.Exit(1)


SOCKET_OPTION = typer.Option(None, "--socket", "-s", help="Path to the WAL-G daemon socket")
TIMEOUT_OPTION = typer.Option(None, "--timeout", "-t", min=0.001, help="Socket timeout in seconds")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Show debug output")


@app.command()
def check(
    socket: Optional[str] = SOCKET_OPTION,
    timeout: Optional[float] = TIMEOUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Check that the WAL-G daemon answers the handshake.

    Example: walg-archive check --socket /var/run/walg.sock
    """
    _configure_logging(verbose)
    settings = _load_settings(socket, timeout)
    module = WalgArchiveModule.from_settings(settings)

    try:
        ready = module.is_configured()
    finally:
        module.shutdown()

    if not ready:
        ui.error(f"WAL-G daemon is not ready: {module.last_diagnostic}")
        raise typer.Exit(1)
    ui.success(f"WAL-G daemon at {settings.socket_path} is ready")


@app.command()
def push(
    segment: str = typer.Argument(..., help="WAL file name (%f)"),
    full_path: Optional[str] = typer.Argument(None, help="WAL file path (%p)"),
    socket: Optional[str] = SOCKET_OPTION,
    timeout: Optional[float] = TIMEOUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Archive one WAL segment. Exit status 0 means the daemon acknowledged it.

    Example: archive_command = 'walg-archive push %f %p'
    """
    _configure_logging(verbose)
    settings = _load_settings(socket, timeout)
    module = WalgArchiveModule.from_settings(settings)

    try:
        archived = module.is_configured() and module.archive_file(
            segment, full_path or ""
        )
    finally:
        module.shutdown()

    if not archived:
        ui.error(f"Failed to archive {segment}: {module.last_diagnostic}")
        raise typer.Exit(1)
    ui.success(f"{segment} archived")


@app.command("settings")
def show_settings() -> None:
    """Display the effective configuration."""
    console = Console()

    try:
        settings = get_archive_settings(load_raw_config())
    except ConfigurationError as e:
        ui.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)

    table = Table(title="walg-archive Configuration", show_header=True)
    table.add_column("Setting", style="cyan", width=20)
    table.add_column("Value", style="green")

    table.add_row("walg_socket", settings.socket_path or "[dim]disabled[/dim]")
    table.add_row(
        "timeout",
        "[dim]none[/dim]" if settings.timeout is None else f"{settings.timeout}s",
    )
    table.add_row("max_send_attempts", str(settings.max_send_attempts))
    table.add_row("max_response_size", str(settings.max_response_size))
    table.add_row("framed_responses", str(settings.framed_responses).lower())

    console.print(table)
    console.print(f"\n[dim]Config file: {CONFIG_PATH}[/dim]")


def run() -> None:
    """Entry point for console script mapping."""
    app()


if __name__ == "__main__":
    run()
