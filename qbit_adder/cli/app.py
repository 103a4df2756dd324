"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from qbit_adder import __version__
from qbit_adder.core.service import CONFIG_FILE_NAME, TorrentAdderService
from qbit_adder.exceptions import QbitAdderError
from qbit_adder.models.submission import SubmissionOptions
from qbit_adder.storage.config_manager import ConfigManager
from qbit_adder.storage.cookie_store import CookieStore
from qbit_adder.storage.state_store import RecentSavePaths, StateStore
from qbit_adder.utils.formatting import parse_priorities

from .formatters import (
    format_error_with_suggestions,
    print_categories,
    print_config,
    print_metadata_table,
    print_recent_paths,
    print_status,
    print_submission_result,
    print_validation_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("qbit_adder")

app = typer.Typer(
    name="qbit-adder",
    help=(
        "Inspect .torrent files and add them to a qBittorrent WebUI. Use"
        " 'qbit-adder <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "qbit-adder"


CONFIG_DIR = get_config_dir()


def _fail(error: QbitAdderError) -> typer.Exit:
    console.print(format_error_with_suggestions(error))
    return typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """qBittorrent WebUI companion"""
    if version:
        console.print(f"[bold]qbit-adder[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("qbit_adder").setLevel(log_level)

    if show_config:
        config_file = CONFIG_DIR / CONFIG_FILE_NAME
        if not config_file.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]qbit-adder connect[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config = ConfigManager(config_file).load_config()
        print_config(config_file, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def connect(
    url: str = typer.Argument(..., help="WebUI address, e.g. http://127.0.0.1:8080"),
    username: str = typer.Option(
        "", "--username", "-u", help="WebUI username. Omit for a local auth bypass."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="WebUI password (prompted when omitted)."
    ),
):
    """Log in to a WebUI and remember it."""
    if username and password is None:
        password = typer.prompt("Password", hide_input=True)

    async def _connect_async():
        async with TorrentAdderService(CONFIG_DIR) as service:
            await service.connect(url, username, password or "")
            console.print(
                f"[bold green]✓ Connected to {escape(service.config.url)}[/bold green]"
            )

    try:
        asyncio.run(_connect_async())
    except QbitAdderError as e:
        raise _fail(e) from e


@app.command()
def disconnect():
    """Forget the session and stop reconnecting automatically."""

    async def _disconnect_async():
        async with TorrentAdderService(CONFIG_DIR) as service:
            await service.disconnect()

    try:
        asyncio.run(_disconnect_async())
    except QbitAdderError as e:
        raise _fail(e) from e
    console.print("[green]✓ Disconnected.[/green]")


@app.command()
def status(
    check: bool = typer.Option(
        False, "--check", help="Also try to restore the session against the WebUI."
    ),
):
    """Show the saved connection state."""
    try:
        config = ConfigManager(CONFIG_DIR / CONFIG_FILE_NAME).load_config()
    except QbitAdderError as e:
        raise _fail(e) from e
    state = StateStore(CONFIG_DIR)
    print_status(
        config,
        state.ever_connected,
        state.user_disconnected,
        CookieStore(CONFIG_DIR).count(),
    )

    if check:

        async def _restore_async() -> bool:
            async with TorrentAdderService(CONFIG_DIR, config=config) as service:
                return await service.restore()

        if asyncio.run(_restore_async()):
            console.print("[green]✓ WebUI session is active.[/green]")
        else:
            console.print("[yellow]○ No active WebUI session.[/yellow]")
            raise typer.Exit(code=1)


@app.command()
def info(
    torrent: Path = typer.Argument(..., help="Path to a .torrent file."),
):
    """Show the name, info-hash and files of a torrent."""

    async def _info_async():
        async with TorrentAdderService(CONFIG_DIR) as service:
            return service.parse_metadata(torrent), service.info_hash(torrent)

    try:
        metadata, info_hash = asyncio.run(_info_async())
    except QbitAdderError as e:
        raise _fail(e) from e
    print_metadata_table(metadata, info_hash)


@app.command()
def add(
    torrents: list[Path] = typer.Argument(  # noqa: B008
        ..., help="One or more .torrent files."
    ),
    savepath: Optional[str] = typer.Option(
        None,
        "--savepath",
        "-s",
        help="Download folder on the server (defaults to the last one used).",
    ),
    rename: Optional[str] = typer.Option(
        None, "--rename", "-r", help="New torrent name (single file only)."
    ),
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Category to assign."
    ),
    paused: bool = typer.Option(False, "--paused", help="Add without starting."),
    peer_limit: Optional[int] = typer.Option(
        None, "--peer-limit", min=0, help="Maximum connections (0 = unlimited)."
    ),
    priorities: Optional[str] = typer.Option(
        None,
        "--priorities",
        help="Comma-separated file priorities in file order, e.g. '1,0,6'.",
    ),
):
    """Add torrents to the WebUI, skipping ones it already has."""
    if rename and len(torrents) > 1:
        console.print("[red]✗ --rename can only be used with a single torrent.[/red]")
        raise typer.Exit(code=1)

    file_priorities = None
    if priorities:
        try:
            file_priorities = parse_priorities(priorities)
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--priorities") from e

    async def _add_async() -> int:
        failures = 0
        async with TorrentAdderService(CONFIG_DIR) as service:
            options = SubmissionOptions(
                savepath=(
                    savepath if savepath is not None else service.get_default_save_path()
                ),
                rename=rename,
                category=category,
                start_paused=paused,
                peer_limit=peer_limit,
                file_priorities=file_priorities,
            )
            if options.savepath:
                console.print(f"[dim]Save path: {escape(options.savepath)}[/dim]")
            for torrent in torrents:
                result = await service.check_and_submit(torrent, options)
                print_submission_result(result, torrent)
                if not result.success and result.error_kind != "DuplicateTorrentError":
                    failures += 1
        return failures

    try:
        failures = asyncio.run(_add_async())
    except QbitAdderError as e:
        raise _fail(e) from e
    if failures:
        raise typer.Exit(code=1)


@app.command()
def categories():
    """List the categories defined in the WebUI."""

    async def _categories_async() -> list[str]:
        async with TorrentAdderService(CONFIG_DIR) as service:
            return await service.list_categories()

    try:
        names = asyncio.run(_categories_async())
    except QbitAdderError as e:
        raise _fail(e) from e
    print_categories(names)


@app.command()
def recent():
    """List recently used save paths."""
    print_recent_paths(RecentSavePaths(StateStore(CONFIG_DIR)).get())


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config_manager = ConfigManager(CONFIG_DIR / CONFIG_FILE_NAME)
        config = config_manager.load_config()
        print_validation_table(config)
    except QbitAdderError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
