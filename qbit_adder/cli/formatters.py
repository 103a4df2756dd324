"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from qbit_adder.models.config import ConnectionConfig
from qbit_adder.models.submission import SubmissionResult
from qbit_adder.torrent.metadata import TorrentMetadata
from qbit_adder.utils.formatting import format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Verify the WebUI username and password.",
            "• Run `qbit-adder connect <URL> -u <USER>` to log in again.",
            "• Check that the WebUI has not banned your IP after failed logins.",
        ],
        "NotConnectedError": [
            "• You disconnected explicitly. Run `qbit-adder connect <URL>`.",
        ],
        "ServiceConnectionError": [
            "• Check that qBittorrent is running with the WebUI enabled.",
            "• Verify the URL, including the port (default 8080).",
        ],
        "ServiceTimeoutError": [
            "• The WebUI is reachable but slow to answer.",
            "• Raise the timeouts in the configuration file.",
        ],
        "ParseError": [
            "• The file is not a valid .torrent file.",
            "• Download it again; it may be truncated.",
        ],
        "TorrentFileNotFoundError": [
            "• Check the path and the file permissions.",
        ],
        "PayloadFormatError": [
            "• The WebUI could not read the uploaded torrent.",
            "• Run `qbit-adder info <FILE>` to check it locally.",
        ],
        "ServerRejectionError": [
            "• The torrent may already be in the list under another name.",
            "• Check the WebUI log for the exact reason.",
        ],
        "ConfigurationError": [
            "• Run `qbit-adder validate` to see which setting is wrong.",
            "• Delete the configuration file to start over with defaults.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    content = Table.grid(padding=(1, 0))
    content.add_row(Text(error_msg or error_type, style="bold"))
    content.add_row(Text("What to try", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))
    for key, value in (context or {}).items():
        content.add_row(Text(f"{key}: {value}", style="dim"))

    return Panel(
        content,
        title=f"[bold red]{error_type}[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "password":
            value = "[hidden]" if value else ""
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            escape(content.strip()),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: ConnectionConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    auth = (
        f"[green]{escape(config.username)}[/green]"
        if config.has_credentials
        else "[yellow]None (local bypass)[/yellow]"
    )
    table.add_row("WebUI URL:", config.url)
    table.add_row("Username:", auth)
    table.add_row(
        "Timeouts:",
        f"login {config.login_timeout:g}s, check {config.check_timeout:g}s, "
        f"add {config.add_timeout:g}s",
    )
    table.add_row("JSON Log:", "✓ Enabled" if config.json_log else "✗ Disabled")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_metadata_table(metadata: TorrentMetadata, info_hash: Optional[str]):
    """Displays a torrent's name, identifier and file listing."""
    console = Console()

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="bold cyan")
    summary.add_column()
    summary.add_row("Name:", escape(metadata.name))
    summary.add_row("Info-hash:", info_hash or "[yellow]unavailable[/yellow]")
    summary.add_row("Files:", str(len(metadata.files)))
    summary.add_row("Total Size:", f"[cyan]{format_size(metadata.total_size)}[/cyan]")
    console.print(Panel(summary, title="[bold]Torrent[/bold]", border_style="cyan"))

    files = Table(box=box.ROUNDED)
    files.add_column("#", style="dim", justify="right")
    files.add_column("Path", style="white")
    files.add_column("Size", justify="right", style="green")
    for entry in metadata.files:
        files.add_row(str(entry.index), escape(entry.path), format_size(entry.length))
    console.print(files)


def print_submission_result(result: SubmissionResult, torrent_path: Path):
    """Displays the outcome of an add request."""
    console = Console()
    if result.success:
        body = Table(show_header=False, box=None, padding=(0, 2))
        body.add_column(style="bold cyan")
        body.add_column()
        body.add_row("File:", escape(torrent_path.name))
        body.add_row("Info-hash:", result.info_hash or "[dim]unavailable[/dim]")
        body.add_row("Transport:", result.transport or "")
        console.print(
            Panel(
                body,
                title="[bold green]✓ Torrent Added[/bold green]",
                border_style="green",
                expand=False,
            )
        )
    elif result.error_kind == "DuplicateTorrentError":
        console.print(
            f"[yellow]○ Already in the download list:[/yellow] {escape(torrent_path.name)}"
            f" [dim]({result.info_hash})[/dim]"
        )
    else:
        console.print(format_error_with_suggestions(result.error))


def print_recent_paths(paths: list[str]):
    """Displays the recently used save paths, most recent first."""
    console = Console()
    if not paths:
        console.print("[dim]No save paths used yet.[/dim]")
        return
    table = Table(title="Recent Save Paths")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Path", style="cyan")
    for i, path in enumerate(paths, 1):
        table.add_row(str(i), escape(path))
    console.print(table)


def print_categories(categories: list[str]):
    console = Console()
    if not categories:
        console.print("[dim]No categories defined in the WebUI.[/dim]")
        return
    for name in categories:
        console.print(f"• {escape(name)}")


def print_status(
    config: ConnectionConfig,
    ever_connected: bool,
    user_disconnected: bool,
    cookie_count: int,
):
    """Displays the persistent connection state."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    if user_disconnected:
        state = "[yellow]Disconnected by user[/yellow]"
    elif ever_connected:
        state = "[green]Connected (restored on start)[/green]"
    else:
        state = "[dim]Never connected[/dim]"
    table.add_row("WebUI URL:", config.url)
    table.add_row("State:", state)
    table.add_row("Stored Cookies:", str(cookie_count))

    console.print(Panel(table, title="[bold]Connection[/bold]", border_style="cyan"))
