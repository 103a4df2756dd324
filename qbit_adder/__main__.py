"""
Entry point for ``qbit-adder`` and ``python -m qbit_adder``.

Anything that escapes a command is rendered as a Rich error panel here, so the
commands themselves only deal with the errors they can act on.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from qbit_adder.cli.app import app
from qbit_adder.cli.formatters import format_error_with_suggestions
from qbit_adder.exceptions import QbitAdderError

log = logging.getLogger("qbit_adder")


def _force_utf8_streams() -> None:
    # Torrent names routinely contain characters the Windows console codepage lacks.
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(encoding="utf-8")


def main() -> None:
    if os.name == "nt":
        _force_utf8_streams()

    console = Console(stderr=True)
    exit_code = 0
    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Interrupted, nothing more was submitted.[/yellow]")
        exit_code = 130
    except QbitAdderError as e:
        console.print(format_error_with_suggestions(e))
        exit_code = 1
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Unhandled exception", exc_info=True)
        exit_code = 1
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
