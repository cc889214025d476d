"""Command line entry point for the FSO Tables client.

Usage:
    fso-tables-client tui
    fso-tables-client --server ./fso-lsp check data/tables/ships.tbl
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console

from fso_tables import config
from fso_tables.extension import activate, deactivate
from fso_tables.host import ConsoleHost, ExtensionContext
from fso_tables.lsp.diagnostics import format_diagnostics, has_errors, normalize_diagnostics
from fso_tables.session import ManagerState
from fso_tables.settings import SettingsSource, default_settings

logger = logging.getLogger("fso_tables.cli")

EXIT_OK = 0
EXIT_PROBLEMS = 1
EXIT_NO_SERVER = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fso-tables-client",
        description="Launch and supervise the FSO Tables language server.",
    )
    parser.add_argument(
        "--server",
        metavar="PATH",
        help=f"Server executable (overrides {config.SERVER_PATH_SETTING})",
    )
    parser.add_argument(
        "--settings",
        metavar="FILE",
        help=f"YAML settings file (default: {config.SETTINGS_FILE})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging and server output"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {config.VERSION}")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("tui", help="Run the terminal host")

    check = subparsers.add_parser("check", help="Print diagnostics for table files")
    check.add_argument("files", nargs="+", metavar="FILE", help="Table files (.tbl, .tbm)")
    check.add_argument(
        "--timeout",
        type=float,
        default=config.DIAGNOSTICS_TIMEOUT,
        help="Seconds to wait for diagnostics per file",
    )
    return parser


async def run_check(
    files: list[str],
    settings: SettingsSource,
    *,
    timeout: float = config.DIAGNOSTICS_TIMEOUT,
    console: Console | None = None,
    verbose: bool = False,
) -> int:
    """Start a session, collect diagnostics for ``files`` and shut down.

    Returns:
        ``EXIT_OK``, ``EXIT_PROBLEMS`` when any file has errors, or
        ``EXIT_NO_SERVER`` when no session could be started.
    """
    console = console or Console()
    host = ConsoleHost(settings, echo_output=verbose)
    context = ExtensionContext(host)
    manager = await activate(context, restart_delay=0)

    try:
        session = manager.session
        if session is None:
            if manager.state is ManagerState.UNCONFIGURED:
                host.show_error(
                    f"{config.SERVER_PATH_SETTING} is not set. "
                    f"Pass --server or set {config.SERVER_PATH_ENV}."
                )
            return EXIT_NO_SERVER
        if not await session.ready():
            host.show_error("The language server did not complete the handshake")
            return EXIT_NO_SERVER

        client = session.client
        exit_code = EXIT_OK
        for file_name in files:
            path = Path(file_name)
            try:
                text = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                host.show_error(f"Cannot read {file_name}: {exc}")
                exit_code = EXIT_PROBLEMS
                continue

            uri = await client.open_document(str(path), text)
            if uri is None:
                console.print(f"{file_name}: skipped, not an FSO table", markup=False, highlight=False)
                continue

            raw = await client.get_diagnostics(uri, timeout=timeout)
            diagnostics = normalize_diagnostics(raw)
            console.print(format_diagnostics(file_name, diagnostics), markup=False, highlight=False)
            if has_errors(diagnostics):
                exit_code = EXIT_PROBLEMS
        return exit_code
    finally:
        pending = deactivate(context)
        if pending is not None:
            await pending
        context.dispose()


def main(argv: list[str] | None = None) -> int:
    """Run the FSO Tables client CLI."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = default_settings(args.server, args.settings)

    if args.command == "tui":
        from fso_tables.tui import run_tui

        logging.getLogger("fso_tables").setLevel(
            logging.DEBUG if args.verbose else config.LOG_LEVEL
        )
        run_tui(settings)
        return EXIT_OK

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return asyncio.run(
        run_check(args.files, settings, timeout=args.timeout, verbose=args.verbose)
    )


if __name__ == "__main__":
    sys.exit(main())
