#!/usr/bin/env python
"""Command line for shellfolio.

``python -m shellfolio`` (or the installed ``shellfolio`` script) starts the
SSH server; ``shellfolio files list|show`` inspects the files visitors left
behind without starting it. Run with ``--help`` for every option.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, init as colorama_init

from . import __version__
from .config import get_config
from .storage import open_overlay


def setup_logging(level: str, fmt: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """Send records to stdout and, when configured, to a log file."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=numeric_level,
        format=fmt or "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    # Paramiko is chatty at DEBUG; keep it to warnings unless asked
    if numeric_level > logging.DEBUG:
        logging.getLogger("paramiko").setLevel(logging.WARNING)


def print_banner() -> None:
    """Print the shellfolio startup banner."""
    banner = r"""
       _          _ _  __       _ _
   ___| |__   ___| | |/ _| ___ | (_) ___
  / __| '_ \ / _ \ | | |_ / _ \| | |/ _ \
  \__ \ | | |  __/ | |  _| (_) | | | (_) |
  |___/_| |_|\___|_|_|_|  \___/|_|_|\___/
    A portfolio you explore over SSH v{}
    """.format(__version__)
    print(Fore.CYAN + banner + Style.RESET_ALL)


def run_server(host: str, port: int, metrics: bool) -> None:
    """Start the metrics endpoint if asked, then serve SSH until interrupted."""
    # Import here, pulls in paramiko
    from .server import ShellServer
    from .metrics import start_metrics_server

    config = get_config()
    if metrics:
        start_metrics_server(port=config.metrics.port, host=config.metrics.host)
        print(
            Fore.GREEN
            + f"[+] Metrics on http://{config.metrics.host}:{config.metrics.port}/metrics"
            + Style.RESET_ALL
        )

    server = ShellServer(host=host, port=port, config=config)

    print(Fore.GREEN + f"[+] shellfolio listening on {host}:{port}" + Style.RESET_ALL)
    print(f"Connect with: ssh guest@{host if host != '0.0.0.0' else '127.0.0.1'} -p {port}")
    print("Stop with Ctrl+C\n")

    try:
        server.run()
    except KeyboardInterrupt:
        logging.info("Interrupted, closing the listener")
        server.shutdown()


def cmd_files_list(args: argparse.Namespace) -> int:
    """List every file visitors have created."""
    config = get_config()
    overlay = open_overlay(config.storage.files_path)

    if not len(overlay):
        print("No created files.")
        return 0

    print()
    print(f"{'PATH':<50} {'SIZE':>8}")
    print("-" * 59)
    for key, content in overlay.items():
        display = "~" + key if key.startswith("/") else "~/" + key
        print(f"{display:<50} {len(content):>8}")
    print()
    print(f"Total: {len(overlay)} file(s)")
    return 0


def cmd_files_show(args: argparse.Namespace) -> int:
    """Print one created file."""
    config = get_config()
    overlay = open_overlay(config.storage.files_path)

    key = args.path[1:] if args.path.startswith("~") else args.path
    key = key.lstrip("/")
    if "/" not in key:
        key = "/" + key

    content = overlay.get(key)
    if content is None:
        print(f"File not found: {args.path}")
        print("Use 'shellfolio files list' to see created files.")
        return 1
    print(content)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shellfolio",
        description="shellfolio - a portfolio presented as an interactive shell over SSH",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    shellfolio                         Start on default port 2222
    shellfolio --port 22               Start on the standard SSH port (requires root)
    shellfolio --metrics               Also expose Prometheus metrics
    shellfolio files list              List created files
    shellfolio files show notes.txt    Print a created file

Environment variables:
    SHELLFOLIO_SSH_HOST       SSH bind address
    SHELLFOLIO_SSH_PORT       SSH port
    SHELLFOLIO_CONTENT_PATH   Content document (default: data/prompts.json)
    SHELLFOLIO_LOG_LEVEL      Logging level
        """,
    )

    parser.add_argument(
        "--host",
        default=None,
        help="SSH bind address (default: 0.0.0.0, or SHELLFOLIO_SSH_HOST)",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=None,
        help="SSH port (default: 2222, or SHELLFOLIO_SSH_PORT)",
    )
    parser.add_argument(
        "--metrics",
        "-m",
        action="store_true",
        help="Serve Prometheus metrics (or SHELLFOLIO_METRICS_ENABLED)",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, or SHELLFOLIO_LOG_LEVEL)",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"shellfolio {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Inspection commands")

    files_parser = subparsers.add_parser("files", help="Inspect files visitors created")
    files_subparsers = files_parser.add_subparsers(
        dest="files_command", help="File commands"
    )

    list_parser = files_subparsers.add_parser("list", help="List created files")
    list_parser.set_defaults(func=cmd_files_list)

    show_parser = files_subparsers.add_parser("show", help="Print a created file")
    show_parser.add_argument("path", help="File path, e.g. notes.txt or projects/todo")
    show_parser.set_defaults(func=cmd_files_show)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    colorama_init()
    args = build_parser().parse_args(argv)

    if args.command == "files":
        if args.files_command is None:
            print("usage: shellfolio files {list,show}")
            return 2
        return args.func(args)

    config = get_config()

    host = args.host or config.ssh.host
    port = args.port or config.ssh.port
    log_level = args.log_level or config.logging.level

    setup_logging(log_level, config.logging.format, config.logging.file)
    print_banner()
    run_server(host, port, args.metrics or config.metrics.enabled)
    return 0


if __name__ == "__main__":
    sys.exit(main())
