"""Command-line interface for plughost."""

import argparse
import asyncio
import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape

from plughost import __version__
from plughost.cli import plugin_commands
from plughost.config import ConfigError, load_config, namespace_names, plugin_identifiers
from plughost.logger import setup_logging
from plughost.plugins import PluginError

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="plughost",
        description="Order plugins, apply their extensions, and run lifecycle hooks.",
    )
    parser.add_argument("--version", action="version", version=f"plughost {__version__}")
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        help="Configuration file (default: ~/.config/plughost/plughost.toml).",
    )
    parser.add_argument("--log-level", metavar="LEVEL", help="Override the configured log level.")
    parser.add_argument("--log-file", metavar="PATH", help="Write logs to PATH.")
    parser.add_argument(
        "--project-root",
        metavar="DIR",
        help="Directory relative plugin paths resolve against.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    order_parser = subparsers.add_parser("order", help="Print the resolved plugin order.")
    order_parser.add_argument("plugins", nargs="*", help="Plugin files or module names.")

    apply_parser = subparsers.add_parser(
        "apply", help="Apply plugin extensions and print the composed namespaces."
    )
    apply_parser.add_argument("plugins", nargs="*", help="Plugin files or module names.")

    run_parser = subparsers.add_parser(
        "run", help="Apply extensions and dispatch before/after run hooks."
    )
    run_parser.add_argument("plugins", nargs="*", help="Plugin files or module names.")
    run_parser.add_argument("--script", default="script", help="Script name passed to hooks.")

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        console.print(f"[bold red]Error:[/] {escape(str(exc))}", highlight=False)
        return 1

    general = config.get("general", {})
    setup_logging(
        args.log_level or general.get("log_level", "INFO"),
        args.log_file or general.get("log_file") or None,
    )

    identifiers = list(args.plugins) or plugin_identifiers(config)
    project_root = args.project_root or config.get("plugins", {}).get("project_root", ".")
    namespaces = namespace_names(config)

    try:
        if args.command == "order":
            asyncio.run(plugin_commands.handle_order(identifiers, project_root))
        elif args.command == "apply":
            asyncio.run(plugin_commands.handle_apply(identifiers, project_root, namespaces))
        elif args.command == "run":
            asyncio.run(
                plugin_commands.handle_run(identifiers, project_root, namespaces, args.script)
            )
    except PluginError as exc:
        logger.error("plughost %s failed: %s", args.command, exc)
        console.print(f"[bold red]Error:[/] {escape(str(exc))}", highlight=False)
        return 1
    return 0
