#!/usr/bin/env python
"""
sdkvm - SDK version manager with Lua plugins

Usage:
    sdkvm add ./nodejs.lua
    sdkvm install nodejs@20.11.0
    eval "$(sdkvm use -g nodejs@20.11.0)"
"""

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from rich.markup import escape

# Load environment variables FIRST (before importing project modules)
load_dotenv('.env')

from sdkvm import __version__
from sdkvm import dependencies
from sdkvm.cli.commands import COMMANDS, UsageError, err_console
from sdkvm.constants import LOG_DIRNAME
from sdkvm.errors import SdkvmError
from sdkvm.models.sdk import UseScope
from sdkvm.utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sdkvm",
        description="SDK version manager with Lua plugins",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logs on the console")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # plugin management
    add_parser = subparsers.add_parser("add", help="Add a plugin from a local .lua file")
    add_parser.add_argument("path", help="Path to the plugin file")

    remove_parser = subparsers.add_parser("remove", help="Remove an added plugin")
    remove_parser.add_argument("name", help="SDK name")

    subparsers.add_parser("plugins", help="List all plugins")

    info_parser = subparsers.add_parser("info", help="Show plugin details")
    info_parser.add_argument("name", help="SDK name")

    # SDK versions
    search_parser = subparsers.add_parser("search", help="List installable versions")
    search_parser.add_argument("sdk", help="SDK name")

    install_parser = subparsers.add_parser("install", help="Install an SDK version")
    install_parser.add_argument("sdk", help="name[@version], version defaults to latest")

    uninstall_parser = subparsers.add_parser("uninstall", help="Uninstall an SDK version")
    uninstall_parser.add_argument("sdk", help="name@version")

    use_parser = subparsers.add_parser("use", help="Activate an SDK version")
    use_parser.add_argument("sdk", help="name@version")
    scope = use_parser.add_mutually_exclusive_group()
    scope.add_argument("-g", "--global", dest="scope", action="store_const", const=UseScope.GLOBAL,
                       help="Record in the global .tool-versions")
    scope.add_argument("-p", "--project", dest="scope", action="store_const", const=UseScope.PROJECT,
                       help="Record in ./.tool-versions")
    scope.add_argument("-s", "--session", dest="scope", action="store_const", const=UseScope.SESSION,
                       help="Only print exports (default)")
    use_parser.set_defaults(scope=UseScope.SESSION)

    list_parser = subparsers.add_parser("list", help="List installed versions")
    list_parser.add_argument("name", nargs="?", help="SDK name")

    current_parser = subparsers.add_parser("current", help="Show active versions")
    current_parser.add_argument("name", nargs="?", help="SDK name")

    subparsers.add_parser("env", help="Print exports for all active SDKs")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    setup_logging(dependencies.get_home() / LOG_DIRNAME, verbose=args.verbose)

    try:
        COMMANDS[args.command](args, dependencies.get_manager())
    except UsageError as e:
        parser.print_usage(sys.stderr)
        err_console.print(f"[red]error:[/red] {escape(str(e))}")
        return 2
    except SdkvmError as e:
        logger.debug(f"Command {args.command} failed", exc_info=True)
        err_console.print(f"[red]error:[/red] {escape(str(e))}")
        return 1
    except KeyboardInterrupt:
        err_console.print("\n[yellow]interrupted[/yellow]")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
