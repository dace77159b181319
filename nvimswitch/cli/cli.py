#!/usr/bin/env python3

import argparse
import os
import sys
from typing import List, Optional
from colorama import Fore, Style

from ..utils.cache import clear_cache, get_cache_info
from ..utils.config import (
    DEFAULT_CONFIG_NAME,
    ensure_user_config_dir,
    create_default_config,
)
from ..core.manager import VersionManager
from ..core.operations import (
    show_current,
    download_version,
    switch_version,
    purge_version,
    list_versions,
    clean_old_versions,
    show_history,
    clear_history,
)
from ..version import __version__

VERSION_HELP = "Version to use: X.Y.Z, vX.Y.Z, stable, nightly or latest"


def positive_int(value: str) -> int:
    """argparse type accepting integers of at least 1"""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nvim-switcher",
        description=f"nvim-switcher v{__version__} - Manage several local installations of Neovim releases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Configuration file (default: ~/.config/nvim-switcher/{DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not use cached release information for this run",
    )
    parser.add_argument(
        "--version",
        dest="show_version",
        action="store_true",
        help="Show the version and exit",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    download = subparsers.add_parser(
        "download", help="Download a version archive without activating it"
    )
    download.add_argument("version", help=VERSION_HELP)
    download.add_argument(
        "--force",
        action="store_true",
        help="Download again even if the archive is already cached",
    )

    switch = subparsers.add_parser(
        "switch", help="Switch the active version, downloading it if needed"
    )
    switch.add_argument("version", help=VERSION_HELP)
    switch.add_argument(
        "--force",
        action="store_true",
        help="Download and extract again even if the version is present",
    )

    subparsers.add_parser("current", help="Show the active version")

    purge = subparsers.add_parser(
        "purge", help="Delete a downloaded archive and its installation"
    )
    purge.add_argument("version", help=VERSION_HELP)

    subparsers.add_parser(
        "list", help="List installed versions and downloaded archives"
    )

    clean = subparsers.add_parser(
        "clean", help="Remove old installations, keeping the N most recent"
    )
    clean.add_argument(
        "--keep",
        type=positive_int,
        metavar="N",
        help="Number of versions to keep (default: keep_versions option)",
    )

    history = subparsers.add_parser("history", help="Show the history of operations")
    history.add_argument(
        "--limit", type=positive_int, metavar="N", help="Limit history to N entries"
    )

    clear_hist = subparsers.add_parser(
        "clear-history", help="Clear the operation history logs"
    )
    clear_hist.add_argument(
        "-y", "--yes", action="store_true", help="Do not ask for confirmation"
    )

    subparsers.add_parser("cache-info", help="Show cache information and statistics")
    subparsers.add_parser(
        "clear-cache", help="Clear downloaded archives and cached API responses"
    )
    subparsers.add_parser(
        "init", help="Initialize a default config file in the user's config directory"
    )

    return parser


def handle_init_command() -> bool:
    """Handle the init command to create a default config file"""
    user_config_dir = ensure_user_config_dir()
    user_config_path = os.path.join(user_config_dir, DEFAULT_CONFIG_NAME)

    if os.path.isfile(user_config_path):
        print(
            f"{Fore.YELLOW}Config file already exists at {user_config_path}{Style.RESET_ALL}"
        )
        return True

    try:
        create_default_config(user_config_path)
    except IOError as e:
        print(f"{Fore.RED}❌ Failed to create config file: {e}{Style.RESET_ALL}")
        return False

    print(
        f"{Fore.GREEN}✅ Created default config file at {user_config_path}{Style.RESET_ALL}"
    )
    return True


def handle_cache_info(manager: VersionManager) -> bool:
    """Handle the cache-info command"""
    cache_info = get_cache_info(manager.cache_dir)
    print(f"Cache directory: {cache_info['path']}")

    if cache_info["exists"]:
        print(f"Cache size: {cache_info['size_bytes'] / (1024*1024):.2f} MB")
        print(f"API cache entries: {cache_info['api_entries']}")
        print(f"Download cache entries: {cache_info['download_entries']}")
    else:
        print("Cache directory does not exist yet")
    return True


def handle_clear_cache(manager: VersionManager) -> bool:
    """Handle the clear-cache command"""
    if clear_cache(manager.cache_dir):
        print(f"{Fore.GREEN}✅ Cache successfully cleared{Style.RESET_ALL}")
    else:
        print(f"{Fore.YELLOW}ℹ️ No cache directory found{Style.RESET_ALL}")
    return True


def dispatch(args: argparse.Namespace) -> bool:
    """Run the selected command and report whether it succeeded"""
    # Commands that need no configuration
    if args.command == "init":
        return handle_init_command()
    if args.command == "history":
        return show_history(args.limit)
    if args.command == "clear-history":
        return clear_history(assume_yes=args.yes)

    manager = VersionManager(args.config)
    if manager.config_path:
        print(f"Using configuration file: {manager.config_path}")

    if args.no_cache:
        manager.cache_enabled = False
        print(f"{Fore.YELLOW}ℹ️ Caching disabled for this run{Style.RESET_ALL}")

    if args.command == "current":
        return show_current(manager)
    if args.command == "download":
        return download_version(manager, args.version, force=args.force)
    if args.command == "switch":
        return switch_version(manager, args.version, force=args.force)
    if args.command == "purge":
        return purge_version(manager, args.version)
    if args.command == "list":
        return list_versions(manager)
    if args.command == "clean":
        return clean_old_versions(manager, args.keep)
    if args.command == "cache-info":
        return handle_cache_info(manager)
    if args.command == "clear-cache":
        return handle_clear_cache(manager)

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command-line interface and return the exit status"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.show_version:
        print(f"nvim-switcher v{__version__}")
        return 0

    if not args.command:
        parser.print_help()
        return 1

    try:
        return 0 if dispatch(args) else 1
    except FileNotFoundError as e:
        print(f"{Fore.RED}❌ {e}{Style.RESET_ALL}")
        print(
            f"{Fore.YELLOW}Use init to create a default configuration file{Style.RESET_ALL}"
        )
        return 1
    except Exception as e:
        print(f"{Fore.RED}❌ Error: {e}{Style.RESET_ALL}")
        return 1


def run_cli() -> None:
    """Entry point for the nvim-switcher console script"""
    sys.exit(main())


if __name__ == "__main__":
    run_cli()
