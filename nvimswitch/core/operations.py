#!/usr/bin/env python3

from typing import Optional
from colorama import Fore, Style

from ..utils.history import (
    add_history_entry,
    clear_history as clear_history_util,
    get_history,
    format_history_entry,
    OP_DOWNLOAD,
    OP_SWITCH,
    OP_PURGE,
    OP_CLEAN,
)
from .exceptions import SwitcherError
from .manager import VersionManager


def _fail(operation: str, versions, error: Exception, **details) -> bool:
    print(f"{Fore.RED}❌ {error}{Style.RESET_ALL}")
    details["error"] = str(error)
    add_history_entry(operation, versions, details=details, success=False)
    return False


def show_current(manager: VersionManager) -> bool:
    """Print the active version"""
    version = manager.current_version()
    if version:
        print(f"Current version: {Fore.CYAN}{version}{Style.RESET_ALL}")
    else:
        print("Current version: None")
    return True


def _fetch(manager: VersionManager, tag: str) -> bool:
    """Download the archive for a resolved tag and log the outcome"""
    try:
        url = manager.resolve_url(tag)
        print(f"⬇️  Pulling version {tag} of nvim from {url}")
        archive = manager.fetch_archive(tag)
    except SwitcherError as e:
        return _fail(OP_DOWNLOAD, tag, e)

    print(f"{Fore.GREEN}✅ Downloaded version {tag} of nvim{Style.RESET_ALL}")
    add_history_entry(OP_DOWNLOAD, tag, details={"url": url, "path": archive})
    return True


def download_version(manager: VersionManager, version: str, force: bool = False) -> bool:
    """Download a version into the cache without activating it"""
    try:
        tag = manager.resolve_version(version)
    except SwitcherError as e:
        return _fail(OP_DOWNLOAD, version, e)

    if manager.is_downloaded(tag) and not force:
        print(f"{Fore.YELLOW}Version {tag} already downloaded{Style.RESET_ALL}")
        return True

    return _fetch(manager, tag)


def switch_version(manager: VersionManager, version: str, force: bool = False) -> bool:
    """Make a version the active one, downloading and extracting it if needed"""
    try:
        tag = manager.resolve_version(version)
    except SwitcherError as e:
        return _fail(OP_SWITCH, version, e)

    previous = manager.current_version()
    if tag == previous and not force:
        print(f"{Fore.GREEN}✔ Already using version {tag}{Style.RESET_ALL}")
        return True

    print(f"🔀 Switching to version {tag}")

    installed = manager.is_installed(tag)
    needs_download = force or (not installed and not manager.is_downloaded(tag))
    if needs_download and not _fetch(manager, tag):
        return _fail(
            OP_SWITCH,
            tag,
            SwitcherError(f"Failed to download version {tag}"),
            from_version=previous,
            to_version=tag,
        )

    version_dir = manager.version_dir(tag)
    try:
        if force or not installed:
            print(f"📂 Extracting to {version_dir}...")
        manager.install(tag, force=force)
        manager.activate(tag)
        links = manager.link_files()
    except SwitcherError as e:
        return _fail(OP_SWITCH, tag, e, from_version=previous, to_version=tag)

    print(f"{Fore.GREEN}✅ Switched to version {tag}{Style.RESET_ALL}")
    print(f"   Linked {len(links)} entries into {manager.link_dir}")

    add_history_entry(
        OP_SWITCH,
        tag,
        details={
            "from_version": previous,
            "to_version": tag,
            "install_path": version_dir,
        },
        success=True,
    )

    if manager.auto_cleanup:
        clean_old_versions(manager)

    return True


def purge_version(manager: VersionManager, version: str) -> bool:
    """Delete the cached archive and the installation of a version"""
    try:
        tag = manager.resolve_version(version)
        removed = manager.remove_version(tag)
    except SwitcherError as e:
        return _fail(OP_PURGE, version, e)

    for path in removed:
        print(f"{Fore.YELLOW}🗑️  Removed {path}{Style.RESET_ALL}")
    print(f"{Fore.GREEN}✅ Purged version {tag}{Style.RESET_ALL}")

    add_history_entry(OP_PURGE, tag, details={"removed": removed}, success=True)
    return True


def list_versions(manager: VersionManager) -> bool:
    """List installed versions and downloaded archives"""
    current = manager.current_version()
    installed = manager.installed_versions()
    cached = manager.cached_versions()

    print(
        f"\n{Fore.CYAN}{Style.BRIGHT}Installed versions in {manager.install_dir}:{Style.RESET_ALL}"
    )
    if not installed:
        print(f"{Fore.YELLOW}  No versions installed.{Style.RESET_ALL}")
    for version in installed:
        if version == current:
            print(f"{Fore.GREEN}  * {version} (active){Style.RESET_ALL}")
        else:
            print(f"    {version}")

    print(
        f"\n{Fore.CYAN}{Style.BRIGHT}Downloaded archives in {manager.cache_dir}:{Style.RESET_ALL}"
    )
    if not cached:
        print(f"{Fore.YELLOW}  No archives downloaded.{Style.RESET_ALL}")
    for version in cached:
        print(f"    {version}")

    print()
    return True


def clean_old_versions(manager: VersionManager, keep_versions: Optional[int] = None) -> bool:
    """Remove old installations, keeping the N most recent"""
    if keep_versions is None:
        keep_versions = manager.keep_versions

    print(
        f"{Fore.BLUE}🧹 Cleaning old versions in {manager.install_dir} (keeping {keep_versions} most recent){Style.RESET_ALL}"
    )

    try:
        kept, removed = manager.clean_old_versions(keep_versions)
    except SwitcherError as e:
        return _fail(OP_CLEAN, [], e)

    for version in kept:
        print(f"{Fore.GREEN}✓ Keeping version: {version}{Style.RESET_ALL}")
    for version in removed:
        print(f"{Fore.YELLOW}🗑️  Removed old version: {version}{Style.RESET_ALL}")

    add_history_entry(
        OP_CLEAN,
        removed,
        details={"kept_versions": kept, "removed_versions": removed},
        success=True,
    )
    return True


def show_history(limit: Optional[int] = None) -> bool:
    """Show the operation history"""
    history = get_history(limit)

    if not history:
        print(f"{Fore.YELLOW}No history entries found.{Style.RESET_ALL}")
        return True

    print(f"\n{Fore.CYAN}{Style.BRIGHT}Operation History:{Style.RESET_ALL}\n")

    for entry in history:
        formatted = format_history_entry(entry)

        if entry.get("success"):
            print(f"{Fore.GREEN}{formatted}{Style.RESET_ALL}")
        else:
            print(f"{Fore.RED}{formatted}{Style.RESET_ALL}")

    print(f"\nTotal entries: {len(history)}")
    return True


def clear_history(assume_yes: bool = False) -> bool:
    """Clear the operation history"""
    if not assume_yes:
        print(f"{Fore.YELLOW}About to clear all history entries.{Style.RESET_ALL}")
        response = input("Are you sure you want to continue? (y/N) ")

        if response.lower() != "y":
            print(f"{Fore.YELLOW}Operation cancelled.{Style.RESET_ALL}")
            return True

    if clear_history_util():
        print(f"{Fore.GREEN}✅ History cleared successfully.{Style.RESET_ALL}")
        return True

    print(f"{Fore.RED}❌ Failed to clear history.{Style.RESET_ALL}")
    return False
