#!/usr/bin/env python3

import os
import json
import time
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Any, Union

from colorama import Fore, Style

from .system import get_config_home

# Define operation types
OP_DOWNLOAD = "download"
OP_SWITCH = "switch"
OP_PURGE = "purge"
OP_CLEAN = "clean"


def get_history_dir() -> str:
    return os.path.join(get_config_home(), "history")


def get_history_file() -> str:
    return os.path.join(get_history_dir(), "history.json")


def ensure_history_dir() -> None:
    """Ensure the history directory exists"""
    os.makedirs(get_history_dir(), exist_ok=True)


def _warn(message: str) -> None:
    print(f"{Fore.YELLOW}⚠️ Warning: {message}{Style.RESET_ALL}")


def load_history() -> List[Dict[str, Any]]:
    """Load history from the history file"""
    history_file = get_history_file()
    if not os.path.exists(history_file):
        return []

    try:
        with open(history_file, "r") as f:
            history = json.load(f)
    except (OSError, ValueError) as e:
        # ValueError covers both JSONDecodeError and UnicodeDecodeError
        _warn(f"Failed to load history: {e}")
        return []

    if not isinstance(history, list):
        _warn("History file is malformed, ignoring it")
        return []

    entries = [entry for entry in history if isinstance(entry, dict)]
    if len(entries) != len(history):
        _warn(f"Ignoring {len(history) - len(entries)} malformed history entries")
    return entries


def save_history(history: List[Dict[str, Any]]) -> None:
    """Save history to the history file"""
    try:
        ensure_history_dir()
        with open(get_history_file(), "w") as f:
            json.dump(history, f, indent=2)
    except OSError as e:
        _warn(f"Failed to save history: {e}")


def add_history_entry(
    operation: str,
    versions: Union[str, List[str]],
    details: Optional[Dict[str, Any]] = None,
    success: bool = True,
) -> Dict[str, Any]:
    """
    Add a new entry to the history log

    Args:
        operation: The type of operation (download, switch, purge, clean)
        versions: The version tag or list of tags affected
        details: Additional details about the operation
        success: Whether the operation was successful

    Returns:
        The created history entry
    """
    history = load_history()

    if isinstance(versions, str):
        versions = [versions]

    entry = {
        "id": str(uuid.uuid4()),
        "timestamp": int(time.time()),
        "date": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "operation": operation,
        "versions": versions,
        "success": success,
        "details": details or {},
    }

    history.append(entry)
    save_history(history)

    return entry


def get_history(limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Get history entries, sorted by most recent first

    Args:
        limit: Maximum number of entries to return (None for all)
    """
    history = load_history()

    # Entries logged within the same second keep newest-first order
    sorted_history = sorted(
        reversed(history), key=lambda x: x.get("timestamp", 0), reverse=True
    )

    if limit is not None:
        return sorted_history[:limit]
    return sorted_history


def clear_history() -> bool:
    """Clear all history entries"""
    history_file = get_history_file()
    try:
        if os.path.exists(history_file):
            os.remove(history_file)
        return True
    except OSError as e:
        _warn(f"Failed to clear history: {e}")
        return False


def format_history_entry(entry: Dict[str, Any]) -> str:
    """Format a history entry for display"""
    date_str = entry.get("date", "")
    operation = entry.get("operation", "")
    versions = ", ".join(entry.get("versions", [])) or "-"
    details = entry.get("details", {})

    if operation == OP_DOWNLOAD:
        action = "Downloaded archive"
        if "url" in details:
            action = f"Downloaded archive from {details['url']}"
    elif operation == OP_SWITCH:
        action = "Switched version"
        if "to_version" in details:
            from_ver = details.get("from_version") or "none"
            action = f"Switched from {from_ver} to {details['to_version']}"
    elif operation == OP_PURGE:
        action = "Purged version"
        if details.get("removed"):
            action = f"Purged {', '.join(details['removed'])}"
    elif operation == OP_CLEAN:
        removed = details.get("removed_versions", [])
        removed_str = ", ".join(removed) if removed else "none"
        action = f"Cleaned old versions: removed {removed_str}"
    else:
        action = operation

    if not entry.get("success", False) and "error" in details:
        action = f"{action} ({details['error']})"

    status = "SUCCESS" if entry.get("success", False) else "FAILED"

    return f"{date_str} | {status} | {operation.upper()} | {versions} | {action}"
