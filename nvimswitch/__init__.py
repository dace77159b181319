#!/usr/bin/env python3

"""
nvim-switcher - Manage several local installations of Neovim releases
Features:
- Download release archives without activating them
- Versioned installations behind a single "current" symbolic link
- Optional YAML configuration
- Clean old versions while keeping N most recent
"""

from .version import __version__
from .core.manager import VersionManager
from .core.operations import (
    show_current,
    download_version,
    switch_version,
    purge_version,
    list_versions,
    clean_old_versions,
)
from .cli.cli import run_cli
