#!/usr/bin/env python3

"""
nvim-switcher - Manage several local installations of Neovim releases

Usage:
  nvim-switcher [--config FILE] [--no-cache] <command> [args]

Commands:
  download VERSION   Download a version archive without activating it
  switch VERSION     Switch the active version (downloads it if needed)
  current            Show the active version
  purge VERSION      Delete a downloaded archive and its installation
  list               List installed versions and downloaded archives
  clean              Remove old installations, keeping the N most recent
  history            Show the history of operations
  clear-history      Clear the operation history
  cache-info         Show cache information and statistics
  clear-cache        Clear downloaded archives and cached API responses
  init               Initialize a default config file

VERSION is X.Y.Z, vX.Y.Z, stable, nightly or latest.

Configuration file is searched in the following locations:
1. Specified path via --config
2. User config directory (~/.config/nvim-switcher/config.yaml)
3. System-wide location (/etc/nvim-switcher/config.yaml)
"""

from nvimswitch import run_cli

if __name__ == "__main__":
    run_cli()
