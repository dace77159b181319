#!/usr/bin/env python3

import os
import yaml
from typing import Any, Dict, Optional

from ..utils.system import get_config_home

# Type definitions
ConfigDict = Dict[str, Dict[str, Any]]

# Default paths
DEFAULT_CONFIG_NAME = "config.yaml"
SYSTEM_CONFIG_PATH = "/etc/nvim-switcher/config.yaml"

DEFAULT_BASE_URL = "https://github.com/neovim/neovim/releases/download"
DEFAULT_API_URL = "https://api.github.com/repos/neovim/neovim/releases"
DEFAULT_KEEP_VERSIONS = 2
DEFAULT_AUTO_CLEANUP = False
DEFAULT_CACHE_ENABLED = True
DEFAULT_CACHE_EXPIRY = 3600  # Cache expiry in seconds (1 hour)
DEFAULT_TIMEOUT = 30

DEFAULT_OPTIONS = {
    "base_url": DEFAULT_BASE_URL,
    "api_url": DEFAULT_API_URL,
    # Empty values are resolved at runtime (asset name per version, XDG dirs)
    "asset_name": "",
    "install_dir": "",
    "cache_dir": "",
    "link_dir": "",
    "keep_versions": DEFAULT_KEEP_VERSIONS,
    "auto_cleanup": DEFAULT_AUTO_CLEANUP,
    "cache_enabled": DEFAULT_CACHE_ENABLED,
    "cache_expiry": DEFAULT_CACHE_EXPIRY,
    "timeout": DEFAULT_TIMEOUT,
}


def ensure_user_config_dir() -> str:
    """Ensure the user's config directory exists"""
    user_config_dir = get_config_home()
    os.makedirs(user_config_dir, exist_ok=True)
    return user_config_dir


def find_config_file(config_path: Optional[str] = None) -> Optional[str]:
    """
    Find the configuration file by checking multiple locations:
    1. Specified path from command line
    2. User config directory ($XDG_CONFIG_HOME/nvim-switcher/)
    3. System-wide location (/etc/nvim-switcher)

    An explicit path is returned even if it does not exist so that loading
    it reports the error. Returns None when no config file is present.
    """
    if config_path:
        return config_path

    user_config = os.path.join(get_config_home(), DEFAULT_CONFIG_NAME)
    if os.path.isfile(user_config):
        return user_config

    if os.path.isfile(SYSTEM_CONFIG_PATH):
        return SYSTEM_CONFIG_PATH

    return None


def default_config() -> ConfigDict:
    return {"options": dict(DEFAULT_OPTIONS)}


def create_default_config(config_path: str) -> ConfigDict:
    """Create a default configuration file"""
    config = default_config()

    # Ensure the directory exists
    os.makedirs(os.path.dirname(os.path.abspath(config_path)), exist_ok=True)

    try:
        with open(config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False)
        return config
    except OSError as e:
        raise IOError(f"Failed to create config file: {e}")


def load_config(config_path: Optional[str]) -> ConfigDict:
    """Load the configuration from the specified path, filling in defaults"""
    if config_path is None:
        return default_config()

    try:
        with open(config_path, "r") as file:
            config = yaml.safe_load(file) or {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Config file not found at: {config_path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}")

    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    options = config.get("options") or {}
    if not isinstance(options, dict):
        raise ValueError("The 'options' section must be a mapping")

    # Set default options if they don't exist
    for key, value in DEFAULT_OPTIONS.items():
        options.setdefault(key, value)

    config["options"] = options
    return config

