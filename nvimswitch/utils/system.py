#!/usr/bin/env python3

import os
import platform

APP_NAME = "nvim-switcher"

# Architecture names as used in the release asset file names
ARCH_ALIASES = {
    "x86_64": ["x86_64", "amd64", "x64"],
    "arm64": ["aarch64", "arm64"],
}


def get_real_home() -> str:
    """Get the real user's home directory even when running with sudo"""
    if "SUDO_USER" in os.environ and os.environ.get("HOME") == "/root":
        real_user = os.environ["SUDO_USER"]
        return os.path.expanduser(f"~{real_user}")
    return os.path.expanduser("~")


def _xdg_dir(env_var: str, fallback: str) -> str:
    value = os.environ.get(env_var, "")
    # Relative XDG paths are invalid and must be ignored
    if value and os.path.isabs(value):
        return value
    return os.path.join(get_real_home(), fallback)


def get_config_home() -> str:
    """Directory holding the config file and history"""
    return os.path.join(_xdg_dir("XDG_CONFIG_HOME", ".config"), APP_NAME)


def get_cache_home() -> str:
    """Directory holding downloaded archives and API responses"""
    return os.path.join(_xdg_dir("XDG_CACHE_HOME", ".cache"), APP_NAME)


def get_data_home() -> str:
    """Directory holding the extracted versions and the current pointer"""
    return os.path.join(_xdg_dir("XDG_DATA_HOME", ".local/share"), APP_NAME)


def get_default_link_dir() -> str:
    return os.path.join(get_real_home(), ".local")


def detect_arch() -> str:
    """Map the machine architecture to the release asset naming"""
    machine = platform.machine().lower()
    for arch, variants in ARCH_ALIASES.items():
        if machine in variants:
            return arch
    raise ValueError(f"Unsupported architecture: {machine or 'unknown'}")
