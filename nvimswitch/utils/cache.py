#!/usr/bin/env python3

import os
import re
import json
import time
from typing import Dict, List, Optional

API_SUBDIR = "api"
DOWNLOADS_SUBDIR = "downloads"

ARCHIVE_RE = re.compile(r"^nvim-(?P<tag>.+)\.tar\.gz$")


def ensure_cache_dir(cache_dir: str) -> None:
    """Ensure the cache directory exists"""
    os.makedirs(cache_dir, exist_ok=True)
    # Create subdirectories
    os.makedirs(os.path.join(cache_dir, API_SUBDIR), exist_ok=True)
    os.makedirs(os.path.join(cache_dir, DOWNLOADS_SUBDIR), exist_ok=True)


def get_archive_path(cache_dir: str, tag: str) -> str:
    """Location of the release archive for a tag"""
    return os.path.join(cache_dir, DOWNLOADS_SUBDIR, f"nvim-{tag}.tar.gz")


def list_cached_archives(cache_dir: str) -> List[str]:
    """Return the tags that have a downloaded archive"""
    downloads = os.path.join(cache_dir, DOWNLOADS_SUBDIR)
    if not os.path.isdir(downloads):
        return []

    tags = []
    for name in os.listdir(downloads):
        match = ARCHIVE_RE.match(name)
        if match and os.path.isfile(os.path.join(downloads, name)):
            tags.append(match.group("tag"))
    return tags


def _api_cache_file(cache_dir: str, key: str) -> str:
    return os.path.join(cache_dir, API_SUBDIR, f"{key.replace('/', '_')}.json")


def cache_api_response(
    cache_dir: str, key: str, response_data: Dict, cache_expiry: int = 3600
) -> None:
    """Cache an API response under the given key"""
    ensure_cache_dir(cache_dir)
    data = {"timestamp": time.time(), "expiry": cache_expiry, "data": response_data}
    with open(_api_cache_file(cache_dir, key), "w") as f:
        json.dump(data, f)


def get_cached_api_response(
    cache_dir: str, key: str, cache_expiry: int = 3600
) -> Optional[Dict]:
    """Get a cached API response if it exists and is not expired"""
    cache_file = _api_cache_file(cache_dir, key)
    if not os.path.exists(cache_file):
        return None

    try:
        with open(cache_file, "r") as f:
            cache_data = json.load(f)
        # Check if cache is expired
        if time.time() - cache_data["timestamp"] < cache_data.get(
            "expiry", cache_expiry
        ):
            return cache_data["data"]
    except (json.JSONDecodeError, KeyError, TypeError, OSError):
        # An unreadable entry is treated as a cache miss
        return None
    return None


def clear_cache(cache_dir: str) -> bool:
    """Remove cached API responses and downloaded archives"""
    if not os.path.exists(cache_dir):
        return False

    for subdir in (API_SUBDIR, DOWNLOADS_SUBDIR):
        path = os.path.join(cache_dir, subdir)
        if os.path.isdir(path):
            for file in os.listdir(path):
                file_path = os.path.join(path, file)
                if os.path.isfile(file_path) or os.path.islink(file_path):
                    os.remove(file_path)

    return True


def get_cache_info(cache_dir: str) -> Dict:
    """Get information about the cache"""
    info = {
        "exists": os.path.exists(cache_dir),
        "path": cache_dir,
        "size_bytes": 0,
        "api_entries": 0,
        "download_entries": 0,
    }

    if not info["exists"]:
        return info

    api_cache = os.path.join(cache_dir, API_SUBDIR)
    downloads_cache = os.path.join(cache_dir, DOWNLOADS_SUBDIR)

    if os.path.exists(api_cache):
        api_files = os.listdir(api_cache)
        info["api_entries"] = len(api_files)
        for file in api_files:
            info["size_bytes"] += os.path.getsize(os.path.join(api_cache, file))

    if os.path.exists(downloads_cache):
        download_files = os.listdir(downloads_cache)
        info["download_entries"] = len(download_files)
        for file in download_files:
            info["size_bytes"] += os.path.getsize(os.path.join(downloads_cache, file))

    return info
