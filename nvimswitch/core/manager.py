#!/usr/bin/env python3

import os
import re
import sys
import shutil
import tarfile
import tempfile
import zlib
from typing import Dict, List, Optional, Tuple

import requests
from colorama import Fore, Style

from ..utils.config import ConfigDict, find_config_file, load_config
from ..utils.cache import (
    cache_api_response,
    ensure_cache_dir,
    get_archive_path,
    get_cached_api_response,
    list_cached_archives,
)
from ..utils.system import (
    detect_arch,
    get_cache_home,
    get_data_home,
    get_default_link_dir,
)
from .exceptions import (
    DownloadError,
    InstallError,
    SwitcherError,
    VersionError,
    VersionNotFoundError,
)

BINARY_NAME = "nvim"
CURRENT_LINK = "current"
LATEST = "latest"
CHANNELS = ("stable", "nightly")
LATEST_CACHE_KEY = "latest"

SEMVER_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")
TAG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")

# Releases before this one only shipped an x86_64 build named nvim-linux64
SPLIT_ASSET_VERSION = (0, 10, 4)
LEGACY_ASSET_NAME = "nvim-linux64.tar.gz"

# Directories of an installation exposed under the link directory
LINKED_DIRS = ("bin", "lib")
SHARED_DIR = "share"

BLOCK_SIZE = 64 * 1024
PROGRESS_BAR_LENGTH = 30


def parse_semver(tag: str) -> Optional[Tuple[int, int, int]]:
    """Return the numeric (major, minor, patch) of a tag, or None for channels"""
    match = SEMVER_RE.match(tag)
    if not match:
        return None
    return tuple(int(part) for part in match.groups())


def version_sort_key(tag: str):
    """Sort key placing release versions (by number) above channel tags"""
    version = parse_semver(tag)
    if version is not None:
        return (1, version, tag)
    return (0, (), tag)


def _expand(path: Optional[str]) -> str:
    return os.path.abspath(os.path.expanduser(path)) if path else ""


class VersionManager:
    """Core class for managing downloaded and installed nvim versions"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = find_config_file(config_path)
        self.config: ConfigDict = load_config(self.config_path)

        options = self.config["options"]
        self.base_url = str(options["base_url"]).rstrip("/")
        self.api_url = str(options["api_url"]).rstrip("/")
        self.asset_override = options.get("asset_name") or ""
        self.install_dir = _expand(options.get("install_dir")) or get_data_home()
        self.cache_dir = _expand(options.get("cache_dir")) or get_cache_home()
        self.link_dir = _expand(options.get("link_dir")) or get_default_link_dir()
        self.keep_versions = int(options["keep_versions"])
        self.auto_cleanup = bool(options["auto_cleanup"])
        self.cache_enabled = bool(options["cache_enabled"])
        self.cache_expiry = int(options["cache_expiry"])
        self.timeout = options["timeout"]

    @property
    def current_link(self) -> str:
        return os.path.join(self.install_dir, CURRENT_LINK)

    def archive_path(self, tag: str) -> str:
        return get_archive_path(self.cache_dir, tag)

    def version_dir(self, tag: str) -> str:
        return os.path.join(self.install_dir, tag)

    # Version resolution

    def resolve_version(self, token: str) -> str:
        """Normalise a user supplied version token into a release tag"""
        token = (token or "").strip()
        if not token:
            raise VersionError("Version must not be empty")

        lowered = token.lower()
        if lowered == LATEST:
            return self._get_latest_tag()
        if lowered in CHANNELS:
            return lowered

        version = parse_semver(token)
        if version is None:
            raise VersionError(
                f"Invalid version: {token} (expected X.Y.Z, vX.Y.Z, "
                f"{', '.join(CHANNELS)} or {LATEST})"
            )
        return "v{}.{}.{}".format(*version)

    def _get_latest_release(self) -> Dict:
        """Get the latest release information from GitHub"""
        if self.cache_enabled:
            cached_data = get_cached_api_response(
                self.cache_dir, LATEST_CACHE_KEY, self.cache_expiry
            )
            if cached_data:
                print("📦 Using cached release information")
                return cached_data

        api_url = f"{self.api_url}/latest"
        print(f"📥 Fetching release information from {Fore.CYAN}{api_url}{Style.RESET_ALL}...")

        try:
            response = requests.get(api_url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise DownloadError(f"Failed to fetch release info: {e}") from e

        if self.cache_enabled and isinstance(data, dict):
            cache_api_response(self.cache_dir, LATEST_CACHE_KEY, data, self.cache_expiry)

        return data

    def _get_latest_tag(self) -> str:
        data = self._get_latest_release()
        tag_name = data.get("tag_name", "") if isinstance(data, dict) else ""
        version = parse_semver(tag_name)
        if version is not None:
            return "v{}.{}.{}".format(*version)
        if not tag_name or not TAG_RE.match(tag_name) or tag_name == CURRENT_LINK:
            raise VersionError(f"Could not parse latest release tag: {tag_name!r}")
        return tag_name

    def asset_name(self, tag: str) -> str:
        """Name of the release asset holding the linux build for a tag"""
        if self.asset_override:
            return self.asset_override

        try:
            arch = detect_arch()
        except ValueError as e:
            raise VersionError(str(e)) from e

        version = parse_semver(tag)
        if version is None or version >= SPLIT_ASSET_VERSION:
            return f"nvim-linux-{arch}.tar.gz"

        if arch != "x86_64":
            raise VersionError(f"No linux {arch} build is published for {tag}")
        return LEGACY_ASSET_NAME

    def resolve_url(self, tag: str) -> str:
        return f"{self.base_url}/{tag}/{self.asset_name(tag)}"

    # Downloading

    def is_downloaded(self, tag: str) -> bool:
        return os.path.isfile(self.archive_path(tag))

    def fetch_archive(self, tag: str, show_progress: bool = True) -> str:
        """Download the archive for a tag into the cache, replacing any existing one"""
        url = self.resolve_url(tag)
        archive = self.archive_path(tag)
        partial = archive + ".part"

        try:
            ensure_cache_dir(self.cache_dir)
            with requests.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()

                try:
                    total_size = int(response.headers.get("content-length", 0) or 0)
                except (TypeError, ValueError):
                    total_size = 0

                downloaded = 0
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(BLOCK_SIZE):
                        if not chunk:
                            continue
                        f.write(chunk)
                        downloaded += len(chunk)

                        if show_progress and total_size > 0:
                            self._draw_progress(downloaded, total_size)

            if show_progress and total_size > 0:
                print()  # Newline after progress bar

            os.replace(partial, archive)
        except requests.RequestException as e:
            raise DownloadError(f"Failed to download version {tag} from {url}: {e}") from e
        except OSError as e:
            raise DownloadError(f"Failed to store version {tag}: {e}") from e
        finally:
            if os.path.exists(partial):
                os.remove(partial)

        return archive

    @staticmethod
    def _draw_progress(downloaded: int, total_size: int) -> None:
        downloaded = min(downloaded, total_size)
        progress = int(PROGRESS_BAR_LENGTH * downloaded / total_size)
        sys.stdout.write(
            f"\r[{'=' * progress}{' ' * (PROGRESS_BAR_LENGTH - progress)}] {downloaded}/{total_size} bytes "
        )
        sys.stdout.flush()

    # Installing

    def is_installed(self, tag: str) -> bool:
        version_dir = self.version_dir(tag)
        return (
            os.path.isdir(version_dir)
            and not os.path.islink(version_dir)
            and os.path.isfile(os.path.join(version_dir, "bin", BINARY_NAME))
        )

    def install(self, tag: str, force: bool = False) -> str:
        """Extract the cached archive of a tag into its version directory"""
        version_dir = self.version_dir(tag)
        if self.is_installed(tag) and not force:
            return version_dir

        archive = self.archive_path(tag)
        if not os.path.isfile(archive):
            raise InstallError(f"Version {tag} has not been downloaded")

        try:
            os.makedirs(self.install_dir, exist_ok=True)
            staging = tempfile.mkdtemp(prefix=f".{tag}-", dir=self.install_dir)
        except OSError as e:
            raise InstallError(f"Failed to prepare {self.install_dir}: {e}") from e

        try:
            root = self._extract_archive(archive, staging)
            self._replace_version_dir(root, version_dir)
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            raise InstallError(f"Failed to extract version {tag}: {e}") from e
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        return version_dir

    def _extract_archive(self, archive_path: str, destination: str) -> str:
        """Extract an archive and return the root of the installation inside it"""
        with tarfile.open(archive_path, "r:*") as tar:
            # The data filter rejects members escaping the destination
            tar.extractall(destination, filter="data")

        # Strip a single top-level directory such as nvim-linux64/
        root = destination
        contents = os.listdir(destination)
        if len(contents) == 1:
            candidate = os.path.join(destination, contents[0])
            if os.path.isdir(candidate) and not os.path.islink(candidate):
                root = candidate

        if not os.path.isfile(os.path.join(root, "bin", BINARY_NAME)):
            raise InstallError(
                f"Archive {os.path.basename(archive_path)} does not contain bin/{BINARY_NAME}"
            )
        return root

    def _replace_version_dir(self, root: str, version_dir: str) -> None:
        if not os.path.isdir(version_dir):
            os.rename(root, version_dir)
            return

        retired = tempfile.mkdtemp(prefix=".retired-", dir=self.install_dir)
        try:
            os.rename(version_dir, os.path.join(retired, "old"))
            os.rename(root, version_dir)
        finally:
            shutil.rmtree(retired, ignore_errors=True)

    def activate(self, tag: str) -> None:
        """Point the current link at an installed version"""
        if not self.is_installed(tag):
            raise InstallError(f"Version {tag} is not installed")

        tmp_link = self.current_link + ".tmp"
        try:
            if os.path.lexists(tmp_link):
                os.remove(tmp_link)

            # A real directory in place of the link cannot be replaced atomically
            if os.path.lexists(self.current_link) and not os.path.islink(self.current_link):
                if os.path.isdir(self.current_link):
                    shutil.rmtree(self.current_link)
                else:
                    os.remove(self.current_link)

            # Relative target keeps the install directory relocatable
            os.symlink(tag, tmp_link)
            os.replace(tmp_link, self.current_link)
        except OSError as e:
            raise InstallError(f"Failed to activate version {tag}: {e}") from e

    def current_version(self) -> Optional[str]:
        """Return the active tag, or None when nothing valid is active"""
        if not os.path.islink(self.current_link):
            return None

        target = os.readlink(self.current_link)
        tag = os.path.basename(os.path.normpath(target))
        if not tag or not self.is_installed(tag):
            return None
        return tag

    # Linking

    def link_files(self) -> List[str]:
        """Expose the active installation under the link directory"""
        created = []
        try:
            for subdir in LINKED_DIRS:
                created += self._link_children(
                    os.path.join(self.current_link, subdir),
                    os.path.join(self.link_dir, subdir),
                )

            # share/ is linked one level deeper to leave e.g. ~/.local/share/nvim intact
            share = os.path.join(self.current_link, SHARED_DIR)
            if os.path.isdir(share):
                for entry in sorted(os.listdir(share)):
                    source = os.path.join(share, entry)
                    target = os.path.join(self.link_dir, SHARED_DIR, entry)
                    if os.path.isdir(source):
                        created += self._link_children(source, target)
                    elif self._create_symlink(source, target):
                        created.append(target)

            self._prune_broken_links()
        except OSError as e:
            raise InstallError(f"Failed to link files into {self.link_dir}: {e}") from e

        return created

    def _link_children(self, source_dir: str, output_dir: str) -> List[str]:
        if not os.path.isdir(source_dir):
            return []

        created = []
        os.makedirs(output_dir, exist_ok=True)
        for name in sorted(os.listdir(source_dir)):
            link = os.path.join(output_dir, name)
            if self._create_symlink(os.path.join(source_dir, name), link):
                created.append(link)
        return created

    def _create_symlink(self, source: str, link_name: str) -> bool:
        """Create a symbolic link from source to link_name, never replacing real files"""
        if os.path.islink(link_name):
            os.unlink(link_name)
        elif os.path.lexists(link_name):
            print(
                f"{Fore.YELLOW}⚠️ Skipping {link_name}: it exists and is not a symbolic link{Style.RESET_ALL}"
            )
            return False

        os.makedirs(os.path.dirname(link_name), exist_ok=True)
        os.symlink(source, link_name)
        return True

    def _managed_link_dirs(self) -> List[str]:
        dirs = [os.path.join(self.link_dir, subdir) for subdir in LINKED_DIRS]
        share = os.path.join(self.link_dir, SHARED_DIR)
        dirs.append(share)
        if os.path.isdir(share):
            for entry in sorted(os.listdir(share)):
                path = os.path.join(share, entry)
                if os.path.isdir(path) and not os.path.islink(path):
                    dirs.append(path)
        return dirs

    def _prune_broken_links(self) -> List[str]:
        """Remove links left dangling by a version that lacks some file"""
        prefix = self.current_link + os.sep
        removed = []
        for directory in self._managed_link_dirs():
            if not os.path.isdir(directory):
                continue
            for name in os.listdir(directory):
                path = os.path.join(directory, name)
                if (
                    os.path.islink(path)
                    and not os.path.exists(path)
                    and os.readlink(path).startswith(prefix)
                ):
                    os.unlink(path)
                    removed.append(path)
        return removed

    # Listing and removal

    def installed_versions(self) -> List[str]:
        if not os.path.isdir(self.install_dir):
            return []

        versions = []
        for item in os.listdir(self.install_dir):
            item_path = os.path.join(self.install_dir, item)
            if (
                not item.startswith(".")
                and item != CURRENT_LINK
                and os.path.isdir(item_path)
                and not os.path.islink(item_path)
            ):
                versions.append(item)

        return sorted(versions, key=version_sort_key, reverse=True)

    def cached_versions(self) -> List[str]:
        return sorted(list_cached_archives(self.cache_dir), key=version_sort_key, reverse=True)

    def remove_version(self, tag: str) -> List[str]:
        """Delete the cached archive and installation of an inactive version"""
        if tag == self.current_version():
            raise SwitcherError(
                f"Version {tag} is currently active; switch to another version first"
            )

        removed = []
        archive = self.archive_path(tag)
        version_dir = self.version_dir(tag)
        try:
            if os.path.isfile(archive):
                os.remove(archive)
                removed.append(archive)
            if os.path.isdir(version_dir) and not os.path.islink(version_dir):
                shutil.rmtree(version_dir)
                removed.append(version_dir)
        except OSError as e:
            raise SwitcherError(f"Failed to remove version {tag}: {e}") from e

        if not removed:
            raise VersionNotFoundError(f"Version {tag} not found")
        return removed

    def clean_old_versions(self, keep_versions: int) -> Tuple[List[str], List[str]]:
        """Remove installations beyond the newest keep_versions, never the active one"""
        if keep_versions < 1:
            raise SwitcherError("At least one version must be kept")

        current_version = self.current_version()
        versions = self.installed_versions()

        versions_to_keep = [current_version] if current_version else []
        for version in versions:
            if version not in versions_to_keep and len(versions_to_keep) < keep_versions:
                versions_to_keep.append(version)

        removed = []
        for version in versions:
            if version in versions_to_keep:
                continue
            try:
                shutil.rmtree(self.version_dir(version))
            except OSError as e:
                raise SwitcherError(f"Failed to remove version {version}: {e}") from e
            removed.append(version)

        kept = [v for v in versions if v in versions_to_keep]
        return kept, removed
