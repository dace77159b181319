"""
Pytest configuration and shared fixtures for nvim-switcher tests.
"""

import io
import os
import tarfile
from unittest.mock import MagicMock, Mock

import pytest
import requests

from nvimswitch.core.manager import VersionManager

DEFAULT_FILES = {
    "bin/nvim": b"#!/bin/sh\necho 'NVIM v0.0.0-test'\n",
    "lib/nvim/parser/c.so": b"\x7fELF",
    "share/nvim/runtime/filetype.lua": b"-- filetypes\n",
    "share/man/man1/nvim.1": b".TH NVIM 1\n",
}


def write_archive(path, files=None, top="nvim-linux64"):
    """Write a gzip tarball shaped like a Neovim release archive."""
    files = DEFAULT_FILES if files is None else files
    os.makedirs(os.path.dirname(str(path)), exist_ok=True)
    with tarfile.open(str(path), "w:gz") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(f"{top}/{name}" if top else name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return str(path)


def fake_response(content=b"", status=200, json_data=None, headers=None, chunk_size=16):
    """Build a stand-in for requests.Response."""
    response = MagicMock()
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    response.status_code = status
    response.headers = (
        headers if headers is not None else {"content-length": str(len(content))}
    )
    response.iter_content = Mock(
        return_value=[
            content[i : i + chunk_size] for i in range(0, len(content), chunk_size)
        ]
    )
    response.json = Mock(return_value=json_data)
    if status >= 400:
        response.raise_for_status = Mock(
            side_effect=requests.HTTPError(f"{status} Client Error")
        )
    else:
        response.raise_for_status = Mock()
    return response


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch):
    """Point HOME and the XDG directories at a temporary home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("SUDO_USER", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / ".local" / "share"))
    return home


@pytest.fixture(autouse=True)
def x86_64(monkeypatch):
    """Pin the detected machine so asset names are deterministic."""
    monkeypatch.setattr("platform.machine", lambda: "x86_64")


@pytest.fixture
def manager():
    return VersionManager()


@pytest.fixture
def cached_archive(manager):
    """Factory placing a release archive for a tag into the download cache."""

    def _make(tag, files=None, top="nvim-linux64"):
        return write_archive(manager.archive_path(tag), files=files, top=top)

    return _make


@pytest.fixture
def installed(manager, cached_archive):
    """Factory downloading (from fixtures) and extracting a tag."""

    def _make(tag, files=None):
        cached_archive(tag, files=files)
        return manager.install(tag)

    return _make


@pytest.fixture
def archive_bytes(tmp_path):
    """Factory returning the bytes of a release archive."""

    def _make(files=None, top="nvim-linux64"):
        path = write_archive(tmp_path / "build" / "nvim.tar.gz", files=files, top=top)
        with open(path, "rb") as f:
            return f.read()

    return _make


@pytest.fixture
def make_response():
    return fake_response
