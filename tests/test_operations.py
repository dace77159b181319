"""
Tests for the user-facing operations: console output and history logging.
"""

import os
from unittest.mock import patch

from nvimswitch.core.operations import (
    clean_old_versions,
    clear_history,
    download_version,
    list_versions,
    purge_version,
    show_current,
    show_history,
    switch_version,
)
from nvimswitch.utils import history
from nvimswitch.utils.history import get_history

PATCH_GET = "nvimswitch.core.manager.requests.get"


def last_entry():
    return get_history(1)[0]


class TestShowCurrent:
    def test_none(self, manager, capsys):
        assert show_current(manager) is True
        assert "Current version: None" in capsys.readouterr().out

    def test_active(self, manager, installed, capsys):
        installed("v0.9.5")
        manager.activate("v0.9.5")

        show_current(manager)

        out = capsys.readouterr().out
        assert "Current version:" in out
        assert "v0.9.5" in out


class TestDownloadVersion:
    def test_downloads_without_activating(self, manager, make_response, archive_bytes, capsys):
        with patch(PATCH_GET, return_value=make_response(archive_bytes())):
            assert download_version(manager, "0.9.5") is True

        out = capsys.readouterr().out
        assert "Pulling version v0.9.5 of nvim from https://github.com/" in out
        assert "Downloaded version v0.9.5 of nvim" in out
        assert manager.is_downloaded("v0.9.5")
        assert manager.current_version() is None
        assert manager.installed_versions() == []

        entry = last_entry()
        assert entry["operation"] == "download"
        assert entry["versions"] == ["v0.9.5"]
        assert entry["success"] is True

    def test_already_downloaded(self, manager, cached_archive, capsys):
        cached_archive("v0.9.5")

        with patch(PATCH_GET) as mock_get:
            assert download_version(manager, "v0.9.5") is True

        mock_get.assert_not_called()
        assert "Version v0.9.5 already downloaded" in capsys.readouterr().out

    def test_force_downloads_again(self, manager, cached_archive, make_response):
        cached_archive("v0.9.5")

        with patch(PATCH_GET, return_value=make_response(b"fresh")) as mock_get:
            assert download_version(manager, "v0.9.5", force=True) is True

        mock_get.assert_called_once()
        with open(manager.archive_path("v0.9.5"), "rb") as f:
            assert f.read() == b"fresh"

    def test_http_failure(self, manager, make_response, capsys):
        with patch(PATCH_GET, return_value=make_response(status=404)):
            assert download_version(manager, "0.9.5") is False

        assert "Failed to download version v0.9.5" in capsys.readouterr().out
        entry = last_entry()
        assert entry["success"] is False
        assert "404" in entry["details"]["error"]

    def test_invalid_version(self, manager, capsys):
        assert download_version(manager, "banana") is False

        assert "Invalid version: banana" in capsys.readouterr().out
        assert last_entry()["versions"] == ["banana"]


class TestSwitchVersion:
    def test_downloads_installs_and_activates(
        self, manager, make_response, archive_bytes, capsys
    ):
        with patch(PATCH_GET, return_value=make_response(archive_bytes())):
            assert switch_version(manager, "0.9.5") is True

        out = capsys.readouterr().out
        assert "Switching to version v0.9.5" in out
        assert "Switched to version v0.9.5" in out
        assert manager.current_version() == "v0.9.5"
        assert os.path.islink(os.path.join(manager.link_dir, "bin", "nvim"))

        entry = last_entry()
        assert entry["operation"] == "switch"
        assert entry["details"]["from_version"] is None
        assert entry["details"]["to_version"] == "v0.9.5"

    def test_uses_cached_archive(self, manager, cached_archive):
        cached_archive("v0.10.0")

        with patch(PATCH_GET) as mock_get:
            assert switch_version(manager, "v0.10.0") is True

        mock_get.assert_not_called()
        assert manager.current_version() == "v0.10.0"

    def test_installed_version_without_archive(self, manager, installed):
        installed("v0.10.0")
        os.remove(manager.archive_path("v0.10.0"))

        with patch(PATCH_GET) as mock_get:
            assert switch_version(manager, "v0.10.0") is True

        mock_get.assert_not_called()

    def test_already_active(self, manager, installed, capsys):
        installed("v0.9.5")
        manager.activate("v0.9.5")

        assert switch_version(manager, "0.9.5") is True

        assert "Already using version v0.9.5" in capsys.readouterr().out

    def test_force_refreshes_active_version(
        self, manager, installed, make_response, archive_bytes, capsys
    ):
        installed("nightly", files={"bin/nvim": b"old"})
        manager.activate("nightly")
        manager.link_files()
        fresh = archive_bytes(files={"bin/nvim": b"new"})

        with patch(PATCH_GET, return_value=make_response(fresh)) as mock_get:
            assert switch_version(manager, "nightly", force=True) is True

        mock_get.assert_called_once()
        assert "Extracting to" in capsys.readouterr().out
        assert manager.current_version() == "nightly"
        assert os.readlink(manager.current_link) == "nightly"
        with open(os.path.join(manager.link_dir, "bin", "nvim"), "rb") as f:
            assert f.read() == b"new"
        assert sorted(os.listdir(manager.install_dir)) == ["current", "nightly"]

    def test_corrupt_history_does_not_fail_switch(self, manager, cached_archive, capsys):
        cached_archive("v0.9.5")
        history.ensure_history_dir()
        with open(history.get_history_file(), "wb") as f:
            f.write(b"\xff\xfe not utf-8")

        assert switch_version(manager, "v0.9.5") is True

        assert manager.current_version() == "v0.9.5"
        assert "Failed to load history" in capsys.readouterr().out
        assert last_entry()["operation"] == "switch"

    def test_switch_between_versions(self, manager, cached_archive):
        cached_archive("v0.9.5")
        cached_archive("v0.10.0")
        switch_version(manager, "v0.9.5")

        assert switch_version(manager, "v0.10.0") is True

        assert manager.current_version() == "v0.10.0"
        assert last_entry()["details"]["from_version"] == "v0.9.5"

    def test_failed_download_keeps_active_version(
        self, manager, installed, make_response
    ):
        installed("v0.9.5")
        manager.activate("v0.9.5")

        with patch(PATCH_GET, return_value=make_response(status=404)):
            assert switch_version(manager, "v0.10.0") is False

        assert manager.current_version() == "v0.9.5"
        assert last_entry()["operation"] == "switch"
        assert last_entry()["success"] is False

    def test_bad_archive_keeps_active_version(self, manager, installed, cached_archive, capsys):
        installed("v0.9.5")
        manager.activate("v0.9.5")
        cached_archive("v0.10.0", files={"README.md": b"no binary"})

        assert switch_version(manager, "v0.10.0") is False

        assert "does not contain bin/nvim" in capsys.readouterr().out
        assert manager.current_version() == "v0.9.5"

    def test_auto_cleanup(self, manager, installed, cached_archive):
        installed("v0.9.5")
        installed("v0.10.0")
        cached_archive("v0.10.4")
        manager.auto_cleanup = True
        manager.keep_versions = 1

        assert switch_version(manager, "v0.10.4") is True

        assert manager.installed_versions() == ["v0.10.4"]


class TestPurgeVersion:
    def test_purges_inactive_version(self, manager, installed, capsys):
        installed("v0.9.5")

        assert purge_version(manager, "0.9.5") is True

        assert "Purged version v0.9.5" in capsys.readouterr().out
        assert manager.installed_versions() == []
        assert manager.cached_versions() == []
        assert last_entry()["operation"] == "purge"

    def test_refuses_active_version(self, manager, installed, capsys):
        installed("v0.9.5")
        manager.activate("v0.9.5")

        assert purge_version(manager, "v0.9.5") is False

        assert "currently active" in capsys.readouterr().out
        assert manager.is_installed("v0.9.5")

    def test_unknown_version(self, manager, capsys):
        assert purge_version(manager, "v0.9.5") is False

        assert "Version v0.9.5 not found" in capsys.readouterr().out
        assert last_entry()["success"] is False


class TestListAndClean:
    def test_list_marks_active(self, manager, installed, cached_archive, capsys):
        installed("v0.9.5")
        installed("v0.10.0")
        cached_archive("nightly")
        manager.activate("v0.9.5")

        assert list_versions(manager) is True

        out = capsys.readouterr().out
        assert "* v0.9.5 (active)" in out
        assert "v0.10.0" in out
        assert "nightly" in out

    def test_list_empty(self, manager, capsys):
        list_versions(manager)

        out = capsys.readouterr().out
        assert "No versions installed." in out
        assert "No archives downloaded." in out

    def test_clean_uses_configured_keep(self, manager, installed):
        for tag in ("v0.9.5", "v0.10.0", "v0.10.4"):
            installed(tag)
        manager.activate("v0.9.5")

        assert clean_old_versions(manager) is True

        assert manager.installed_versions() == ["v0.10.4", "v0.9.5"]
        entry = last_entry()
        assert entry["operation"] == "clean"
        assert entry["details"]["removed_versions"] == ["v0.10.0"]

    def test_clean_invalid_keep(self, manager):
        assert clean_old_versions(manager, 0) is False


class TestHistoryCommands:
    def test_show_history(self, manager, cached_archive, capsys):
        cached_archive("v0.9.5")
        switch_version(manager, "v0.9.5")
        capsys.readouterr()

        assert show_history() is True

        out = capsys.readouterr().out
        assert "Operation History" in out
        assert "Switched from none to v0.9.5" in out
        assert "Total entries: 1" in out

    def test_show_empty_history(self, capsys):
        show_history()
        assert "No history entries found." in capsys.readouterr().out

    def test_clear_history_confirmed(self, manager):
        purge_version(manager, "v0.9.5")

        with patch("builtins.input", return_value="y"):
            assert clear_history() is True

        assert get_history() == []

    def test_clear_history_cancelled(self, manager):
        purge_version(manager, "v0.9.5")

        with patch("builtins.input", return_value="n"):
            clear_history()

        assert len(get_history()) == 1

    def test_clear_history_assume_yes(self, manager):
        purge_version(manager, "v0.9.5")

        with patch("builtins.input") as mock_input:
            assert clear_history(assume_yes=True) is True

        mock_input.assert_not_called()
        assert get_history() == []
