"""Tests for applying plans and downloading releases."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from dependency.graph import Operation
from errors import DownloadError
from mods.identity import BASE, Mod
from mods.installed import StorageForm
from mods.mod_list import ModList
from plan_executor import apply_disable, apply_enable, apply_install, apply_uninstall, apply_update, download_all
from planning.plans import (
    DisablePlan,
    EnablePlan,
    InstallItem,
    InstallPlan,
    UninstallPlan,
    UpdateItem,
    UpdatePlan,
)
from registry.downloader import Downloader

from factories import FakeDownloader, make_artifact, make_release, v, write_dir_mod, write_zip_mod

ABC_SHA1 = "a9993e364706816aba3e25717850c26c9cd0d89d"


def _mod_list(*entries):
    mod_list = ModList()
    mod_list.add(BASE)
    for name, enabled, *version in entries:
        mod_list.add(Mod(name), enabled=enabled, version=v(version[0]) if version else None)
    return mod_list


class TestApplyListPlans:
    """Test enable and disable application."""

    def test_apply_enable(self):
        mod_list = _mod_list(("a", False))
        apply_enable(EnablePlan([Mod("a"), Mod("b")]), mod_list)
        assert mod_list.is_enabled(Mod("a"))
        assert mod_list.is_enabled(Mod("b"))

    def test_apply_disable(self):
        mod_list = _mod_list(("a", True))
        apply_disable(DisablePlan([Mod("a"), Mod("b")]), mod_list)
        assert not mod_list.is_enabled(Mod("a"))
        assert not mod_list.is_enabled(Mod("b"))


class TestApplyUninstall:
    """Test artifact removal."""

    def test_removes_files_and_directories(self, tmp_path):
        zip_path = write_zip_mod(tmp_path, "zipped", "1.0.0")
        dir_path = write_dir_mod(tmp_path, "unpacked", "1.0.0")
        mod_list = _mod_list(("zipped", True), ("unpacked", True), ("space-age", True))
        plan = UninstallPlan(
            artifacts=[
                make_artifact("zipped", "1.0.0", path=zip_path),
                make_artifact("unpacked", "1.0.0", path=dir_path, form=StorageForm.DIRECTORY),
            ],
            remove_from_list=[Mod("zipped"), Mod("unpacked")],
            disable_only=[Mod("space-age")],
        )
        apply_uninstall(plan, mod_list)

        assert not zip_path.exists()
        assert not dir_path.exists()
        assert not mod_list.exists(Mod("zipped"))
        assert not mod_list.exists(Mod("unpacked"))
        assert not mod_list.is_enabled(Mod("space-age"))

    def test_failed_removal_keeps_list_in_step(self, tmp_path):
        """Every artifact is attempted; only MODs actually removed leave the list."""
        zip_path = write_zip_mod(tmp_path, "zipped", "1.0.0")
        mod_list = _mod_list(("gone", True), ("zipped", True))
        plan = UninstallPlan(
            artifacts=[
                make_artifact("gone", "1.0.0", path=tmp_path / "gone_1.0.0.zip"),
                make_artifact("zipped", "1.0.0", path=zip_path),
            ],
            remove_from_list=[Mod("gone"), Mod("zipped")],
        )

        with pytest.raises(OSError):
            apply_uninstall(plan, mod_list)

        assert not zip_path.exists()
        assert not mod_list.exists(Mod("zipped"))
        assert mod_list.exists(Mod("gone"))

    def test_clears_pin_of_removed_version(self, tmp_path):
        zip_path = write_zip_mod(tmp_path, "lib", "1.0.0")
        mod_list = _mod_list(("lib", True, "1.0.0"))
        apply_uninstall(UninstallPlan(artifacts=[make_artifact("lib", "1.0.0", path=zip_path)]), mod_list)
        assert mod_list.exists(Mod("lib"))
        assert mod_list.version(Mod("lib")) is None


class TestApplyInstallAndUpdate:
    """Test download-then-enable execution."""

    def test_apply_install(self, tmp_path):
        release = make_release("new", "1.0.0")
        plan = InstallPlan(items=[
            InstallItem(Mod("lib"), Operation.ENABLE, v("1.0.0")),
            InstallItem(Mod("new"), Operation.INSTALL, v("1.0.0"), release, tmp_path / release.file_name),
        ])
        mod_list = _mod_list(("lib", False))
        downloader = FakeDownloader()

        apply_install(plan, mod_list, downloader, jobs=2)

        assert (tmp_path / "new_1.0.0.zip").read_text() == "new_1.0.0.zip"
        assert mod_list.is_enabled(Mod("lib"))
        assert mod_list.is_enabled(Mod("new"))

    def test_download_failure_leaves_list_untouched(self, tmp_path):
        releases = [make_release("a", "1.0.0"), make_release("b", "1.0.0")]
        plan = InstallPlan(items=[
            InstallItem(Mod(r.file_name.split("_")[0]), Operation.INSTALL, r.version, r, tmp_path / r.file_name)
            for r in releases
        ])
        mod_list = _mod_list()
        downloader = FakeDownloader(fail={"a_1.0.0.zip"})

        with pytest.raises(DownloadError):
            apply_install(plan, mod_list, downloader)
        assert downloader.downloaded == ["b_1.0.0.zip"]
        assert not mod_list.exists(Mod("a"))

    def test_download_all_empty(self):
        download_all(FakeDownloader(), [])

    def test_apply_update_clears_pin(self, tmp_path):
        release = make_release("lib", "1.2.0")
        plan = UpdatePlan([UpdateItem(Mod("lib"), v("1.0.0"), release, tmp_path / release.file_name)])
        mod_list = _mod_list(("lib", False, "1.0.0"))

        apply_update(plan, mod_list, FakeDownloader())

        assert (tmp_path / "lib_1.2.0.zip").exists()
        assert mod_list.version(Mod("lib")) is None
        assert not mod_list.is_enabled(Mod("lib"))


def _stream(status=200, chunks=(b"abc",)):
    response = MagicMock()
    response.status_code = status
    response.url = "https://mods.example/download/x"
    response.iter_content.return_value = list(chunks)
    stream = MagicMock()
    stream.__enter__.return_value = response
    return stream


class TestDownloader:
    """Test archive download with verification."""

    @patch("registry.downloader.stream_get")
    def test_downloads_and_verifies(self, mock_stream, tmp_path):
        mock_stream.return_value = _stream()
        release = make_release("x", "1.0.0", sha1=ABC_SHA1.upper())
        downloader = Downloader("https://mods.example", username="me", token="t0k")

        path = downloader.download(release, tmp_path / release.file_name)

        assert path.read_bytes() == b"abc"
        assert not (tmp_path / "x_1.0.0.zip.part").exists()
        mock_stream.assert_called_once_with(
            "https://mods.example/download/x/1.0.0", params={"username": "me", "token": "t0k"}
        )

    @patch("registry.downloader.stream_get")
    def test_checksum_mismatch(self, mock_stream, tmp_path):
        mock_stream.return_value = _stream()
        release = make_release("x", "1.0.0", sha1="0" * 40)
        with pytest.raises(DownloadError, match="Checksum mismatch"):
            Downloader().download(release, tmp_path / release.file_name)
        assert list(tmp_path.iterdir()) == []

    @patch("registry.downloader.stream_get")
    def test_bad_status(self, mock_stream, tmp_path):
        mock_stream.return_value = _stream(status=403)
        release = make_release("x", "1.0.0")
        with pytest.raises(DownloadError, match="status 403"):
            Downloader().download(release, tmp_path / release.file_name)

    @patch("registry.downloader.stream_get")
    def test_transport_error(self, mock_stream, tmp_path):
        mock_stream.side_effect = requests.ConnectionError("down")
        release = make_release("x", "1.0.0")
        with pytest.raises(DownloadError, match="down"):
            Downloader().download(release, tmp_path / release.file_name)
        assert list(tmp_path.iterdir()) == []
