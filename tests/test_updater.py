"""Tests for downloading and installing addon archives."""
import os
import shutil
import threading
import time
import zipfile
from unittest.mock import MagicMock

import pytest

from shared.addon_record import AddonRecord, UpdateInfo
from worker import updater as updater_module
from worker.updater import AddonUpdater, UpdaterError


def build_zip(path, files):
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return path


def fake_api(archive):
    api = MagicMock()

    def download(source, dest):
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(archive, dest)
        return dest

    api.download.side_effect = download
    return api


@pytest.fixture
def addons_dir(tmp_path):
    path = tmp_path / "AddOns"
    path.mkdir()
    return path


class TestUpdate:
    def test_replaces_addon_folders(self, tmp_path, addons_dir):
        old = addons_dir / "Bagnon"
        old.mkdir()
        (old / "stale.lua").write_text("old", encoding="utf-8")
        archive = build_zip(tmp_path / "release.zip", {"Bagnon/Bagnon.toc": "## Version: 2\n", "Bagnon/Bagnon.lua": "new"})
        api = fake_api(archive)
        updater = AddonUpdater(api, lambda: str(addons_dir))

        addon = AddonRecord(id="1592", name="Bagnon", folders=("Bagnon",))
        folders = updater.update(addon, UpdateInfo("1592", "2", main_file_id=77))

        assert folders == ["Bagnon"]
        assert not (addons_dir / "Bagnon" / "stale.lua").exists()
        assert (addons_dir / "Bagnon" / "Bagnon.lua").read_text(encoding="utf-8") == "new"
        assert api.download.call_args.args[0] == "files/77/download"

    def test_prefers_download_url(self, tmp_path, addons_dir):
        archive = build_zip(tmp_path / "release.zip", {"Bagnon/Bagnon.toc": ""})
        api = fake_api(archive)
        updater = AddonUpdater(api, lambda: str(addons_dir))
        info = UpdateInfo("1592", "2", main_file_id=77, download_url="https://cdn.example/bagnon.zip")

        updater.update(AddonRecord(id="1592", name="Bagnon", folders=("Bagnon",)), info)

        assert api.download.call_args.args[0] == "https://cdn.example/bagnon.zip"

    def test_removes_folders_no_longer_shipped(self, tmp_path, addons_dir):
        (addons_dir / "DBM-Core").mkdir()
        (addons_dir / "DBM-Old").mkdir()
        (addons_dir / "Unrelated").mkdir()
        archive = build_zip(tmp_path / "dbm.zip", {"DBM-Core/DBM-Core.toc": "", "DBM-GUI/DBM-GUI.toc": ""})
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))

        addon = AddonRecord(id="3358", name="DBM", folders=("DBM-Core", "DBM-Old"))
        folders = updater.update(addon, UpdateInfo("3358", "2", main_file_id=1))

        assert folders == ["DBM-Core", "DBM-GUI"]
        assert not (addons_dir / "DBM-Old").exists()
        assert (addons_dir / "Unrelated").exists()

    def test_rejects_mismatched_update(self, addons_dir):
        updater = AddonUpdater(MagicMock(), lambda: str(addons_dir))
        with pytest.raises(UpdaterError):
            updater.update(AddonRecord(id="1", name="A"), UpdateInfo("2", "1.0", main_file_id=5))

    def test_requires_file_reference(self, addons_dir):
        updater = AddonUpdater(MagicMock(), lambda: str(addons_dir))
        with pytest.raises(UpdaterError):
            updater.update(AddonRecord(id="1", name="A"), UpdateInfo("1", "1.0"))

    def test_requires_addons_directory(self):
        updater = AddonUpdater(MagicMock(), lambda: "")
        with pytest.raises(UpdaterError):
            updater.install(5)


class TestArchiveValidation:
    def test_invalid_zip(self, tmp_path, addons_dir):
        archive = tmp_path / "broken.zip"
        archive.write_bytes(b"not a zip")
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))
        with pytest.raises(UpdaterError):
            updater.install(5)

    def test_rejects_path_traversal(self, tmp_path, addons_dir):
        archive = build_zip(tmp_path / "evil.zip", {"../evil.lua": "x"})
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))
        with pytest.raises(UpdaterError):
            updater.install(5)
        assert not (addons_dir.parent / "evil.lua").exists()

    def test_archive_without_folders(self, tmp_path, addons_dir):
        archive = build_zip(tmp_path / "flat.zip", {"readme.txt": "x", "__MACOSX/Bagnon/._a": "x"})
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))
        with pytest.raises(UpdaterError):
            updater.install(5)

    def test_install_adds_new_folders(self, tmp_path, addons_dir):
        archive = build_zip(tmp_path / "new.zip", {"Questie/Questie.toc": ""})
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))
        assert updater.install("334372") == ["Questie"]
        assert (addons_dir / "Questie" / "Questie.toc").exists()


class TestFailureSafety:
    def test_failed_copy_keeps_installed_addon(self, tmp_path, addons_dir, monkeypatch):
        old = addons_dir / "Bagnon"
        old.mkdir()
        (old / "Bagnon.lua").write_text("old", encoding="utf-8")
        archive = build_zip(tmp_path / "release.zip", {"Bagnon/Bagnon.lua": "new"})
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))

        def disk_full(src, dst, *args, **kwargs):
            os.makedirs(dst)
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(updater_module.shutil, "copytree", disk_full)

        with pytest.raises(OSError):
            updater.update(AddonRecord(id="1592", name="Bagnon", folders=("Bagnon",)), UpdateInfo("1592", "2", main_file_id=1))

        assert (addons_dir / "Bagnon" / "Bagnon.lua").read_text(encoding="utf-8") == "old"
        assert sorted(p.name for p in addons_dir.iterdir()) == ["Bagnon"]

    def test_failed_swap_restores_every_folder(self, tmp_path, addons_dir, monkeypatch):
        for name in ("DBM-Core", "DBM-GUI", "DBM-Old"):
            (addons_dir / name).mkdir()
            (addons_dir / name / "marker").write_text("old", encoding="utf-8")
        archive = build_zip(tmp_path / "dbm.zip", {"DBM-Core/marker": "new", "DBM-GUI/marker": "new"})
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))
        real_replace = os.replace

        def locked_file(src, dst):
            if os.path.basename(src) == ".DBM-GUI.new":
                raise PermissionError(13, "File in use")
            return real_replace(src, dst)

        monkeypatch.setattr(updater_module.os, "replace", locked_file)

        addon = AddonRecord(id="3358", name="DBM", folders=("DBM-Core", "DBM-GUI", "DBM-Old"))
        with pytest.raises(PermissionError):
            updater.update(addon, UpdateInfo("3358", "2", main_file_id=1))

        for name in ("DBM-Core", "DBM-GUI", "DBM-Old"):
            assert (addons_dir / name / "marker").read_text(encoding="utf-8") == "old"
        assert sorted(p.name for p in addons_dir.iterdir()) == ["DBM-Core", "DBM-GUI", "DBM-Old"]

    def test_successful_update_leaves_no_staging_folders(self, tmp_path, addons_dir):
        (addons_dir / "Bagnon").mkdir()
        archive = build_zip(tmp_path / "release.zip", {"Bagnon/Bagnon.lua": "new"})
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))
        updater.update(AddonRecord(id="1592", name="Bagnon", folders=("Bagnon",)), UpdateInfo("1592", "2", main_file_id=1))
        assert [p.name for p in addons_dir.iterdir()] == ["Bagnon"]


class TestSharedFolders:
    def test_updates_shipping_the_same_folder_do_not_overlap(self, tmp_path, addons_dir, monkeypatch):
        first = build_zip(tmp_path / "first.zip", {"Bagnon/a.lua": "1", "LibStub/LibStub.lua": "1"})
        second = build_zip(tmp_path / "second.zip", {"Questie/q.lua": "1", "LibStub/LibStub.lua": "2"})
        archives = {"files/1/download": first, "files/2/download": second}

        api = MagicMock()

        def download(source, dest):
            shutil.copyfile(archives[source], dest)
            return dest

        api.download.side_effect = download
        updater = AddonUpdater(api, lambda: str(addons_dir))

        active = {}
        overlaps = []
        lock = threading.Lock()
        real_copytree = shutil.copytree

        def tracking_copytree(src, dst, *args, **kwargs):
            name = os.path.basename(dst)
            with lock:
                active[name] = active.get(name, 0) + 1
                if active[name] > 1:
                    overlaps.append(name)
            time.sleep(0.05)
            try:
                return real_copytree(src, dst, *args, **kwargs)
            finally:
                with lock:
                    active[name] -= 1

        monkeypatch.setattr(updater_module.shutil, "copytree", tracking_copytree)

        errors = []

        def run(file_id):
            try:
                updater.install(file_id)
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=run, args=(file_id,)) for file_id in (1, 2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert overlaps == []
        assert (addons_dir / "LibStub" / "LibStub.lua").exists()

    def test_folder_names_differing_in_case_share_one_lock(self, tmp_path, addons_dir):
        archive = build_zip(tmp_path / "release.zip", {"Bagnon/Bagnon.lua": "new"})
        updater = AddonUpdater(fake_api(archive), lambda: str(addons_dir))
        addon = AddonRecord(id="1592", name="Bagnon", folders=("bagnon",))

        assert updater.update(addon, UpdateInfo("1592", "2", main_file_id=1)) == ["Bagnon"]
        assert (addons_dir / "Bagnon" / "Bagnon.lua").exists()
