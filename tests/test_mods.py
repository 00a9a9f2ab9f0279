"""Tests for MOD identity, manifests, installed-MOD scanning and the MOD list."""

import json

import pytest

from errors import InvalidTargetError, ManifestError, ModListError, ModNotInListError
from mods.identity import BASE, Mod
from mods.installed import StorageForm, scan_installed_mods, versions_of
from mods.manifest import InfoJson
from mods.mod_list import ModList
from versioning.parser import DependencyKind

from factories import v, write_dir_mod, write_mod_list, write_zip_mod


class TestModIdentity:
    """Test identity semantics."""

    def test_case_sensitive(self):
        assert Mod("Foo") != Mod("foo")
        assert len({Mod("a"), Mod("a"), Mod("b")}) == 2

    def test_builtin_flags(self):
        assert BASE.is_base and BASE.is_builtin
        assert Mod("space-age").is_expansion
        assert Mod("quality").is_expansion
        assert Mod("elevated-rails").is_expansion
        assert not Mod("some-mod").is_builtin

    def test_base_sorts_first(self):
        mods = sorted([Mod("zeta"), Mod("alpha"), Mod("base")])
        assert [m.name for m in mods] == ["base", "alpha", "zeta"]


class TestInfoJson:
    """Test manifest parsing."""

    def test_from_json(self):
        info = InfoJson.from_json(json.dumps({
            "name": "my-mod",
            "version": "1.2.3",
            "title": "My MOD",
            "dependencies": ["base >= 2.0", "! bad-mod"],
        }))
        assert info.mod == Mod("my-mod")
        assert info.version == v("1.2.3")
        assert [d.kind for d in info.dependencies] == [DependencyKind.REQUIRED, DependencyKind.INCOMPATIBLE]

    def test_missing_dependencies_means_none(self):
        info = InfoJson.from_dict({"name": "my-mod", "version": "1.0.0"})
        assert info.dependencies == []

    @pytest.mark.parametrize("data", [
        {"version": "1.0.0"},
        {"name": "x", "version": "1.0"},
        {"name": "x", "version": "1.0.0", "dependencies": "base"},
        ["not", "an", "object"],
    ])
    def test_rejects_invalid(self, data):
        with pytest.raises(ManifestError):
            InfoJson.from_dict(data)

    def test_rejects_malformed_json(self):
        with pytest.raises(ManifestError):
            InfoJson.from_json("{not json")

    def test_from_zip(self, tmp_path):
        path = write_zip_mod(tmp_path, "zipped", "0.1.0", ["lib"])
        info = InfoJson.from_zip(path)
        assert info.name == "zipped"
        assert info.dependencies[0].target == Mod("lib")

    def test_from_zip_bad_archive(self, tmp_path):
        path = tmp_path / "broken_1.0.0.zip"
        path.write_bytes(b"not a zip")
        with pytest.raises(ManifestError):
            InfoJson.from_zip(path)


class TestScanInstalledMods:
    """Test discovery of installed artifacts."""

    def test_finds_zip_and_directory_forms(self, tmp_path):
        """Both storage forms are recognized."""
        write_zip_mod(tmp_path, "zipped", "1.0.0")
        write_dir_mod(tmp_path, "unpacked", "2.0.0")
        write_dir_mod(tmp_path, "versioned", "3.0.0", dir_name="versioned_3.0.0")

        found = {(m.mod.name, str(m.version), m.form) for m in scan_installed_mods(tmp_path)}
        assert found == {
            ("zipped", "1.0.0", StorageForm.ZIP),
            ("unpacked", "2.0.0", StorageForm.DIRECTORY),
            ("versioned", "3.0.0", StorageForm.DIRECTORY),
        }

    def test_skips_mismatched_names(self, tmp_path):
        """Files and directories must be named after the manifest."""
        write_zip_mod(tmp_path, "real", "1.0.0", file_name="renamed_1.0.0.zip")
        write_dir_mod(tmp_path, "real", "1.0.0", dir_name="other")
        (tmp_path / "no-manifest").mkdir()
        (tmp_path / "notes.txt").write_text("hello")
        assert scan_installed_mods(tmp_path) == []

    def test_prefers_directory_over_zip(self, tmp_path):
        """Same name and version collapse to the directory form."""
        write_zip_mod(tmp_path, "dup", "1.0.0")
        write_dir_mod(tmp_path, "dup", "1.0.0")
        found = scan_installed_mods(tmp_path)
        assert len(found) == 1
        assert found[0].form is StorageForm.DIRECTORY

    def test_keeps_multiple_versions_newest_first(self, tmp_path):
        write_zip_mod(tmp_path, "multi", "1.0.0")
        write_zip_mod(tmp_path, "multi", "2.0.0")
        found = scan_installed_mods(tmp_path)
        assert [str(m.version) for m in found] == ["2.0.0", "1.0.0"]
        assert versions_of(found, Mod("multi")) == [v("2.0.0"), v("1.0.0")]

    def test_data_dir_only_contributes_builtin_mods(self, tmp_path):
        """The data directory yields base and expansions only."""
        mods_dir = tmp_path / "mods"
        data_dir = tmp_path / "data"
        mods_dir.mkdir()
        write_dir_mod(data_dir, "base", "2.0.0")
        write_dir_mod(data_dir, "space-age", "2.0.0")
        write_dir_mod(data_dir, "core", "2.0.0")
        names = {m.mod.name for m in scan_installed_mods(mods_dir, data_dir)}
        assert names == {"base", "space-age"}

    def test_missing_mod_dir(self, tmp_path):
        assert scan_installed_mods(tmp_path / "absent") == []


class TestModList:
    """Test the MOD list model and file round trip."""

    def test_load(self, tmp_path):
        path = write_mod_list(tmp_path / "mod-list.json", [
            ("base", True),
            ("a", False),
            ("b", True, "1.2.0"),
        ])
        mod_list = ModList.load(path)
        assert mod_list.is_enabled(BASE)
        assert not mod_list.is_enabled(Mod("a"))
        assert mod_list.version(Mod("b")) == v("1.2.0")
        assert mod_list.version(Mod("a")) is None

    def test_save_preserves_entries(self, tmp_path):
        mod_list = ModList()
        mod_list.add(BASE)
        mod_list.add(Mod("a"), enabled=False, version=v("0.1.0"))
        path = tmp_path / "out" / "mod-list.json"
        mod_list.save(path)
        assert json.loads(path.read_text()) == {"mods": [
            {"name": "base", "enabled": True},
            {"name": "a", "enabled": False, "version": "0.1.0"},
        ]}

    def test_rejects_invalid_document(self, tmp_path):
        path = tmp_path / "mod-list.json"
        path.write_text(json.dumps({"mods": [{"name": "a"}]}))
        with pytest.raises(ModListError):
            ModList.load(path)

    def test_load_or_default_without_file(self, tmp_path):
        mod_list = ModList.load_or_default(tmp_path / "mod-list.json")
        assert [m.name for m, _ in mod_list] == ["base"]

    def test_enable_disable_remove(self):
        mod_list = ModList()
        mod_list.add(Mod("a"), enabled=False)
        mod_list.enable(Mod("a"))
        assert mod_list.is_enabled(Mod("a"))
        mod_list.disable(Mod("a"))
        assert not mod_list.is_enabled(Mod("a"))
        mod_list.remove(Mod("a"))
        assert not mod_list.exists(Mod("a"))

    def test_base_cannot_be_disabled_or_removed(self):
        mod_list = ModList()
        mod_list.add(BASE)
        with pytest.raises(InvalidTargetError):
            mod_list.disable(BASE)
        with pytest.raises(InvalidTargetError):
            mod_list.remove(BASE)

    def test_query_absent_mod(self):
        with pytest.raises(ModNotInListError):
            ModList().is_enabled(Mod("ghost"))
