import json
from pathlib import Path

import pytest

from corekit.plugin_model import (
    InstallMethod,
    PluginBase,
    PluginInstance,
    PluginMetadata,
    PluginState,
    PluginType,
    check_integrity,
    parse_manifest_entry,
    read_plugin_json,
)


def _write_plugin(directory: Path, data) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "plugin.json").write_text(json.dumps(data), encoding="utf-8")
    return directory


def _instance(plugin_id: str, root: Path) -> PluginInstance:
    return PluginInstance(metadata=PluginMetadata(id=plugin_id, root_path=root))


def test_read_plugin_json_full(tmp_path):
    data = {
        "id": "git",
        "name": "Git",
        "version": "1.2.3",
        "binary": "git.so",
        "default_value_path": "defaults.json",
        "libraries": ["a.so"],
        "dependencies": ["core"],
        "resources": ["icon.png"],
    }
    _write_plugin(tmp_path, data)
    plugin = read_plugin_json(tmp_path)
    meta = plugin.metadata
    assert meta.id == "git"
    assert meta.name == "Git"
    assert meta.version == "1.2.3"
    assert meta.binary_name == "git.so"
    assert meta.default_value_path == "defaults.json"
    assert meta.libraries == ["a.so"]
    assert meta.dependencies == ["core"]
    assert meta.resources == ["icon.png"]
    assert plugin.state is PluginState.UNLOADED


def test_read_plugin_json_defaults(tmp_path):
    _write_plugin(tmp_path, {"id": "x"})
    meta = read_plugin_json(tmp_path).metadata
    assert meta.name == "Unknown"
    assert meta.version == "0.0.0"
    assert meta.binary_name == ""
    assert meta.dependencies == []


@pytest.mark.parametrize(
    "data",
    [{}, {"id": ""}, {"id": 5}, ["id"], {"id": "x", "dependencies": "core"}],
)
def test_read_plugin_json_invalid(tmp_path, data):
    _write_plugin(tmp_path, data)
    assert read_plugin_json(tmp_path) is None


def test_read_plugin_json_missing_or_broken(tmp_path):
    assert read_plugin_json(tmp_path) is None
    (tmp_path / "plugin.json").write_text("{not json", encoding="utf-8")
    assert read_plugin_json(tmp_path) is None


def test_check_integrity_ok_refreshes_metadata(tmp_path):
    _write_plugin(
        tmp_path,
        {"id": "p", "name": "P", "version": "2.0", "binary": "p.bin", "resources": ["r.txt"]},
    )
    (tmp_path / "p.bin").write_bytes(b"")
    (tmp_path / "r.txt").write_text("r")
    plugin = _instance("p", tmp_path)
    assert check_integrity(plugin) is True
    assert plugin.metadata.integrity_status == "OK"
    assert plugin.metadata.name == "P"
    assert plugin.metadata.version == "2.0"
    assert plugin.metadata.resources == ["r.txt"]


def test_check_integrity_root_missing(tmp_path):
    plugin = _instance("p", tmp_path / "nowhere")
    assert check_integrity(plugin) is False
    assert plugin.metadata.integrity_status == "RootDirectoryMissing"


def test_check_integrity_invalid_json(tmp_path):
    plugin = _instance("p", tmp_path)
    assert check_integrity(plugin) is False
    assert plugin.metadata.integrity_status == "InvalidPluginJson"


def test_check_integrity_id_mismatch(tmp_path):
    _write_plugin(tmp_path, {"id": "other"})
    plugin = _instance("p", tmp_path)
    assert check_integrity(plugin) is False
    assert plugin.metadata.integrity_status == "IdMismatch"


def test_check_integrity_binary_missing(tmp_path):
    _write_plugin(tmp_path, {"id": "p", "binary": "p.bin"})
    plugin = _instance("p", tmp_path)
    assert check_integrity(plugin) is False
    assert plugin.metadata.integrity_status == "MainBinaryMissing: p.bin"


def test_check_integrity_resource_missing(tmp_path):
    _write_plugin(tmp_path, {"id": "p", "binary": "p.bin", "resources": ["gone.txt"]})
    (tmp_path / "p.bin").write_bytes(b"")
    plugin = _instance("p", tmp_path)
    assert check_integrity(plugin) is False
    assert plugin.metadata.integrity_status == "ResourceMissing: gone.txt"


def test_check_integrity_checks_instance_libraries(tmp_path):
    _write_plugin(tmp_path, {"id": "p", "binary": "p.bin", "libraries": ["ignored.so"]})
    (tmp_path / "p.bin").write_bytes(b"")
    plugin = _instance("p", tmp_path)
    assert check_integrity(plugin) is True
    plugin.metadata.libraries = ["dep.so"]
    assert check_integrity(plugin) is False
    assert plugin.metadata.integrity_status == "LibraryMissing: dep.so"


def test_parse_manifest_entry_builtin_relative(tmp_path):
    core = tmp_path / "core"
    user = tmp_path / "user"
    plugin = parse_manifest_entry(
        "ess", {"path": "./Essential", "enabled": False}, PluginType.BUILTIN, core, user
    )
    meta = plugin.metadata
    assert meta.root_path == (core / "Essential").resolve()
    assert meta.is_enabled is True
    assert meta.plugin_type is PluginType.BUILTIN
    assert meta.install_method is InstallMethod.COPY


def test_parse_manifest_entry_user_link(tmp_path):
    core = tmp_path / "core"
    user = tmp_path / "user"
    plugin = parse_manifest_entry(
        "ext", {"path": "ext", "method": "Link", "enabled": False},
        PluginType.THIRD_PARTY, core, user,
    )
    meta = plugin.metadata
    assert meta.root_path == (user / "ext").resolve()
    assert meta.is_enabled is False
    assert meta.install_method is InstallMethod.LINK
    assert meta.id == "ext"


def test_parse_manifest_entry_absolute_path(tmp_path):
    target = tmp_path / "abs" / "plug"
    plugin = parse_manifest_entry(
        "a", {"path": str(target)}, PluginType.THIRD_PARTY, tmp_path / "c", tmp_path / "u"
    )
    assert plugin.metadata.root_path == target.resolve()
    assert plugin.metadata.is_enabled is True


@pytest.mark.parametrize("item", [[], {"path": 3}, {"enabled": "yes"}])
def test_parse_manifest_entry_rejects_bad_entries(tmp_path, item):
    with pytest.raises(ValueError):
        parse_manifest_entry("bad", item, PluginType.THIRD_PARTY, tmp_path, tmp_path)


def test_plugin_base_is_abstract():
    with pytest.raises(TypeError):
        PluginBase()


def test_plugin_base_subclass_lifecycle(tmp_path):
    class Dummy(PluginBase):
        def __init__(self):
            self.active = False

        id = "dummy"
        name = "Dummy"
        version = "1.0"
        cert = ""

        def init(self):
            self.active = True
            return True

        def shutdown(self):
            self.active = False

    plugin = Dummy()
    _write_plugin(tmp_path, {"id": plugin.id, "name": plugin.name, "version": plugin.version})
    meta = read_plugin_json(tmp_path).metadata
    assert (meta.id, meta.name, meta.version) == ("dummy", "Dummy", "1.0")
    assert plugin.init() is True
    assert plugin.active is True
    plugin.shutdown()
    assert plugin.active is False