"""Plugin data model: kinds, states, metadata, the plugin interface and manifest parsing."""

from __future__ import annotations

import abc
import enum
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

__all__ = [
    "PLUGIN_JSON",
    "STATUS_OK",
    "PluginType",
    "InstallMethod",
    "PluginState",
    "PluginMetadata",
    "PluginInstance",
    "PluginBase",
    "read_plugin_json",
    "check_integrity",
    "parse_manifest_entry",
]

PLUGIN_JSON = "plugin.json"
STATUS_OK = "OK"


class PluginType(enum.Enum):
    """Where a plugin comes from."""

    BUILTIN = "Builtin"
    THIRD_PARTY = "ThirdParty"


class InstallMethod(enum.Enum):
    """How a third-party plugin was installed."""

    COPY = "Copy"
    LINK = "Link"


class PluginState(enum.Enum):
    """Run state of a plugin."""

    UNLOADED = "Unloaded"
    LOADED = "Loaded"
    DISABLED = "Disabled"
    BROKEN = "Broken"
    ERROR = "Error"


@dataclass
class PluginMetadata:
    """What is known about a plugin from the manifests and its ``plugin.json``."""

    id: str = ""
    name: str = ""
    version: str = ""
    binary_name: str = ""
    default_value_path: str = ""
    libraries: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    root_path: Path = field(default_factory=Path)
    plugin_type: PluginType = PluginType.THIRD_PARTY
    install_method: InstallMethod = InstallMethod.COPY
    is_enabled: bool = True
    integrity_status: str = "Unknown"


class PluginBase(abc.ABC):
    """Interface every plugin object implements."""

    @property
    @abc.abstractmethod
    def id(self) -> str:
        """Identifier of the plugin."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Display name of the plugin."""

    @property
    @abc.abstractmethod
    def version(self) -> str:
        """Version string of the plugin."""

    @property
    @abc.abstractmethod
    def cert(self) -> str:
        """Certificate or signature information of the plugin."""

    @abc.abstractmethod
    def init(self) -> bool:
        """Set the plugin up; return whether it succeeded."""

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Undo what :meth:`init` did and release resources."""


@dataclass
class PluginInstance:
    """A plugin known to the manager, with its run state and live object."""

    metadata: PluginMetadata = field(default_factory=PluginMetadata)
    state: PluginState = PluginState.UNLOADED
    handle: Any = None
    plugin_object: PluginBase | None = None


def _string_field(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string")
    return value


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TypeError(f"'{key}' must be a list of strings")
    return list(value)


def read_plugin_json(directory: str | Path) -> PluginInstance | None:
    """Read ``plugin.json`` from ``directory``.

    Returns None when the file is missing, malformed, or has no id.
    """
    path = Path(directory) / PLUGIN_JSON
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            return None
        metadata = PluginMetadata(
            id=_string_field(data, "id", ""),
            name=_string_field(data, "name", "Unknown"),
            version=_string_field(data, "version", "0.0.0"),
            binary_name=_string_field(data, "binary", ""),
            default_value_path=_string_field(data, "default_value_path", ""),
            libraries=_string_list(data, "libraries"),
            dependencies=_string_list(data, "dependencies"),
            resources=_string_list(data, "resources"),
        )
    except (OSError, ValueError, TypeError):
        return None
    if not metadata.id:
        return None
    return PluginInstance(metadata=metadata)


def check_integrity(plugin: PluginInstance) -> bool:
    """Check the plugin's files on disk and refresh its metadata from ``plugin.json``.

    Sets ``metadata.integrity_status`` to ``"OK"`` or to the reason of the failure.
    """
    meta = plugin.metadata
    root = Path(meta.root_path)
    if not root.exists():
        meta.integrity_status = "RootDirectoryMissing"
        return False

    fresh = read_plugin_json(root)
    if fresh is None:
        meta.integrity_status = "InvalidPluginJson"
        return False
    if fresh.metadata.id != meta.id:
        meta.integrity_status = "IdMismatch"
        return False

    meta.name = fresh.metadata.name
    meta.version = fresh.metadata.version
    meta.binary_name = fresh.metadata.binary_name
    meta.dependencies = list(fresh.metadata.dependencies)
    meta.resources = list(fresh.metadata.resources)
    meta.default_value_path = fresh.metadata.default_value_path

    if not (root / meta.binary_name).exists():
        meta.integrity_status = f"MainBinaryMissing: {meta.binary_name}"
        return False
    for lib in meta.libraries:
        if not (root / lib).exists():
            meta.integrity_status = f"LibraryMissing: {lib}"
            return False
    for res in meta.resources:
        if not (root / res).exists():
            meta.integrity_status = f"ResourceMissing: {res}"
            return False

    meta.integrity_status = STATUS_OK
    return True


def parse_manifest_entry(
    plugin_id: str,
    item: dict[str, Any],
    plugin_type: PluginType,
    core_dir: str | Path,
    user_dir: str | Path,
) -> PluginInstance:
    """Build a plugin from one manifest entry.

    A relative ``path`` is taken relative to the core directory for builtin
    plugins and to the user directory otherwise. Builtin plugins are always
    enabled. Raises ValueError when the entry is not a well-formed object.
    """
    if not isinstance(item, dict):
        raise ValueError(f"manifest entry for '{plugin_id}' must be an object")
    path_value = item.get("path", "")
    method = item.get("method", "Copy")
    enabled = item.get("enabled", True)
    if not isinstance(path_value, str) or not isinstance(method, str):
        raise ValueError(f"manifest entry for '{plugin_id}' has a non-string path or method")
    if not isinstance(enabled, bool):
        raise ValueError(f"manifest entry for '{plugin_id}' has a non-boolean 'enabled'")

    plugin_path = Path(path_value)
    if not plugin_path.is_absolute():
        base = Path(core_dir) if plugin_type is PluginType.BUILTIN else Path(user_dir)
        plugin_path = base / plugin_path

    metadata = PluginMetadata(
        id=plugin_id,
        plugin_type=plugin_type,
        root_path=plugin_path.resolve(strict=False),
        install_method=InstallMethod.LINK if method == "Link" else InstallMethod.COPY,
        is_enabled=True if plugin_type is PluginType.BUILTIN else enabled,
    )
    return PluginInstance(metadata=metadata)