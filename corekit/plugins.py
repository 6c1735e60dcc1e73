"""Plugin manager: manifests, integrity checks, dependency-ordered loading and installs."""

from __future__ import annotations

import json
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Callable

from corekit.applog import get_logger
from corekit.plugin_model import (
    STATUS_OK,
    InstallMethod,
    PluginBase,
    PluginInstance,
    PluginState,
    PluginType,
    check_integrity,
    parse_manifest_entry,
    read_plugin_json,
)

__all__ = ["CORE_MANIFEST", "USER_MANIFEST", "BinaryLoader", "PluginManager"]

CORE_MANIFEST = "core_manifest.json"
USER_MANIFEST = "user_manifest.json"

BinaryLoader = Callable[[Path], "PluginBase | None"]
"""Turns the path of a plugin's binary into a plugin object.

It raises when the binary cannot be loaded and may return None when it holds
no plugin.
"""

_PREFIX = "[Plugin Manager]: "


class PluginManager:
    """Keeps track of builtin and third-party plugins and their run state."""

    def __init__(self, loader: BinaryLoader) -> None:
        self._loader = loader
        self._core_dir = Path()
        self._user_dir = Path()
        self._core_manifest = Path(CORE_MANIFEST)
        self._user_manifest = Path(USER_MANIFEST)
        self._plugins: dict[str, PluginInstance] = {}
        self._missing_core: list[str] = []
        self._load_order: list[str] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self, core_dir: str | Path, user_dir: str | Path) -> bool:
        """Read both manifests, check every plugin's files and load builtin plugins."""
        logger = get_logger()
        self._core_dir = Path(core_dir)
        self._user_dir = Path(user_dir)
        self._core_manifest = self._core_dir / CORE_MANIFEST
        self._user_manifest = self._user_dir / USER_MANIFEST
        self._missing_core.clear()

        self._user_dir.mkdir(parents=True, exist_ok=True)

        self._load_manifest(self._core_manifest, PluginType.BUILTIN)
        self._load_manifest(self._user_manifest, PluginType.THIRD_PARTY)

        dirty = False
        for plugin_id, plugin in sorted(self._plugins.items()):
            meta = plugin.metadata
            if not check_integrity(plugin):
                plugin.state = PluginState.BROKEN
                logger.warning(
                    "%sPlugin Integrity Check Failed: %s -> %s",
                    _PREFIX,
                    meta.id,
                    meta.integrity_status,
                )
                if meta.plugin_type is PluginType.BUILTIN:
                    self._missing_core.append(f"{meta.id}: {meta.integrity_status}")
                elif meta.install_method is InstallMethod.COPY:
                    logger.warning(
                        "%sRemoving missing user plugin from manifest: %s", _PREFIX, meta.id
                    )
                    del self._plugins[plugin_id]
                    dirty = True
            else:
                plugin.state = PluginState.UNLOADED if meta.is_enabled else PluginState.DISABLED

        if dirty:
            self._save_user_manifest()

        logger.info("%sPre-loading core plugins...", _PREFIX)
        for plugin_id, plugin in sorted(self._plugins.items()):
            if (
                plugin.metadata.plugin_type is PluginType.BUILTIN
                and plugin.state is not PluginState.BROKEN
            ):
                self.load_plugin(plugin_id)

        logger.info("%sPlugin Manager initialized successfully.", _PREFIX)
        logger.info(
            "%sTotal Plugins: %d, Missing Core: %d",
            _PREFIX,
            len(self._plugins),
            len(self._missing_core),
        )
        return True

    def shutdown(self) -> None:
        """Unload every loaded plugin."""
        self.unload_all()

    @property
    def missing_core_plugins(self) -> list[str]:
        """Builtin plugins that failed their check, as ``"id: reason"``.

        When this is not empty the application should not go on.
        """
        return list(self._missing_core)

    def unload_all(self) -> None:
        """Unload plugins in the reverse of the order they were loaded."""
        for plugin_id in reversed(list(self._load_order)):
            plugin = self._plugins.get(plugin_id)
            if plugin is not None:
                self._unload(plugin)
        self._load_order.clear()

    # ------------------------------------------------------------------
    # Manifests
    # ------------------------------------------------------------------

    def _load_manifest(self, path: Path, plugin_type: PluginType) -> bool:
        logger = get_logger()
        builtin = plugin_type is PluginType.BUILTIN
        label = "Core" if builtin else "User"
        if not path.exists():
            if builtin:
                logger.critical("%sCore manifest missing: %s", _PREFIX, path)
            else:
                logger.warning("%sUser manifest missing: %s", _PREFIX, path)
            return False
        if path.stat().st_size == 0:
            logger.warning("%s%s manifest is empty, skipping.", _PREFIX, label)
            return True
        try:
            with open(path, encoding="utf-8") as handle:
                root = json.load(handle)
            if not isinstance(root, dict):
                raise ValueError("manifest root must be an object")
            entries = root.get("plugins", {})
            if not isinstance(entries, dict):
                raise ValueError("'plugins' must be an object")
            for plugin_id, item in entries.items():
                self._add_manifest_entry(plugin_id, item, plugin_type)
            return True
        except (OSError, ValueError) as exc:
            log = logger.critical if builtin else logger.error
            log("%sFailed to parse %s manifest: %s", _PREFIX, label.lower(), exc)
            return False

    def _add_manifest_entry(self, plugin_id: str, item: Any, plugin_type: PluginType) -> None:
        existing = self._plugins.get(plugin_id)
        if (
            existing is not None
            and existing.metadata.plugin_type is PluginType.BUILTIN
            and plugin_type is PluginType.THIRD_PARTY
        ):
            get_logger().warning(
                "%sIgnored attempt to override builtin plugin: %s", _PREFIX, plugin_id
            )
            return
        self._plugins[plugin_id] = parse_manifest_entry(
            plugin_id, item, plugin_type, self._core_dir, self._user_dir
        )

    def _save_user_manifest(self) -> None:
        entries: dict[str, dict[str, Any]] = {}
        for plugin_id, plugin in sorted(self._plugins.items()):
            meta = plugin.metadata
            if meta.plugin_type is not PluginType.THIRD_PARTY:
                continue
            entries[plugin_id] = {
                "path": str(meta.root_path).replace("\\", "/"),
                "method": "Link" if meta.install_method is InstallMethod.LINK else "Copy",
                "enabled": meta.is_enabled,
            }
        self._user_manifest.parent.mkdir(parents=True, exist_ok=True)
        with open(self._user_manifest, "w", encoding="utf-8") as handle:
            json.dump({"plugins": entries}, handle, indent=4)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_plugin(self, plugin_id: str) -> bool:
        """Load a plugin after its dependencies; return whether it is loaded."""
        plugin = self._plugins.get(plugin_id)
        if plugin is None:
            return False
        if plugin.state is PluginState.LOADED:
            return True
        if plugin.state is PluginState.DISABLED:
            get_logger().warning("Attempted to load disabled plugin: %s", plugin_id)
            return False
        if plugin.state is PluginState.BROKEN:
            return False
        return self._load_recursive(plugin_id, set())

    def _load_recursive(self, plugin_id: str, visited: set[str]) -> bool:
        logger = get_logger()
        if plugin_id in visited:
            logger.error("Circular dependency detected: %s", plugin_id)
            return False
        plugin = self._plugins.get(plugin_id)
        if plugin is None:
            return False
        if plugin.state is PluginState.LOADED:
            return True
        if plugin.state is not PluginState.UNLOADED:
            return False

        visited.add(plugin_id)
        for dep_id in plugin.metadata.dependencies:
            if not self._load_recursive(dep_id, visited):
                logger.error("Failed to load dependency %s for plugin %s", dep_id, plugin_id)
                return False

        if self._load_binary(plugin):
            self._load_order.append(plugin_id)
            return True
        return False

    def load_all(self) -> None:
        """Load every enabled plugin that is not loaded yet."""
        for plugin_id, plugin in sorted(self._plugins.items()):
            if plugin.state is PluginState.UNLOADED and plugin.metadata.is_enabled:
                self.load_plugin(plugin_id)

    def _load_binary(self, plugin: PluginInstance) -> bool:
        logger = get_logger()
        meta = plugin.metadata
        path = Path(meta.root_path) / meta.binary_name
        logger.info("%sLoading binary: %s", _PREFIX, path)
        try:
            obj = self._loader(path)
        except Exception as exc:
            logger.error("%sFailed to load binary: %s (%s)", _PREFIX, path, exc)
            plugin.state = PluginState.ERROR
            return False
        if obj is None:
            logger.error("%sPlugin factory returned nothing: %s", _PREFIX, path)
            plugin.state = PluginState.ERROR
            return False

        plugin.plugin_object = obj
        try:
            ready = obj.init()
        except Exception as exc:
            logger.error("%sException during plugin init of %s: %s", _PREFIX, meta.id, exc)
            ready = False
        if not ready:
            logger.error("%sInitPlugin returned false: %s", _PREFIX, meta.id)
            plugin.plugin_object = None
            plugin.handle = None
            return False

        plugin.state = PluginState.LOADED
        return True

    def _unload(self, plugin: PluginInstance) -> None:
        if plugin.state is not PluginState.LOADED:
            return
        logger = get_logger()
        meta = plugin.metadata
        if plugin.plugin_object is not None:
            try:
                plugin.plugin_object.shutdown()
            except Exception as exc:
                logger.error("%sException during plugin shutdown: %s", _PREFIX, exc)
        logger.info("%sReleasing plugin object: %s", _PREFIX, meta.id)
        plugin.plugin_object = None
        plugin.handle = None
        plugin.state = PluginState.UNLOADED
        if meta.id in self._load_order:
            self._load_order.remove(meta.id)

    # ------------------------------------------------------------------
    # Enabling and disabling
    # ------------------------------------------------------------------

    def set_plugin_enabled(self, plugin_id: str, enabled: bool) -> list[str]:
        """Enable or disable a plugin; return the ids whose setting changed.

        Disabling also disables, first, every enabled plugin that depends on it.
        Builtin plugins cannot be disabled.
        """
        logger = get_logger()
        affected: list[str] = []
        plugin = self._plugins.get(plugin_id)
        if plugin is None:
            return affected
        meta = plugin.metadata

        if enabled:
            if meta.plugin_type is PluginType.BUILTIN or plugin.state is PluginState.BROKEN:
                return affected
            if not meta.is_enabled:
                meta.is_enabled = True
                plugin.state = PluginState.UNLOADED
                affected.append(plugin_id)
                self.load_plugin(plugin_id)
                self._save_user_manifest()
            return affected

        if meta.plugin_type is PluginType.BUILTIN:
            logger.warning("Cannot disable Built-in plugin: %s", plugin_id)
            return affected
        self._disable_recursive(plugin_id, affected, set())
        if affected:
            logger.info("Cascading disable affected %d plugins.", len(affected))
            self._save_user_manifest()
        return affected

    def _disable_recursive(self, target_id: str, affected: list[str], visited: set[str]) -> None:
        if target_id in visited:
            return
        visited.add(target_id)
        for other_id, other in sorted(self._plugins.items()):
            if other.metadata.is_enabled and target_id in other.metadata.dependencies:
                self._disable_recursive(other_id, affected, visited)

        plugin = self._plugins.get(target_id)
        if plugin is None or not plugin.metadata.is_enabled:
            return
        if plugin.state is PluginState.LOADED:
            self._unload(plugin)
        plugin.metadata.is_enabled = False
        plugin.state = PluginState.DISABLED
        affected.append(target_id)

    # ------------------------------------------------------------------
    # Installing
    # ------------------------------------------------------------------

    def _register_third_party(self, plugin: PluginInstance, method: InstallMethod) -> None:
        meta = plugin.metadata
        meta.plugin_type = PluginType.THIRD_PARTY
        meta.install_method = method
        meta.is_enabled = True
        self._plugins[meta.id] = plugin
        ok = check_integrity(plugin)
        self._save_user_manifest()
        if ok:
            plugin.state = PluginState.UNLOADED
            self.load_plugin(meta.id)
        else:
            plugin.state = PluginState.BROKEN

    def install_from_path(self, external_path: str | Path) -> bool:
        """Link the plugin directory at ``external_path`` in place and try to load it."""
        logger = get_logger()
        directory = Path(external_path)
        info = read_plugin_json(directory)
        if info is None:
            logger.error("Invalid plugin directory: %s", external_path)
            return False
        plugin_id = info.metadata.id
        if plugin_id in self._plugins:
            logger.error("Plugin ID collision: %s", plugin_id)
            return False
        info.metadata.root_path = directory.resolve(strict=False)
        self._register_third_party(info, InstallMethod.LINK)
        return True

    def install_from_package(self, zip_path: str | Path) -> bool:
        """Unpack a zip package into the user directory and try to load it.

        An installed third-party plugin with the same id is replaced; a builtin
        one is not.
        """
        logger = get_logger()
        with tempfile.TemporaryDirectory(prefix="plugin_install_") as temp:
            temp_dir = Path(temp)
            try:
                with zipfile.ZipFile(zip_path) as archive:
                    archive.extractall(temp_dir)
            except (zipfile.BadZipFile, OSError) as exc:
                logger.error("Failed to extract package %s: %s", zip_path, exc)
                return False

            info = read_plugin_json(temp_dir)
            if info is None:
                return False
            plugin_id = info.metadata.id

            existing = self._plugins.get(plugin_id)
            if existing is not None:
                if existing.metadata.plugin_type is PluginType.BUILTIN:
                    return False
                self.uninstall_plugin(plugin_id)

            dest = self._user_dir / plugin_id
            try:
                shutil.copytree(temp_dir, dest, dirs_exist_ok=True)
            except OSError as exc:
                logger.error("Failed to copy plugin files to %s: %s", dest, exc)
                return False

        plugin = read_plugin_json(dest)
        if plugin is None:
            return False
        plugin.metadata.root_path = dest.resolve(strict=False)
        self._register_third_party(plugin, InstallMethod.COPY)
        return True

    def uninstall_plugin(self, plugin_id: str) -> bool:
        """Unload and forget a third-party plugin, deleting copied files."""
        plugin = self._plugins.get(plugin_id)
        if plugin is None or plugin.metadata.plugin_type is PluginType.BUILTIN:
            return False
        if plugin.state is PluginState.LOADED:
            self._unload(plugin)
        if plugin.metadata.install_method is InstallMethod.COPY:
            root = Path(plugin.metadata.root_path)
            try:
                if root.exists():
                    shutil.rmtree(root)
            except OSError:
                get_logger().error("Failed to remove plugin files: %s", root)
                return False
        del self._plugins[plugin_id]
        self._save_user_manifest()
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_plugin(self, plugin_id: str) -> PluginInstance | None:
        """Return the plugin with ``plugin_id``, or None."""
        return self._plugins.get(plugin_id)

    def all_plugins(self) -> list[PluginInstance]:
        """Return every known plugin, ordered by id."""
        return [plugin for _, plugin in sorted(self._plugins.items())]