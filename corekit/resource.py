"""Cached loading of resources through mounted aliases and per-extension loaders."""

from __future__ import annotations

import abc
import sys
import threading
from pathlib import Path
from typing import Callable, TypeVar

from corekit.applog import get_logger

__all__ = ["ResourceBase", "ResourceManager", "Loader"]

R = TypeVar("R", bound="ResourceBase")


class ResourceBase(abc.ABC):
    """A loaded resource; its name is the logical path it was requested by."""

    _name: str = ""

    @property
    def name(self) -> str:
        """Logical path the resource was loaded from."""
        return self._name

    @abc.abstractmethod
    def size_in_bytes(self) -> int:
        """Memory taken by the resource, for statistics."""


Loader = Callable[[Path], "ResourceBase | None"]


def _clean_alias(alias: str) -> str:
    if alias.endswith("://"):
        return alias[:-3]
    if alias.endswith(":"):
        return alias[:-1]
    return alias


class ResourceManager:
    """Resolves logical paths such as ``assets://img/a.png`` and caches what loads."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._aliases: dict[str, Path] = {}
        self._resources: dict[str, ResourceBase] = {}
        self._loaders: dict[str, Loader] = {}

    def init(self) -> bool:
        """Start from an empty state."""
        self.clear_all()
        return True

    def shutdown(self) -> None:
        """Drop every resource, loader and alias."""
        self.clear_all()

    def mount(self, alias: str, physical_path: str | Path) -> None:
        """Map ``alias`` (with or without a trailing ``://`` or ``:``) to a directory."""
        clean = _clean_alias(alias)
        target = Path(physical_path).absolute()
        with self._lock:
            self._aliases[clean] = target
        get_logger().info("[Resource Manager]: Mounted '%s' -> %s", clean, target)

    def register_loader(self, extension: str, loader: Loader) -> None:
        """Use ``loader`` for files whose suffix is ``extension`` (e.g. ``.png``)."""
        with self._lock:
            self._loaders[extension] = loader

    def resolve_path(self, logical_path: str) -> Path | None:
        """Turn a logical path into a physical one, or None if it cannot be found."""
        with self._lock:
            prefix, sep, suffix = logical_path.partition("://")
            if sep:
                base = self._aliases.get(prefix)
                if base is not None:
                    return base / suffix
        direct = Path(logical_path)
        if direct.exists():
            return direct.absolute()
        return None

    def _load_from_disk(self, path: Path) -> ResourceBase | None:
        logger = get_logger()
        ext = path.suffix
        with self._lock:
            loader = self._loaders.get(ext)
        if loader is None:
            logger.error("[Resource Manager] No loader registered for extension: %s", ext)
            return None
        logger.info("[Resource Manager] Loading from disk: %s", path)
        try:
            return loader(path)
        except Exception as exc:
            logger.error("[Resource Manager] Exception loading %s: %s", path, exc)
            return None

    def get(self, logical_path: str, kind: type[R] = ResourceBase) -> R | None:  # type: ignore[assignment]
        """Return the resource at ``logical_path``, loading it on first use.

        None is returned when the path cannot be resolved, nothing can load it,
        or the resource is not an instance of ``kind``.
        """
        physical = self.resolve_path(logical_path)
        if physical is None:
            get_logger().error(
                "[Resource Manager]: Error: Path resolve failed for %s", logical_path
            )
            return None
        key = str(physical)
        with self._lock:
            resource = self._resources.get(key)
            if resource is None:
                resource = self._load_from_disk(physical)
                if resource is None:
                    return None
                resource._name = logical_path
                self._resources[key] = resource
        return resource if isinstance(resource, kind) else None

    def reload(self, logical_path: str) -> None:
        """Load the resource again from disk, replacing the cached one."""
        physical = self.resolve_path(logical_path)
        if physical is None:
            return
        key = str(physical)
        with self._lock:
            self._resources.pop(key, None)
            resource = self._load_from_disk(physical)
            if resource is not None:
                resource._name = logical_path
                self._resources[key] = resource

    def unload_unused(self) -> int:
        """Drop cached resources nobody else refers to; return how many."""
        logger = get_logger()
        released = 0
        with self._lock:
            for key in list(self._resources):
                # Only the cache and the call argument hold it.
                if sys.getrefcount(self._resources[key]) <= 2:
                    resource = self._resources.pop(key)
                    logger.info(
                        "[Resource Manager]: Garbage Collector releasing: %s", resource.name
                    )
                    del resource
                    released += 1
        if released:
            logger.info(
                "[Resource Manager]: Garbage Collector finished. Released %d resources.",
                released,
            )
        return released

    def clear_all(self) -> None:
        """Drop every resource, loader and alias."""
        with self._lock:
            self._resources.clear()
            self._loaders.clear()
            self._aliases.clear()