"""Registry of application services, looked up by interface type and name."""

from __future__ import annotations

import abc
import threading
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from corekit.applog import get_logger

__all__ = ["ServiceBase", "ServiceManager"]

T = TypeVar("T")


class ServiceBase(abc.ABC):
    """Base for services whose lifecycle the manager takes part in."""

    def init(self) -> bool:
        """Prepare the service; return whether it is ready."""
        return True

    def shutdown(self) -> None:
        """Release the service's resources. Does nothing by default."""
        return None

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Name of the service."""


@dataclass
class _ServiceEntry:
    instance: Any
    shutdown: Callable[[], None]


def _noop() -> None:
    return None


def _make_entry(interface: type, instance: Any) -> _ServiceEntry:
    if instance is not None and not isinstance(instance, interface):
        raise TypeError(
            f"{type(instance).__qualname__} does not implement {interface.__qualname__}"
        )
    if instance is not None and issubclass(interface, ServiceBase):
        return _ServiceEntry(instance, instance.shutdown)
    return _ServiceEntry(instance, _noop)


class ServiceManager:
    """Holds one service per interface type, plus named services per interface."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._services: dict[type, _ServiceEntry] = {}
        self._named: dict[tuple[type, str], _ServiceEntry] = {}

    def init(self) -> bool:
        """Forget every registered service."""
        with self._lock:
            self._services.clear()
            self._named.clear()
        return True

    def shutdown(self) -> None:
        """Shut down named services, then typed services, and clear both."""
        logger = get_logger()
        with self._lock:
            for (interface, name), entry in self._named.items():
                try:
                    entry.shutdown()
                except Exception:
                    logger.error(
                        "[Service Manager]: Error shutting down named service: %s::%s",
                        interface.__qualname__,
                        name,
                    )
            for interface, entry in self._services.items():
                try:
                    entry.shutdown()
                except Exception:
                    logger.error(
                        "[Service Manager]: Error shutting down service: %s",
                        interface.__qualname__,
                    )
            self._named.clear()
            self._services.clear()

    def register_service(self, interface: type[T], instance: T) -> None:
        """Register ``instance`` for ``interface``; an existing one is kept."""
        with self._lock:
            if interface in self._services:
                get_logger().warning(
                    "[Service Manager]: Service already registered: %s",
                    interface.__qualname__,
                )
                return
            self._services[interface] = _make_entry(interface, instance)

    def get_service(self, interface: type[T]) -> T | None:
        """Return the service registered for ``interface``, or None."""
        with self._lock:
            entry = self._services.get(interface)
            return None if entry is None else entry.instance

    def unregister_service(self, interface: type) -> None:
        """Remove the service for ``interface`` without shutting it down."""
        with self._lock:
            self._services.pop(interface, None)

    def register_named_service(self, interface: type[T], name: str, instance: T) -> None:
        """Register ``instance`` under ``name`` for ``interface``, replacing any other."""
        with self._lock:
            self._named[(interface, name)] = _make_entry(interface, instance)

    def get_named_service(self, interface: type[T], name: str) -> T | None:
        """Return the service named ``name`` for ``interface``, or None."""
        with self._lock:
            entry = self._named.get((interface, name))
            return None if entry is None else entry.instance

    def unregister_named_service(self, interface: type, name: str) -> None:
        """Remove the named service without shutting it down."""
        with self._lock:
            self._named.pop((interface, name), None)