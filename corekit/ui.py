"""Registry of named UI anchors and of numeric widget ids."""

from __future__ import annotations

import itertools
import threading
from typing import Any, TypeVar

__all__ = ["FIRST_ID", "UNKNOWN_NAME", "UiRegistry"]

T = TypeVar("T")

FIRST_ID = 6000
UNKNOWN_NAME = "Anonymous_or_Unknown"


class UiRegistry:
    """Maps anchor names to UI objects and widget names to unique numeric ids."""

    def __init__(self, first_id: int = FIRST_ID) -> None:
        self._first_id = first_id
        self._lock = threading.RLock()
        self._anchors: dict[str, Any] = {}
        self._name_to_id: dict[str, int] = {}
        self._id_to_name: dict[int, str] = {}
        self._next_ids = itertools.count(first_id)

    def init(self) -> bool:
        """Start numbering ids from the first id again."""
        with self._lock:
            self._next_ids = itertools.count(self._first_id)
        return True

    def shutdown(self) -> None:
        """Forget every anchor and every named id; numbering restarts at 0."""
        with self._lock:
            self._anchors.clear()
            self._name_to_id.clear()
            self._id_to_name.clear()
            self._next_ids = itertools.count(0)

    def register_anchor(self, anchor_id: str, obj: Any) -> None:
        """Store ``obj`` under ``anchor_id``; None is ignored."""
        if obj is None:
            return
        with self._lock:
            self._anchors[anchor_id] = obj

    def unregister_anchor(self, anchor_id: str) -> None:
        """Remove the anchor, if any."""
        with self._lock:
            self._anchors.pop(anchor_id, None)

    def get_anchor(self, anchor_id: str, kind: type[T] = object) -> T | None:  # type: ignore[assignment]
        """Return the anchor if it exists and is an instance of ``kind``."""
        with self._lock:
            obj = self._anchors.get(anchor_id)
        return obj if isinstance(obj, kind) else None

    def get_id(self, name: str) -> int:
        """Return the id for ``name``, assigning a new one on first use."""
        with self._lock:
            existing = self._name_to_id.get(name)
            if existing is not None:
                return existing
            new_id = next(self._next_ids)
            self._name_to_id[name] = new_id
            self._id_to_name[new_id] = name
            return new_id

    def remove_id(self, name: str) -> bool:
        """Forget the id of ``name``; return whether it had one."""
        with self._lock:
            widget_id = self._name_to_id.pop(name, None)
            if widget_id is None:
                return False
            self._id_to_name.pop(widget_id, None)
            return True

    def create_anonymous_id(self) -> int:
        """Return a fresh id that is bound to no name."""
        with self._lock:
            return next(self._next_ids)

    def get_name(self, widget_id: int) -> str:
        """Return the name bound to ``widget_id``, or ``UNKNOWN_NAME``."""
        with self._lock:
            return self._id_to_name.get(widget_id, UNKNOWN_NAME)