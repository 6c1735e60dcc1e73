"""Topic-based publish/subscribe with callbacks run on a background worker pool."""

from __future__ import annotations

import itertools
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from corekit.applog import get_logger

__all__ = ["EventManager", "Callback"]

E = TypeVar("E")

Callback = Callable[[Any], None]


@dataclass(frozen=True)
class _Subscription:
    topic: str
    event_type: type


class EventManager:
    """Delivers events to the callbacks subscribed to their topic and exact type.

    Subscription ids start at 1, so an ``excluded_id`` of 0 excludes nobody.
    """

    def __init__(self, max_workers: int = 1) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._lock = threading.RLock()
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._subscribers: dict[str, dict[type, dict[int, Callback]]] = {}
        self._lookup: dict[int, _Subscription] = {}
        self._ids = itertools.count(1)

    def init(self) -> bool:
        """Start the worker pool that runs callbacks."""
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="event"
                )
        return True

    def shutdown(self) -> None:
        """Wait for pending deliveries, stop the pool and drop every subscription."""
        with self._lock:
            executor, self._executor = self._executor, None
            self._subscribers.clear()
            self._lookup.clear()
        if executor is not None:
            executor.shutdown(wait=True)

    def subscribe(
        self, event_type: type[E], callback: Callable[[E], None], topic: str = ""
    ) -> int:
        """Call ``callback`` for events of exactly ``event_type`` on ``topic``.

        Returns the subscription id.
        """
        with self._lock:
            subscription_id = next(self._ids)
            handlers = self._subscribers.setdefault(topic, {}).setdefault(event_type, {})
            handlers[subscription_id] = callback
            self._lookup[subscription_id] = _Subscription(topic, event_type)
        return subscription_id

    def publish(
        self, event: Any, topic: str = "", excluded_id: int = 0
    ) -> Future[None] | None:
        """Hand ``event`` to its subscribers on the worker pool.

        Returns the future of the delivery, or None when nobody is to be
        called or the delivery could not be queued.
        """
        logger = get_logger()
        with self._lock:
            handlers = self._subscribers.get(topic, {}).get(type(event), {})
            callbacks = [
                callback
                for subscription_id, callback in handlers.items()
                if subscription_id != excluded_id and callback is not None
            ]
            executor = self._executor
        if not callbacks:
            return None
        if executor is None:
            logger.error("[Event Manager]: Failed to enqueue publish task: not initialized")
            return None
        try:
            return executor.submit(self._dispatch, callbacks, event)
        except RuntimeError as exc:
            logger.error("[Event Manager]: Failed to enqueue publish task: %s", exc)
            return None

    @staticmethod
    def _dispatch(callbacks: list[Callback], event: Any) -> None:
        for callback in callbacks:
            try:
                callback(event)
            except Exception as exc:
                get_logger().error("[Event Manager]: Exception in async callback: %s", exc)

    def unsubscribe(self, event_type: type, subscription_id: int) -> bool:
        """Remove a subscription; return whether it was removed.

        A subscription is only removed when ``event_type`` is the type it was
        made for; otherwise it is kept and an error is logged.
        """
        with self._lock:
            entry = self._lookup.get(subscription_id)
            if entry is None:
                return False
            if entry.event_type is not event_type:
                get_logger().error(
                    "[Event Manager]: Type mismatch when unsubscribing id %d. "
                    "expected='%s', request='%s'",
                    subscription_id,
                    entry.event_type.__qualname__,
                    event_type.__qualname__,
                )
                return False
            del self._lookup[subscription_id]
            by_type = self._subscribers.get(entry.topic)
            if by_type is None:
                return True
            handlers = by_type.get(event_type)
            if handlers is not None:
                handlers.pop(subscription_id, None)
                if not handlers:
                    del by_type[event_type]
            if not by_type:
                del self._subscribers[entry.topic]
            return True