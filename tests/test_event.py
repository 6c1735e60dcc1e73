import threading

import pytest

from corekit.event import EventManager


class Ping:
    def __init__(self, value):
        self.value = value


class SubPing(Ping):
    pass


class Pong:
    pass


@pytest.fixture
def manager():
    events = EventManager()
    events.init()
    yield events
    events.shutdown()


def test_publish_delivers_to_subscriber(manager):
    received = []
    manager.subscribe(Ping, lambda e: received.append(e.value))
    future = manager.publish(Ping(7))
    future.result(timeout=5)
    assert received == [7]


def test_topics_are_isolated(manager):
    received = []
    manager.subscribe(Ping, lambda e: received.append(("a", e.value)), topic="a")
    manager.subscribe(Ping, lambda e: received.append(("b", e.value)), topic="b")
    manager.publish(Ping(1), topic="a").result(timeout=5)
    assert received == [("a", 1)]


def test_type_must_match_exactly(manager):
    received = []
    manager.subscribe(Ping, received.append)
    assert manager.publish(SubPing(1)) is None
    assert manager.publish(Pong()) is None
    assert received == []


def test_excluded_id_is_skipped(manager):
    received = []
    first = manager.subscribe(Ping, lambda e: received.append("first"))
    manager.subscribe(Ping, lambda e: received.append("second"))
    manager.publish(Ping(0), excluded_id=first).result(timeout=5)
    assert received == ["second"]


def test_only_excluded_subscriber_means_nothing_published(manager):
    only = manager.subscribe(Ping, lambda e: None)
    assert manager.publish(Ping(0), excluded_id=only) is None


def test_subscription_ids_are_unique_and_increasing(manager):
    ids = [manager.subscribe(Ping, lambda e: None) for _ in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5
    assert min(ids) >= 1


def test_unsubscribe_stops_delivery(manager):
    received = []
    sub = manager.subscribe(Ping, received.append)
    assert manager.unsubscribe(Ping, sub) is True
    assert manager.publish(Ping(1)) is None
    assert received == []
    assert manager.unsubscribe(Ping, sub) is False


def test_unsubscribe_with_wrong_type_keeps_subscription(manager):
    received = []
    sub = manager.subscribe(Ping, lambda e: received.append(e.value))
    assert manager.unsubscribe(Pong, sub) is False
    manager.publish(Ping(3)).result(timeout=5)
    assert received == [3]


def test_failing_callback_does_not_stop_others(manager):
    received = []

    def boom(event):
        raise RuntimeError("bad")

    manager.subscribe(Ping, boom)
    manager.subscribe(Ping, lambda e: received.append(e.value))
    manager.publish(Ping(5)).result(timeout=5)
    assert received == [5]


def test_callbacks_run_off_the_calling_thread(manager):
    threads = []
    manager.subscribe(Ping, lambda e: threads.append(threading.get_ident()))
    manager.publish(Ping(0)).result(timeout=5)
    assert threads and threads[0] != threading.get_ident()


def test_publish_before_init_is_not_delivered():
    events = EventManager()
    received = []
    events.subscribe(Ping, received.append)
    assert events.publish(Ping(1)) is None
    assert received == []


def test_shutdown_drops_subscriptions():
    events = EventManager()
    events.init()
    received = []
    sub = events.subscribe(Ping, received.append)
    events.shutdown()
    events.init()
    try:
        assert events.publish(Ping(1)) is None
        assert events.unsubscribe(Ping, sub) is False
    finally:
        events.shutdown()
    assert received == []


def test_invalid_worker_count():
    with pytest.raises(ValueError):
        EventManager(max_workers=0)