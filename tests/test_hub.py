from __future__ import annotations

import threading

import pytest

from factstream.hub.broadcast import BroadcastHub
from factstream.hub.errors import HubClosed, InvalidPayload, QueueOverflow, ResourceExhausted
from factstream.hub.subscriber import OverflowPolicy, SubscriberState


def _drain(subscriber) -> list:
    items = []
    while (envelope := subscriber.poll()) is not None:
        items.append(envelope)
    return items


def test_sequences_increase_by_exactly_one() -> None:
    hub = BroadcastHub()
    sequences = [hub.publish(f"fact-{i}") for i in range(50)]
    assert sequences == list(range(1, 51))


def test_capacity_two_snapshot_holds_last_two() -> None:
    hub = BroadcastHub(history_capacity=2)
    for payload in ("a", "b", "c"):
        hub.publish(payload)

    _, snapshot = hub.subscribe()
    assert [envelope.payload for envelope in snapshot] == ["b", "c"]


def test_snapshot_after_many_publishes_is_last_n_in_order() -> None:
    hub = BroadcastHub(history_capacity=4)
    for i in range(11):
        hub.publish(i)

    _, snapshot = hub.subscribe()
    assert [envelope.payload for envelope in snapshot] == [7, 8, 9, 10]
    assert [envelope.sequence for envelope in snapshot] == [8, 9, 10, 11]


def test_subscribe_then_publish_delivers_live_only() -> None:
    hub = BroadcastHub()
    subscriber, snapshot = hub.subscribe()
    assert snapshot == []

    hub.publish("x")

    live = _drain(subscriber)
    assert [envelope.payload for envelope in live] == ["x"]


def test_event_is_in_snapshot_or_live_never_both() -> None:
    hub = BroadcastHub()
    hub.publish("before")
    subscriber, snapshot = hub.subscribe()
    hub.publish("after")

    seen = [envelope.sequence for envelope in snapshot] + [envelope.sequence for envelope in _drain(subscriber)]
    assert seen == [1, 2]


def test_subscribe_after_sequence_limits_replay() -> None:
    hub = BroadcastHub(history_capacity=10)
    for payload in "abcde":
        hub.publish(payload)

    _, snapshot = hub.subscribe(after_sequence=3)
    assert [envelope.payload for envelope in snapshot] == ["d", "e"]


def test_continuous_subscriber_receives_both_events_in_order() -> None:
    hub = BroadcastHub()
    first, _ = hub.subscribe()
    second, _ = hub.subscribe()
    hub.publish("one")
    hub.publish("two")

    for subscriber in (first, second):
        assert [envelope.payload for envelope in _drain(subscriber)] == ["one", "two"]


def test_drop_oldest_never_blocks_publish() -> None:
    hub = BroadcastHub(queue_capacity=3, overflow_policy=OverflowPolicy.DROP_OLDEST)
    slow, _ = hub.subscribe()

    for i in range(1000):
        hub.publish(i)

    assert hub.snapshot() == 1
    assert slow.dropped == 997
    assert [envelope.payload for envelope in _drain(slow)] == [997, 998, 999]


def test_disconnect_policy_closes_slow_subscriber() -> None:
    hub = BroadcastHub(queue_capacity=2, overflow_policy="disconnect")
    slow, _ = hub.subscribe()
    fast, _ = hub.subscribe()

    for i in range(2):
        hub.publish(i)
        fast.poll()
    assert hub.snapshot() == 2

    sequence = hub.publish("overflow")

    assert sequence == 3
    assert slow.state is SubscriberState.CLOSED
    assert isinstance(slow.last_error, QueueOverflow)
    assert slow.pending == 0
    assert hub.snapshot() == 1
    assert [envelope.payload for envelope in _drain(fast)] == ["overflow"]


def test_unsubscribe_is_idempotent() -> None:
    hub = BroadcastHub()
    subscriber, _ = hub.subscribe()

    assert hub.unsubscribe(subscriber) is True
    assert hub.unsubscribe(subscriber) is False
    assert hub.snapshot() == 0
    assert subscriber.state is SubscriberState.CLOSED

    hub.publish("ignored")
    assert subscriber.poll() is None


def test_unsubscribe_with_pending_items_drains() -> None:
    hub = BroadcastHub()
    subscriber, _ = hub.subscribe()
    hub.publish("pending")

    hub.unsubscribe(subscriber)

    assert subscriber.state is SubscriberState.DRAINING
    assert subscriber.poll().payload == "pending"


def test_max_subscribers_raises_resource_exhausted() -> None:
    hub = BroadcastHub(max_subscribers=2)
    first, _ = hub.subscribe()
    hub.subscribe()

    with pytest.raises(ResourceExhausted):
        hub.subscribe()

    hub.unsubscribe(first)
    hub.subscribe()
    assert hub.snapshot() == 2


def test_close_drains_subscribers_and_rejects_new_work() -> None:
    hub = BroadcastHub()
    idle, _ = hub.subscribe()
    busy, _ = hub.subscribe()
    busy_item = hub.publish("last")
    idle.poll()

    hub.close()
    hub.close()

    assert hub.closed
    assert hub.snapshot() == 0
    assert idle.state is SubscriberState.CLOSED
    assert busy.state is SubscriberState.DRAINING
    assert busy.poll().sequence == busy_item
    with pytest.raises(HubClosed):
        hub.subscribe()
    with pytest.raises(HubClosed):
        hub.publish("late")


def test_stats_reports_hub_state() -> None:
    hub = BroadcastHub(history_capacity=2, queue_capacity=8, max_subscribers=10)
    hub.subscribe()
    for payload in "abc":
        hub.publish(payload)

    stats = hub.stats()
    assert stats["clients"] == 1
    assert stats["history_size"] == 2
    assert stats["history_capacity"] == 2
    assert stats["last_sequence"] == 3
    assert stats["overflow_policy"] == "drop_oldest"
    assert stats["queue_capacity"] == 8
    assert stats["max_subscribers"] == 10


def test_concurrent_publishers_get_unique_sequences() -> None:
    hub = BroadcastHub(history_capacity=16, queue_capacity=5000)
    subscriber, _ = hub.subscribe()
    results: list[list[int]] = [[] for _ in range(8)]

    def produce(slot: int) -> None:
        for i in range(250):
            results[slot].append(hub.publish((slot, i)))

    threads = [threading.Thread(target=produce, args=(slot,)) for slot in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assigned = sorted(seq for chunk in results for seq in chunk)
    assert assigned == list(range(1, 2001))
    for chunk in results:
        assert chunk == sorted(chunk)

    received = [envelope.sequence for envelope in _drain(subscriber)]
    assert received == list(range(1, 2001))
    assert len(hub.history()) == 16


def test_concurrent_subscribe_and_publish_sees_every_event_once() -> None:
    hub = BroadcastHub(history_capacity=1000, queue_capacity=1000)
    subscribers = []
    stop = threading.Event()

    def connect() -> None:
        while not stop.is_set() and len(subscribers) < 50:
            subscribers.append(hub.subscribe())

    thread = threading.Thread(target=connect)
    thread.start()
    for i in range(500):
        hub.publish(i)
    stop.set()
    thread.join()

    for subscriber, snapshot in subscribers:
        seen = [envelope.sequence for envelope in snapshot] + [envelope.sequence for envelope in _drain(subscriber)]
        assert seen == list(range(1, 501))


def test_invalid_configuration_rejected() -> None:
    with pytest.raises(ValueError):
        BroadcastHub(queue_capacity=0)
    with pytest.raises(ValueError):
        BroadcastHub(max_subscribers=0)
    with pytest.raises(ValueError):
        BroadcastHub(overflow_policy="block")


def test_unserialisable_payload_rejected_before_history() -> None:
    hub = BroadcastHub()
    subscriber, _ = hub.subscribe()

    with pytest.raises(InvalidPayload):
        hub.publish({"obj": object()})

    assert hub.history() == []
    assert subscriber.poll() is None
    assert hub.publish("next") == 1


def test_payload_is_stored_in_json_form() -> None:
    hub = BroadcastHub()
    hub.publish({"pair": (1, 2)})
    _, snapshot = hub.subscribe()
    assert snapshot[0].payload == {"pair": [1, 2]}
