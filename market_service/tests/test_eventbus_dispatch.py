from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict

import pytest
from confluent_kafka import TopicPartition

from common.eventbus.core import Event, RetryDelays
from common.eventbus import kafka as kafka_module
from common.eventbus.kafka import KafkaEventBus, RetryGate
from common.eventbus.topics import TOPIC_ITEM_REDEEMED


class RecordingBus(KafkaEventBus):
    """Producer 없이 dispatch 의 재시도/DLQ 라우팅만 검증한다."""

    def __init__(self) -> None:
        self.published: list[tuple[str, Event]] = []
        self.fail_publish = False
        self._brokers = "localhost:9092"

    def publish(self, topic: str, event: Event) -> None:
        if self.fail_publish:
            raise RuntimeError("queue full")
        self.published.append((topic, event))


def _failing_handler(evt: Event) -> None:
    raise RuntimeError("smtp down")


def test_successful_handler_commits_without_republishing() -> None:
    bus = RecordingBus()
    handled: list[str] = []

    ok = bus.dispatch(Event(id="e1", payload={}), TOPIC_ITEM_REDEEMED, lambda e: handled.append(e.id))

    assert ok is True
    assert handled == ["e1"]
    assert bus.published == []


def test_failed_handler_schedules_first_retry_with_delay() -> None:
    bus = RecordingBus()
    before = time.time()

    ok = bus.dispatch(Event(id="e1", payload={}), TOPIC_ITEM_REDEEMED, _failing_handler)

    assert ok is True
    topic, evt = bus.published[0]
    assert topic == "rewear.item.redeemed.retry.1"
    assert evt.retry == 1
    assert evt.last_error == "smtp down"
    assert evt.not_before >= before + RetryDelays[0]


def test_exhausted_retries_go_to_dlq() -> None:
    bus = RecordingBus()
    evt = Event(id="e1", payload={}, retry=len(RetryDelays))

    bus.dispatch(evt, TOPIC_ITEM_REDEEMED, _failing_handler)

    assert bus.published[0][0] == "rewear.item.redeemed.dlq"


def test_dispatch_reports_failure_when_retry_cannot_be_published() -> None:
    bus = RecordingBus()
    bus.fail_publish = True

    ok = bus.dispatch(Event(id="e1", payload={}), TOPIC_ITEM_REDEEMED, _failing_handler)

    assert ok is False


class FakeMessage:
    def __init__(self, topic: str, partition: int, offset: int, evt: Event) -> None:
        self._topic = topic
        self._partition = partition
        self._offset = offset
        self._value = json.dumps(asdict(evt)).encode("utf-8")

    def topic(self) -> str:
        return self._topic

    def partition(self) -> int:
        return self._partition

    def offset(self) -> int:
        return self._offset

    def value(self) -> bytes:
        return self._value

    def error(self) -> None:
        return None


class FakeConsumer:
    """파티션 하나짜리 로그를 흉내 낸다. seek 은 다음 poll 위치를 offset 으로 되돌린다."""

    def __init__(self, messages: list[FakeMessage]) -> None:
        self._log = messages
        self._position = 0
        self.paused = False
        self.polls_while_paused = 0
        self.calls: list[tuple[str, int]] = []
        self.committed: list[int] = []
        self.closed = False

    def subscribe(self, topics: list[str], on_revoke=None) -> None:  # type: ignore[no-untyped-def]
        self.topics = topics

    def poll(self, timeout: float) -> FakeMessage | None:
        if self.paused:
            self.polls_while_paused += 1
            time.sleep(0.01)
            return None
        if self._position >= len(self._log):
            time.sleep(0.01)
            return None
        msg = self._log[self._position]
        self._position += 1
        return msg

    def pause(self, partitions: list[TopicPartition]) -> None:
        self.calls.append(("pause", partitions[0].offset))
        self.paused = True

    def seek(self, partition: TopicPartition) -> None:
        self.calls.append(("seek", partition.offset))
        self._position = partition.offset

    def resume(self, partitions: list[TopicPartition]) -> None:
        self.calls.append(("resume", partitions[0].offset))
        self.paused = False

    def commit(self, message: FakeMessage, asynchronous: bool = True) -> None:
        self.committed.append(message.offset())

    def close(self) -> None:
        self.closed = True


def test_retry_gate_resumes_partition_only_when_due() -> None:
    consumer = FakeConsumer([])
    gate = RetryGate(consumer)  # type: ignore[arg-type]
    msg = FakeMessage("rewear.item.redeemed.retry.3", 0, 7, Event(id="e1", payload={}))

    assert gate.defer(msg, not_before=1_000.0) is True  # type: ignore[arg-type]
    assert gate.is_deferred(msg) is True  # type: ignore[arg-type]
    assert consumer.calls == [("pause", 7), ("seek", 7)]

    gate.release_due(999.0)
    assert consumer.paused is True

    gate.release_due(1_000.0)
    assert consumer.paused is False
    assert consumer.calls[-1] == ("resume", 7)
    assert gate.is_deferred(msg) is False  # type: ignore[arg-type]


def test_retry_gate_forgets_revoked_partitions() -> None:
    consumer = FakeConsumer([])
    gate = RetryGate(consumer)  # type: ignore[arg-type]
    msg = FakeMessage("rewear.item.redeemed.retry.1", 2, 0, Event(id="e1", payload={}))
    gate.defer(msg, not_before=time.time() + 600)  # type: ignore[arg-type]

    gate.forget([TopicPartition("rewear.item.redeemed.retry.1", 2)])

    assert gate.is_deferred(msg) is False  # type: ignore[arg-type]
    gate.release_due(time.time() + 601)
    assert ("resume", 0) not in consumer.calls


def test_subscribe_keeps_polling_until_retry_event_is_due(monkeypatch: pytest.MonkeyPatch) -> None:
    not_before = time.time() + 0.3
    retry_evt = Event(id="e1", payload={}, retry=1, not_before=not_before)
    consumer = FakeConsumer([FakeMessage("rewear.item.redeemed.retry.1", 0, 0, retry_evt)])
    monkeypatch.setattr(kafka_module, "Consumer", lambda config: consumer)

    bus = RecordingBus()
    stop_event = threading.Event()
    handled_at: list[float] = []

    def _handler(evt: Event) -> None:
        handled_at.append(time.time())
        stop_event.set()

    worker = threading.Thread(
        target=bus.subscribe,
        args=("rewear-test", TOPIC_ITEM_REDEEMED, _handler),
        kwargs={"poll_timeout": 0.01, "stop_event": stop_event},
    )
    worker.start()
    worker.join(timeout=5.0)
    stop_event.set()

    assert len(handled_at) == 1
    assert handled_at[0] >= not_before
    assert consumer.polls_while_paused > 0
    assert consumer.calls == [("pause", 0), ("seek", 0), ("resume", 0)]
    assert consumer.committed == [0]
    assert consumer.closed is True


def test_subscribe_stops_while_retry_event_is_deferred(monkeypatch: pytest.MonkeyPatch) -> None:
    retry_evt = Event(id="e1", payload={}, retry=3, not_before=time.time() + 600)
    consumer = FakeConsumer([FakeMessage("rewear.item.redeemed.retry.3", 0, 0, retry_evt)])
    monkeypatch.setattr(kafka_module, "Consumer", lambda config: consumer)

    bus = RecordingBus()
    stop_event = threading.Event()
    handled: list[str] = []
    worker = threading.Thread(
        target=bus.subscribe,
        args=("rewear-test", TOPIC_ITEM_REDEEMED, lambda evt: handled.append(evt.id)),
        kwargs={"poll_timeout": 0.01, "stop_event": stop_event},
    )
    worker.start()
    deadline = time.time() + 5.0
    while consumer.polls_while_paused == 0 and time.time() < deadline:
        time.sleep(0.01)
    stop_event.set()
    worker.join(timeout=5.0)

    assert not worker.is_alive()
    assert handled == []
    assert consumer.committed == []
    assert consumer.closed is True
