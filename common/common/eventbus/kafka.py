from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import asdict
from typing import Callable

from confluent_kafka import Consumer, KafkaError, KafkaException, Message, Producer, TopicPartition

from .config import get_brokers
from .core import Event, MaxRetryExceededError, RetryDelays, Topic
from .helpers import decode_event

logger = logging.getLogger(__name__)


class KafkaEventBus:
    """Kafka 기반 EventBus.

    핸들러가 실패하면 다음 재시도 토픽으로 다시 발행하고, 재시도를 모두 쓰면 DLQ 로 보낸다.
    """

    def __init__(self, brokers: str) -> None:
        self._producer = Producer({"bootstrap.servers": brokers})
        self._brokers = brokers

    def close(self) -> None:
        self._producer.flush(5.0)

    # 발행 -----------------------------------------------------------------
    def publish(self, topic: str, event: Event) -> None:
        """이벤트를 비동기로 발행한다. produce 는 로컬 버퍼에만 쓰고 바로 돌아온다."""

        payload = json.dumps(asdict(event), ensure_ascii=False).encode("utf-8")

        def _delivery_callback(err, msg) -> None:  # type: ignore[no-untyped-def]
            if err is not None:
                logger.error("failed to deliver message to %s: %s", msg.topic(), err)

        self._producer.produce(
            topic=topic,
            value=payload,
            key=event.id.encode("utf-8"),
            callback=_delivery_callback,
        )
        self._producer.poll(0)

    # 구독 -----------------------------------------------------------------
    def subscribe(
        self,
        group_id: str,
        topic: Topic,
        handler: Callable[[Event], None],
        *,
        poll_timeout: float = 0.5,
        stop_event: threading.Event | None = None,
    ) -> None:
        consumer = Consumer(
            {
                "bootstrap.servers": self._brokers,
                "group.id": group_id,
                "auto.offset.reset": "earliest",
                "enable.auto.commit": False,
            }
        )
        gate = RetryGate(consumer)
        consumer.subscribe(
            topic.all_subscribed(),
            on_revoke=lambda _consumer, partitions: gate.forget(partitions),
        )

        try:
            logger.info(
                "Kafka consumer started. group_id=%s topic=%s", group_id, topic.base
            )
            while not (stop_event and stop_event.is_set()):
                gate.release_due(time.time())

                msg = consumer.poll(poll_timeout)
                if msg is None:
                    continue
                if msg.error():
                    if msg.error().code() == KafkaError._PARTITION_EOF:
                        continue
                    logger.error("consumer error: %s", msg.error())
                    continue
                if gate.is_deferred(msg):
                    # pause 전에 이미 받아 둔 메시지. seek 해 둔 위치에서 다시 받는다.
                    continue

                try:
                    raw = json.loads(msg.value())
                except ValueError as exc:
                    logger.error(
                        "invalid event payload on topic %s: %s", msg.topic(), exc
                    )
                    consumer.commit(message=msg, asynchronous=False)
                    continue

                evt = decode_event(raw)
                if evt.not_before > time.time() and gate.defer(msg, evt.not_before):
                    continue

                if not self.dispatch(evt, topic, handler):
                    # 재시도/DLQ 발행에 실패했으면 커밋하지 않고 다시 받는다.
                    continue

                try:
                    consumer.commit(message=msg, asynchronous=False)
                except Exception as exc:  # noqa: BLE001
                    logger.error("offset commit error: %s", exc)
        finally:
            consumer.close()

    def dispatch(
        self, evt: Event, topic: Topic, handler: Callable[[Event], None]
    ) -> bool:
        """핸들러를 실행하고, 실패 시 재시도 토픽이나 DLQ 로 넘긴다.

        오프셋을 커밋해도 되면 True 를 반환한다.
        """

        try:
            handler(evt)
            return True
        except Exception as exc:  # noqa: BLE001
            evt.last_error = str(exc)

        next_retry = evt.retry + 1
        try:
            next_topic = topic.get_retry_topic(next_retry)
        except MaxRetryExceededError:
            logger.error(
                "event %s exceeded max retry, sending to DLQ %s: %s",
                evt.id,
                topic.dlq(),
                evt.last_error,
            )
            return self._safe_publish(topic.dlq(), evt)

        if next_retry > evt.max_retry:
            logger.error(
                "event %s reached its max_retry=%d, sending to DLQ %s",
                evt.id,
                evt.max_retry,
                topic.dlq(),
            )
            return self._safe_publish(topic.dlq(), evt)

        evt.retry = next_retry
        evt.not_before = time.time() + RetryDelays[next_retry - 1]
        logger.warning(
            "event %s failed, scheduling retry %d/%d to %s",
            evt.id,
            evt.retry,
            evt.max_retry,
            next_topic,
        )
        return self._safe_publish(next_topic, evt)

    def _safe_publish(self, topic_name: str, evt: Event) -> bool:
        try:
            self.publish(topic_name, evt)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "failed to publish event %s to %s: %s", evt.id, topic_name, exc
            )
            return False
        return True


class RetryGate:
    """not_before 가 남은 재시도 메시지의 파티션을 멈춰 두었다가 기한이 되면 다시 연다.

    기다리는 동안에도 컨슈머는 poll 을 계속하므로 max.poll.interval.ms 를 넘겨
    그룹에서 빠지지 않고, 다른 파티션의 메시지도 그대로 처리된다.
    멈출 때 메시지 위치로 seek 해 두므로, resume 하면 같은 메시지를 다시 받는다.
    """

    def __init__(self, consumer: Consumer) -> None:
        self._consumer = consumer
        # (topic, partition) -> (offset, not_before)
        self._deferred: dict[tuple[str, int], tuple[int, float]] = {}

    def defer(self, msg: Message, not_before: float) -> bool:
        """메시지의 파티션을 멈춘다. pause/seek 에 실패하면 False 를 돌려 바로 처리하게 한다."""

        partition = TopicPartition(msg.topic(), msg.partition(), msg.offset())
        try:
            self._consumer.pause([partition])
            self._consumer.seek(partition)
        except KafkaException as exc:
            logger.warning(
                "could not defer retry message on %s[%d]: %s",
                msg.topic(),
                msg.partition(),
                exc,
            )
            self._resume(partition)
            return False

        self._deferred[(msg.topic(), msg.partition())] = (msg.offset(), not_before)
        logger.info(
            "deferring retry message on %s[%d] for %.0fs",
            msg.topic(),
            msg.partition(),
            max(0.0, not_before - time.time()),
        )
        return True

    def is_deferred(self, msg: Message) -> bool:
        return (msg.topic(), msg.partition()) in self._deferred

    def release_due(self, now: float) -> None:
        for (topic_name, partition_id), (offset, not_before) in list(self._deferred.items()):
            if not_before > now:
                continue
            del self._deferred[(topic_name, partition_id)]
            self._resume(TopicPartition(topic_name, partition_id, offset))

    def forget(self, partitions: list[TopicPartition]) -> None:
        """리밸런스로 회수된 파티션은 더 이상 추적하지 않는다."""
        for partition in partitions:
            self._deferred.pop((partition.topic, partition.partition), None)

    def _resume(self, partition: TopicPartition) -> None:
        try:
            self._consumer.resume([partition])
        except KafkaException as exc:
            logger.error("failed to resume %s[%d]: %s", partition.topic, partition.partition, exc)


_bus: KafkaEventBus | None = None
_bus_lock = threading.Lock()


def get_kafka_event_bus() -> KafkaEventBus | None:
    """프로세스 전역 KafkaEventBus. 브로커가 설정되지 않았으면 None."""

    global _bus

    if _bus is not None:
        return _bus

    brokers = get_brokers()
    if brokers is None:
        return None

    with _bus_lock:
        if _bus is None:
            _bus = KafkaEventBus(brokers)
        return _bus


def close_kafka_event_bus() -> None:
    global _bus

    with _bus_lock:
        if _bus is not None:
            _bus.close()
        _bus = None
