"""교환 완료 이벤트 핸들러.

item.redeemed 이벤트를 소비해 판매자에게 알림 메일을 보낸다.
메일 발송이 실패하면 예외를 그대로 올려 EventBus 가 재시도 토픽/DLQ 로 넘기게 한다.
"""

from __future__ import annotations

import logging
import threading

from common.eventbus.config import get_group_id, require_brokers
from common.eventbus.core import Event
from common.eventbus.kafka import KafkaEventBus
from common.eventbus.topics import TOPIC_ITEM_REDEEMED
from common.events.item import ItemEventType, ItemRedeemedEvent

from ..mailer import MailerInterface
from ..services.notification_service import send_redeemed_mail


logger = logging.getLogger(__name__)


def handle_item_event(evt: Event, *, mailer: MailerInterface) -> None:
    payload = evt.payload
    if not isinstance(payload, dict):
        logger.error("unexpected payload type for event %s: %r", evt.id, type(payload))
        return

    event_type = str(payload.get("type", ""))
    if event_type != ItemEventType.ITEM_REDEEMED:
        logger.debug("ignoring unknown item event type=%s id=%s", event_type, evt.id)
        return

    try:
        event = ItemRedeemedEvent.from_dict(payload)
    except (KeyError, ValueError, TypeError):
        # 재시도해도 디코딩 결과는 같으므로 버린다.
        logger.exception("failed to decode ItemRedeemedEvent payload=%r", payload)
        return

    logger.info(
        "handling item.redeemed event",
        extra={"event_id": event.id, "item_id": event.item_id},
    )
    send_redeemed_mail(mailer, event)


def run_redemption_consumer(stop_event: threading.Event, mailer: MailerInterface) -> None:
    """item.redeemed 이벤트를 소비하는 구독 루프를 실행한다."""
    logger.info("redemption-consumer starting up")

    brokers = require_brokers()
    group_id = get_group_id() + "-redemption"

    bus = KafkaEventBus(brokers)
    try:
        logger.info(
            "subscribing to topic=%s group_id=%s", TOPIC_ITEM_REDEEMED.base, group_id
        )
        bus.subscribe(
            group_id=group_id,
            topic=TOPIC_ITEM_REDEEMED,
            handler=lambda evt: handle_item_event(evt, mailer=mailer),
            stop_event=stop_event,
        )
    finally:
        bus.close()
        logger.info("redemption-consumer stopped")
