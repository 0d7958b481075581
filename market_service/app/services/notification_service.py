"""교환 완료 알림 발송 경로.

Kafka 브로커가 설정되어 있으면 item.redeemed 이벤트를 발행하고, 컨슈머가 메일을 보낸다.
브로커가 없으면 백그라운드 스레드 풀에 메일 발송을 맡기고 바로 돌아온다.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import asdict
from typing import Protocol

from fastapi import Depends

from common.eventbus.helpers import new_json_event
from common.eventbus.kafka import KafkaEventBus, get_kafka_event_bus
from common.eventbus.topics import TOPIC_ITEM_REDEEMED
from common.events.item import ItemRedeemedEvent

from ..config import AppConfig, get_config
from ..mailer import MailerInterface, SmtpMailer, build_redeemed_message


logger = logging.getLogger(__name__)


class RedemptionNotifierInterface(Protocol):
    def notify_redeemed(self, event: ItemRedeemedEvent) -> None:  # pragma: no cover - Protocol
        ...


class KafkaRedemptionNotifier(RedemptionNotifierInterface):
    def __init__(self, bus: KafkaEventBus) -> None:
        self._bus = bus

    def notify_redeemed(self, event: ItemRedeemedEvent) -> None:
        wrapped = new_json_event(payload=asdict(event), event_id=event.id)
        self._bus.publish(TOPIC_ITEM_REDEEMED.base, wrapped)
        logger.info(
            "published item.redeemed event",
            extra={"event_id": event.id, "item_id": event.item_id},
        )


class MailRedemptionNotifier(RedemptionNotifierInterface):
    """메일 발송을 executor 에 넘기고 기다리지 않는다. 실패는 로그로만 남는다."""

    def __init__(self, mailer: MailerInterface, executor: Executor | None = None) -> None:
        self._mailer = mailer
        self._executor = executor if executor is not None else get_mail_executor()

    def notify_redeemed(self, event: ItemRedeemedEvent) -> None:
        self._executor.submit(_send_redeemed_mail_logged, self._mailer, event)


def send_redeemed_mail(mailer: MailerInterface, event: ItemRedeemedEvent) -> None:
    """판매자에게 교환 완료 메일을 보낸다. 실패하면 MailDeliveryError."""
    subject, body = build_redeemed_message(
        seller_name=event.seller_name,
        buyer_name=event.buyer_name,
        item_title=event.item_title,
        points=event.points,
        seller_points_total=event.seller_points_total,
    )
    mailer.send(event.seller_email, subject, body)
    logger.info(
        "sent redeemed mail to seller",
        extra={"event_id": event.id, "item_id": event.item_id, "user_id": event.seller_id},
    )


def _send_redeemed_mail_logged(mailer: MailerInterface, event: ItemRedeemedEvent) -> None:
    try:
        send_redeemed_mail(mailer, event)
    except Exception:  # noqa: BLE001
        logger.exception(
            "failed to send redeemed mail to seller",
            extra={"event_id": event.id, "item_id": event.item_id},
        )


_mail_executor: ThreadPoolExecutor | None = None
_mail_executor_lock = threading.Lock()


def get_mail_executor() -> ThreadPoolExecutor:
    """알림 메일용 프로세스 전역 스레드 풀."""

    global _mail_executor

    if _mail_executor is not None:
        return _mail_executor

    with _mail_executor_lock:
        if _mail_executor is None:
            _mail_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="redeemed-mail")
        return _mail_executor


def close_mail_executor() -> None:
    """대기 중인 메일을 모두 보낸 뒤 스레드 풀을 닫는다."""

    global _mail_executor

    with _mail_executor_lock:
        if _mail_executor is not None:
            _mail_executor.shutdown(wait=True)
        _mail_executor = None


def get_redemption_notifier(
    config: AppConfig = Depends(get_config),
) -> RedemptionNotifierInterface:
    bus = get_kafka_event_bus()
    if bus is not None:
        return KafkaRedemptionNotifier(bus)
    return MailRedemptionNotifier(SmtpMailer(config.mail))
