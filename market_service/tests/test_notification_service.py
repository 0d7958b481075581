from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from market_service.app.errors import MailDeliveryError
from market_service.app.services.notification_service import MailRedemptionNotifier
from market_service.app.services.redemption_service import RedemptionService

from market_service.tests.fakes import (
    InMemoryItemRepository,
    InMemoryRedemptionRepository,
    InMemoryTransactionRunner,
    InMemoryUserRepository,
    build_item,
    build_user,
)


class BlockingMailer:
    """release 가 set 될 때까지 send 가 돌아오지 않는 느린 SMTP 서버."""

    def __init__(self, *, fail: bool = False) -> None:
        self.release = threading.Event()
        self.sent: list[tuple[str, str, str]] = []
        self.fail = fail

    def send(self, recipient: str, subject: str, body: str) -> None:
        self.release.wait(timeout=5.0)
        if self.fail:
            raise MailDeliveryError()
        self.sent.append((recipient, subject, body))


def _service_with(notifier: MailRedemptionNotifier):  # type: ignore[no-untyped-def]
    buyer = build_user(name="buyer", balance=50)
    seller = build_user(name="seller", email="seller@example.com", balance=50)
    assert buyer.id is not None and seller.id is not None
    item = build_item(owner_id=seller.id, price=20)
    assert item.id is not None

    users = InMemoryUserRepository(buyer, seller)
    items = InMemoryItemRepository(item)
    redemptions = InMemoryRedemptionRepository()
    service = RedemptionService(
        user_repo=users,
        item_repo=items,
        redemption_repo=redemptions,
        tx_runner=InMemoryTransactionRunner(users, items, redemptions),
        notifier=notifier,
    )
    return service, buyer.id, item.id


def test_redeem_returns_without_waiting_for_a_slow_mail_server() -> None:
    mailer = BlockingMailer()
    executor = ThreadPoolExecutor(max_workers=1)
    service, buyer_id, item_id = _service_with(MailRedemptionNotifier(mailer, executor=executor))

    started = time.monotonic()
    receipt = service.redeem(buyer_id, item_id)
    elapsed = time.monotonic() - started

    assert receipt.buyer_points_remaining == 30
    assert mailer.sent == []
    assert elapsed < 0.5

    mailer.release.set()
    executor.shutdown(wait=True)

    assert len(mailer.sent) == 1
    recipient, subject, body = mailer.sent[0]
    assert recipient == "seller@example.com"
    assert subject.endswith("was redeemed")
    assert "for 20 points" in body


def test_background_mail_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    mailer = BlockingMailer(fail=True)
    mailer.release.set()
    executor = ThreadPoolExecutor(max_workers=1)
    service, buyer_id, item_id = _service_with(MailRedemptionNotifier(mailer, executor=executor))

    with caplog.at_level(logging.ERROR):
        receipt = service.redeem(buyer_id, item_id)
        executor.shutdown(wait=True)

    assert receipt.seller_points_total == 70
    assert mailer.sent == []
    assert any(
        record.getMessage() == "failed to send redeemed mail to seller"
        for record in caplog.records
    )
