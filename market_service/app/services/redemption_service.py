"""포인트로 아이템을 교환(redeem)하는 엔진.

한 번의 교환은 아래 변경을 하나의 트랜잭션으로 묶는다.

- 아이템 상태 available -> redeemed (compare-and-set)
- 구매자 잔액 차감 (balance >= price 조건부)
- 판매자 잔액 적립
- redemptions 원장 기록 (아이템당 하나)

포인트는 옮겨질 뿐 사라지지 않는다. 커밋 이후의 알림 실패는 교환 결과에 영향을 주지 않는다.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import Depends
from pymongo.database import Database

from common.events.item import ItemEventType, ItemRedeemedEvent
from common.models.user import User
from common.mongo.client import get_client, get_database
from common.mongo.types import is_object_id

from ..errors import (
    AuthenticationError,
    InsufficientPointsError,
    ItemNotApprovedError,
    ItemNotAvailableError,
    ItemNotFoundError,
    SelfRedemptionError,
    UserNotFoundError,
    ValidationError,
)
from ..models.item import Item, ItemStatus
from ..models.redemption import Redemption, RedemptionReceipt
from ..repositories.interfaces import (
    ItemRepositoryInterface,
    RedemptionRepositoryInterface,
    Session,
    TransactionRunnerInterface,
    UserRepositoryInterface,
)
from ..repositories.redemption_repository import RedemptionRepository
from ..repositories.transaction import MongoTransactionRunner
from .auth_service import get_user_repository
from .items_service import get_item_repository
from .notification_service import RedemptionNotifierInterface, get_redemption_notifier


logger = logging.getLogger(__name__)

EVENT_SOURCE = "market-service"


@dataclass(slots=True)
class _Outcome:
    receipt: RedemptionReceipt
    item: Item
    buyer: User
    seller: User


class RedemptionService:
    def __init__(
        self,
        user_repo: UserRepositoryInterface,
        item_repo: ItemRepositoryInterface,
        redemption_repo: RedemptionRepositoryInterface,
        tx_runner: TransactionRunnerInterface,
        notifier: RedemptionNotifierInterface,
    ) -> None:
        self._user_repo = user_repo
        self._item_repo = item_repo
        self._redemption_repo = redemption_repo
        self._tx_runner = tx_runner
        self._notifier = notifier

    def redeem(self, buyer_id: str, item_id: str) -> RedemptionReceipt:
        """buyer 가 item 을 포인트로 교환한다.

        선행 조건은 아래 순서로 확인하고, 처음 실패한 조건의 오류를 던진다.

        1. 구매자 존재 (AuthenticationError)
        2. 아이템 존재 (ItemNotFoundError, 형식 오류는 ValidationError)
        3. 승인됨 (ItemNotApprovedError)
        4. available 상태 (ItemNotAvailableError)
        5. 본인 아이템 아님 (SelfRedemptionError)
        6. 잔액 충분 (InsufficientPointsError)
        """

        if not is_object_id(item_id):
            raise ValidationError("invalid item id")

        outcome = self._tx_runner.run(
            lambda session: self._redeem_in_transaction(session, buyer_id, item_id)
        )

        logger.info(
            "item redeemed for %d points",
            outcome.receipt.points_deducted,
            extra={"item_id": item_id, "user_id": buyer_id},
        )
        self._notify(outcome)
        return outcome.receipt

    def _redeem_in_transaction(self, session: Session, buyer_id: str, item_id: str) -> _Outcome:
        # 드라이버가 write conflict 로 callback 을 다시 실행할 수 있으므로
        # 모든 값은 이 안에서 새로 읽는다.
        buyer = self._user_repo.find_by_id(buyer_id, session=session)
        if buyer is None:
            raise AuthenticationError("buyer not found")

        item = self._item_repo.find_by_id(item_id, session=session)
        if item is None:
            raise ItemNotFoundError()
        if not item.approved:
            raise ItemNotApprovedError()
        if item.status != ItemStatus.AVAILABLE:
            raise ItemNotAvailableError()
        if item.owner_id == buyer_id:
            raise SelfRedemptionError()
        if buyer.balance < item.price:
            raise InsufficientPointsError()

        now = datetime.now(timezone.utc)

        redeemed = self._item_repo.mark_redeemed(item_id, buyer_id, now, session=session)
        if redeemed is None:
            # 다른 요청이 먼저 상태를 바꿨다.
            raise ItemNotAvailableError()

        debited = self._user_repo.debit(buyer_id, item.price, session=session)
        if debited is None:
            raise InsufficientPointsError()

        credited = self._user_repo.credit(item.owner_id, item.price, session=session)
        if credited is None:
            raise UserNotFoundError("seller not found")

        redemption = self._redemption_repo.create(
            Redemption(
                item_id=item_id,
                buyer_id=buyer_id,
                seller_id=item.owner_id,
                points=item.price,
                created_at=now,
                updated_at=now,
            ),
            session=session,
        )
        assert redemption.id is not None

        receipt = RedemptionReceipt(
            redemption_id=redemption.id,
            item_id=item_id,
            item_status=redeemed.status,
            points_deducted=item.price,
            buyer_id=buyer_id,
            buyer_points_remaining=debited.balance,
            seller_id=item.owner_id,
            seller_points_total=credited.balance,
            redeemed_at=now,
        )
        return _Outcome(receipt=receipt, item=redeemed, buyer=debited, seller=credited)

    def _notify(self, outcome: _Outcome) -> None:
        receipt = outcome.receipt
        event = ItemRedeemedEvent(
            id=str(uuid.uuid4()),
            type=ItemEventType.ITEM_REDEEMED,
            timestamp=receipt.redeemed_at.isoformat(),
            source=EVENT_SOURCE,
            version="1.0",
            redemption_id=receipt.redemption_id,
            item_id=receipt.item_id,
            item_title=outcome.item.title,
            points=receipt.points_deducted,
            buyer_id=receipt.buyer_id,
            buyer_name=outcome.buyer.name,
            seller_id=receipt.seller_id,
            seller_name=outcome.seller.name,
            seller_email=outcome.seller.email,
            seller_points_total=receipt.seller_points_total,
        )
        try:
            self._notifier.notify_redeemed(event)
        except Exception:  # noqa: BLE001
            # 커밋은 이미 끝났다. 알림 실패로 교환을 되돌리지 않는다.
            logger.exception(
                "failed to notify seller of redemption",
                extra={"item_id": receipt.item_id, "event_id": event.id},
            )


def get_redemption_repository(
    db: Database = Depends(get_database),
) -> RedemptionRepositoryInterface:
    return RedemptionRepository(db)


def get_transaction_runner() -> TransactionRunnerInterface:
    return MongoTransactionRunner(get_client())


def get_redemption_service(
    user_repo: UserRepositoryInterface = Depends(get_user_repository),
    item_repo: ItemRepositoryInterface = Depends(get_item_repository),
    redemption_repo: RedemptionRepositoryInterface = Depends(get_redemption_repository),
    tx_runner: TransactionRunnerInterface = Depends(get_transaction_runner),
    notifier: RedemptionNotifierInterface = Depends(get_redemption_notifier),
) -> RedemptionService:
    """FastAPI DI용 RedemptionService 팩토리."""

    return RedemptionService(
        user_repo=user_repo,
        item_repo=item_repo,
        redemption_repo=redemption_repo,
        tx_runner=tx_runner,
        notifier=notifier,
    )
