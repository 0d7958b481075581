from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Protocol, TypeVar

from common.models.user import User

from ..models.item import Item
from ..models.otp import OtpCode
from ..models.redemption import Redemption


T = TypeVar("T")

# 트랜잭션 안에서 호출되는 메서드는 session 을 받는다.
# Mongo 구현에서는 pymongo.client_session.ClientSession, 메모리 구현에서는 None 이다.
Session = Any


class UserRepositoryInterface(Protocol):
    """UserRepository 가 따라야 할 최소한의 계약.

    잔액 변경은 debit/credit 두 조건부 연산으로만 노출한다.
    """

    def find_by_id(
        self, user_id: str, session: Session = None
    ) -> User | None:  # pragma: no cover - Protocol
        ...

    def find_by_email(self, email: str) -> User | None:  # pragma: no cover - Protocol
        ...

    def find_many_by_ids(
        self, user_ids: list[str]
    ) -> dict[str, User]:  # pragma: no cover - Protocol
        ...

    def insert(self, user: User) -> User:  # pragma: no cover - Protocol
        """새 유저를 저장한다. 이메일이 이미 있으면 UserAlreadyExistsError."""
        ...

    def update_profile(
        self, user_id: str, name: str
    ) -> User | None:  # pragma: no cover - Protocol
        ...

    def debit(
        self, user_id: str, amount: int, session: Session = None
    ) -> User | None:  # pragma: no cover - Protocol
        """balance >= amount 인 경우에만 차감하고 차감 후 유저를 반환한다. 아니면 None."""
        ...

    def credit(
        self, user_id: str, amount: int, session: Session = None
    ) -> User | None:  # pragma: no cover - Protocol
        """잔액을 더하고 갱신된 유저를 반환한다. 유저가 없으면 None."""
        ...


class ItemRepositoryInterface(Protocol):
    def insert(self, item: Item) -> Item:  # pragma: no cover - Protocol
        ...

    def find_by_id(
        self, item_id: str, session: Session = None
    ) -> Item | None:  # pragma: no cover - Protocol
        ...

    def list_available(self) -> list[Item]:  # pragma: no cover - Protocol
        """approved 이고 available 인 아이템, 최신순."""
        ...

    def list_by_owner(self, owner_id: str) -> list[Item]:  # pragma: no cover - Protocol
        ...

    def list_pending(self) -> list[Item]:  # pragma: no cover - Protocol
        """승인되지 않은 아이템, 최신순."""
        ...

    def set_approval(
        self, item_id: str, approved: bool
    ) -> Item | None:  # pragma: no cover - Protocol
        ...

    def mark_redeemed(
        self,
        item_id: str,
        buyer_id: str,
        redeemed_at: datetime,
        session: Session = None,
    ) -> Item | None:  # pragma: no cover - Protocol
        """available 이고 approved 인 경우에만 redeemed 로 바꾼다 (compare-and-set).

        조건이 맞지 않으면 아무것도 바꾸지 않고 None 을 반환한다.
        """
        ...


class RedemptionRepositoryInterface(Protocol):
    def create(
        self, redemption: Redemption, session: Session = None
    ) -> Redemption:  # pragma: no cover - Protocol
        ...


class OtpRepositoryInterface(Protocol):
    def save(self, otp: OtpCode) -> None:  # pragma: no cover - Protocol
        """이메일 기준으로 upsert 한다. 이전 코드는 대체된다."""
        ...

    def consume(
        self, email: str, code_hash: str, now: datetime
    ) -> OtpCode | None:  # pragma: no cover - Protocol
        """일치하고 만료되지 않은 코드를 원자적으로 삭제하며 반환한다."""
        ...

    def record_failed_attempt(
        self, email: str, max_attempts: int
    ) -> None:  # pragma: no cover - Protocol
        ...

    def discard(self, email: str) -> None:  # pragma: no cover - Protocol
        ...


class TransactionRunnerInterface(Protocol):
    """여러 컬렉션 변경을 하나의 원자 단위로 실행한다.

    callback 이 예외를 던지면 그 안의 모든 쓰기가 취소되고 예외가 그대로 전파된다.
    """

    def run(
        self, callback: Callable[[Session], T]
    ) -> T:  # pragma: no cover - Protocol
        ...
