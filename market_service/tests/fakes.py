"""서비스 테스트용 in-memory 가짜 구현.

Mongo 없이 서비스 규칙을 검증하기 위해 repository 계약을 dict 로 흉내 낸다.
InMemoryTransactionRunner 는 트랜잭션을 하나씩 직렬화하고, callback 이 실패하면
시작 시점의 스냅샷으로 모든 저장소를 되돌린다.
"""

from __future__ import annotations

import copy
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TypeVar

from bson import ObjectId

from common.events.item import ItemRedeemedEvent
from common.models.user import User, UserRole
from market_service.app.config import (
    AppConfig,
    AuthConfig,
    LedgerConfig,
    MailConfig,
    MediaConfig,
    OtpConfig,
)
from market_service.app.errors import ItemNotAvailableError, MailDeliveryError, UserAlreadyExistsError
from market_service.app.models.item import Item, ItemStatus
from market_service.app.models.otp import OtpCode
from market_service.app.models.redemption import Redemption


T = TypeVar("T")

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def new_id() -> str:
    return str(ObjectId())


def build_config(**ledger_kwargs: Any) -> AppConfig:
    return AppConfig(
        auth=AuthConfig(jwt_secret="test-secret"),
        otp=OtpConfig(ttl_minutes=10, max_attempts=3),
        mail=MailConfig(username="noreply@example.com", password="pw"),
        ledger=LedgerConfig(**ledger_kwargs),
        media=MediaConfig(upload_dir="uploads"),
        cors_allowed_origins=["http://localhost:5173"],
    )


def build_user(
    *,
    name: str = "user",
    email: str | None = None,
    balance: int = 50,
    role: UserRole = UserRole.MEMBER,
    password_hash: str = "not-a-real-hash",
) -> User:
    user_id = new_id()
    return User(
        id=user_id,
        name=name,
        email=email or f"{name}-{user_id[-6:]}@example.com",
        password_hash=password_hash,
        balance=balance,
        role=role,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )


def build_item(
    *,
    owner_id: str,
    price: int = 20,
    approved: bool = True,
    status: ItemStatus = ItemStatus.AVAILABLE,
    title: str = "denim jacket",
    created_at: datetime | None = None,
) -> Item:
    created = created_at or BASE_TIME
    return Item(
        id=new_id(),
        owner_id=owner_id,
        title=title,
        price=price,
        approved=approved,
        status=status,
        created_at=created,
        updated_at=created,
    )


class _Snapshotting:
    """스냅샷/복원 가능한 저장소 공통 부분."""

    _state_attrs: tuple[str, ...] = ()

    def snapshot(self) -> dict[str, Any]:
        return {attr: copy.deepcopy(getattr(self, attr)) for attr in self._state_attrs}

    def restore(self, state: dict[str, Any]) -> None:
        for attr, value in state.items():
            setattr(self, attr, value)


class InMemoryUserRepository(_Snapshotting):
    _state_attrs = ("users",)

    def __init__(self, *users: User) -> None:
        self.users: dict[str, User] = {}
        self.fail_on_credit: Exception | None = None
        self.debit_calls: list[tuple[str, int]] = []
        for user in users:
            self.add(user)

    def add(self, user: User) -> User:
        assert user.id is not None
        self.users[user.id] = user.model_copy()
        return user

    def balance_of(self, user_id: str) -> int:
        return self.users[user_id].balance

    def find_by_id(self, user_id: str, session: Any = None) -> User | None:
        user = self.users.get(user_id)
        return user.model_copy() if user else None

    def find_by_email(self, email: str) -> User | None:
        for user in self.users.values():
            if user.email == email:
                return user.model_copy()
        return None

    def find_many_by_ids(self, user_ids: list[str]) -> dict[str, User]:
        return {uid: self.users[uid].model_copy() for uid in set(user_ids) if uid in self.users}

    def insert(self, user: User) -> User:
        if self.find_by_email(user.email) is not None:
            raise UserAlreadyExistsError()
        created = user.model_copy(update={"id": new_id()})
        self.users[created.id] = created  # type: ignore[index]
        return created.model_copy()

    def update_profile(self, user_id: str, name: str) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        user.name = name
        return user.model_copy()

    def debit(self, user_id: str, amount: int, session: Any = None) -> User | None:
        self.debit_calls.append((user_id, amount))
        user = self.users.get(user_id)
        if user is None or user.balance < amount:
            return None
        user.balance -= amount
        return user.model_copy()

    def credit(self, user_id: str, amount: int, session: Any = None) -> User | None:
        if self.fail_on_credit is not None:
            raise self.fail_on_credit
        user = self.users.get(user_id)
        if user is None:
            return None
        user.balance += amount
        return user.model_copy()


class InMemoryItemRepository(_Snapshotting):
    _state_attrs = ("items",)

    def __init__(self, *items: Item) -> None:
        self.items: dict[str, Item] = {}
        self.mark_redeemed_calls = 0
        for item in items:
            self.add(item)

    def add(self, item: Item) -> Item:
        assert item.id is not None
        self.items[item.id] = item.model_copy()
        return item

    def _sorted(self, items: list[Item]) -> list[Item]:
        return [
            item.model_copy()
            for item in sorted(items, key=lambda i: (i.created_at, i.id), reverse=True)
        ]

    def insert(self, item: Item) -> Item:
        created = item.model_copy(update={"id": new_id()})
        self.items[created.id] = created  # type: ignore[index]
        return created.model_copy()

    def find_by_id(self, item_id: str, session: Any = None) -> Item | None:
        item = self.items.get(item_id)
        return item.model_copy() if item else None

    def list_available(self) -> list[Item]:
        return self._sorted([i for i in self.items.values() if i.is_redeemable])

    def list_by_owner(self, owner_id: str) -> list[Item]:
        return self._sorted([i for i in self.items.values() if i.owner_id == owner_id])

    def list_pending(self) -> list[Item]:
        return self._sorted([i for i in self.items.values() if not i.approved])

    def set_approval(self, item_id: str, approved: bool) -> Item | None:
        item = self.items.get(item_id)
        if item is None:
            return None
        item.approved = approved
        return item.model_copy()

    def mark_redeemed(
        self, item_id: str, buyer_id: str, redeemed_at: datetime, session: Any = None
    ) -> Item | None:
        self.mark_redeemed_calls += 1
        item = self.items.get(item_id)
        if item is None or not item.is_redeemable:
            return None
        item.status = ItemStatus.REDEEMED
        item.redeemed_by = buyer_id
        item.redeemed_at = redeemed_at
        return item.model_copy()


class InMemoryRedemptionRepository(_Snapshotting):
    _state_attrs = ("records",)

    def __init__(self) -> None:
        self.records: list[Redemption] = []

    def create(self, redemption: Redemption, session: Any = None) -> Redemption:
        if any(r.item_id == redemption.item_id for r in self.records):
            raise ItemNotAvailableError()
        created = redemption.model_copy(update={"id": new_id()})
        self.records.append(created)
        return created


class InMemoryOtpRepository:
    def __init__(self) -> None:
        self.codes: dict[str, OtpCode] = {}

    def save(self, otp: OtpCode) -> None:
        self.codes[otp.email] = otp.model_copy()

    def consume(self, email: str, code_hash: str, now: datetime) -> OtpCode | None:
        otp = self.codes.get(email)
        if otp is None or otp.code_hash != code_hash or otp.expires_at <= now:
            return None
        return self.codes.pop(email)

    def record_failed_attempt(self, email: str, max_attempts: int) -> None:
        otp = self.codes.get(email)
        if otp is None:
            return
        otp.attempts += 1
        if otp.attempts >= max_attempts:
            del self.codes[email]

    def discard(self, email: str) -> None:
        self.codes.pop(email, None)

    def expire(self, email: str) -> None:
        otp = self.codes[email]
        otp.created_at = otp.created_at - timedelta(hours=1)
        otp.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)


class InMemoryTransactionRunner:
    """트랜잭션을 직렬화하고, 실패 시 참여 저장소를 스냅샷으로 되돌린다."""

    def __init__(self, *stores: _Snapshotting) -> None:
        self._stores = stores
        self._lock = threading.Lock()
        self.runs = 0

    def run(self, callback: Callable[[Any], T]) -> T:
        with self._lock:
            self.runs += 1
            snapshots = [store.snapshot() for store in self._stores]
            try:
                return callback(None)
            except BaseException:
                for store, state in zip(self._stores, snapshots):
                    store.restore(state)
                raise


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[ItemRedeemedEvent] = []
        self.error: Exception | None = None

    def notify_redeemed(self, event: ItemRedeemedEvent) -> None:
        if self.error is not None:
            raise self.error
        self.events.append(event)


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send(self, recipient: str, subject: str, body: str) -> None:
        if self.fail:
            raise MailDeliveryError()
        self.sent.append((recipient, subject, body))


class RecordingMediaStorage:
    def __init__(self) -> None:
        self.saved: list[tuple[str, bytes]] = []

    def save(self, filename: str, data: bytes) -> str:
        self.saved.append((filename, data))
        return f"/uploads/{len(self.saved)}-{filename}"
