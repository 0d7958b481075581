"""아이템 등록, 카탈로그 조회, 관리자 승인."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import Depends
from pymongo.database import Database

from common.models.user import OwnerSummary, User
from common.mongo.client import get_database
from common.mongo.types import is_object_id

from ..errors import ItemNotFoundError, ValidationError
from ..models.item import Item, ItemCreateInput, ItemStatus, ItemWithOwner
from ..repositories.interfaces import ItemRepositoryInterface, UserRepositoryInterface
from ..repositories.item_repository import ItemRepository
from .auth_service import get_user_repository
from .media_storage import MediaStorageInterface, get_media_storage


logger = logging.getLogger(__name__)


class ItemsService:
    """아이템 관련 비즈니스 로직.

    - 새 아이템은 항상 approved=False, status=available 로 시작한다.
    - 승인은 포인트와 무관하다. 잔액은 RedemptionService 만 바꾼다.
    """

    def __init__(
        self,
        item_repo: ItemRepositoryInterface,
        user_repo: UserRepositoryInterface,
        media: MediaStorageInterface,
    ) -> None:
        self._item_repo = item_repo
        self._user_repo = user_repo
        self._media = media

    def create_item(
        self,
        owner_id: str,
        input_model: ItemCreateInput,
        image: tuple[str, bytes] | None = None,
    ) -> Item:
        image_url = ""
        if image is not None:
            filename, data = image
            image_url = self._media.save(filename, data)

        now = datetime.now(timezone.utc)
        item = Item(
            owner_id=owner_id,
            title=input_model.title,
            description=input_model.description,
            category=input_model.category,
            type=input_model.type,
            size=input_model.size,
            condition=input_model.condition,
            tags=input_model.tags,
            image_url=image_url,
            price=input_model.price,
            status=ItemStatus.AVAILABLE,
            approved=False,
            created_at=now,
            updated_at=now,
        )
        created = self._item_repo.insert(item)
        logger.info("item submitted for approval", extra={"item_id": created.id, "user_id": owner_id})
        return created

    def list_available(self) -> list[ItemWithOwner]:
        return self._with_owners(self._item_repo.list_available())

    def list_by_owner(self, owner_id: str) -> list[ItemWithOwner]:
        return self._with_owners(self._item_repo.list_by_owner(owner_id))

    def list_pending(self) -> list[ItemWithOwner]:
        return self._with_owners(self._item_repo.list_pending())

    def get_item(self, item_id: str) -> ItemWithOwner:
        if not is_object_id(item_id):
            raise ValidationError("invalid item id")
        item = self._item_repo.find_by_id(item_id)
        if item is None:
            raise ItemNotFoundError()
        return self._with_owners([item])[0]

    def set_approval(self, item_id: str, approved: bool) -> Item:
        """승인 플래그만 바꾼다. 같은 값으로 다시 호출해도 결과는 같다."""
        if not is_object_id(item_id):
            raise ValidationError("invalid item id")
        item = self._item_repo.set_approval(item_id, approved)
        if item is None:
            raise ItemNotFoundError()
        logger.info(
            "item approval updated approved=%s", approved, extra={"item_id": item_id}
        )
        return item

    def _with_owners(self, items: list[Item]) -> list[ItemWithOwner]:
        # 등록자는 한 번의 $in 조회로 가져온다.
        owners = self._user_repo.find_many_by_ids([item.owner_id for item in items])
        return [
            ItemWithOwner(item=item, owner=_owner_summary(owners.get(item.owner_id)))
            for item in items
        ]


def _owner_summary(user: User | None) -> OwnerSummary | None:
    if user is None or user.id is None:
        return None
    return OwnerSummary(id=user.id, name=user.name, email=user.email)


def get_item_repository(
    db: Database = Depends(get_database),
) -> ItemRepositoryInterface:
    """FastAPI DI용 ItemRepository 팩토리."""

    return ItemRepository(db)


def get_items_service(
    item_repo: ItemRepositoryInterface = Depends(get_item_repository),
    user_repo: UserRepositoryInterface = Depends(get_user_repository),
    media: MediaStorageInterface = Depends(get_media_storage),
) -> ItemsService:
    return ItemsService(item_repo=item_repo, user_repo=user_repo, media=media)
