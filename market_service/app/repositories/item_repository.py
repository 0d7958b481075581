from __future__ import annotations

from datetime import datetime, timezone

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from common.mongo.types import is_object_id, to_object_id

from ..models.item import Item, ItemStatus
from .documents.item_document import ItemDocument
from .interfaces import ItemRepositoryInterface, Session


# 목록은 모두 최신순. created_at 이 같으면 _id 로 순서를 고정한다.
NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


class ItemRepository(ItemRepositoryInterface):
    """items 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["items"]

    @staticmethod
    def _from_document(doc: dict) -> Item:
        return ItemDocument.model_validate(doc).to_domain()

    def _find(self, filter_doc: dict) -> list[Item]:
        return [self._from_document(doc) for doc in self._col.find(filter_doc, sort=NEWEST_FIRST)]

    def insert(self, item: Item) -> Item:
        now = datetime.now(timezone.utc)
        item.created_at = now
        item.updated_at = now

        payload = ItemDocument.from_domain(item).to_mongo_record()
        result = self._col.insert_one(payload)
        payload["_id"] = result.inserted_id
        return self._from_document(payload)

    def find_by_id(self, item_id: str, session: Session = None) -> Item | None:
        if not is_object_id(item_id):
            return None
        doc = self._col.find_one({"_id": to_object_id(item_id)}, session=session)
        if not doc:
            return None
        return self._from_document(doc)

    def list_available(self) -> list[Item]:
        return self._find({"approved": True, "status": str(ItemStatus.AVAILABLE)})

    def list_by_owner(self, owner_id: str) -> list[Item]:
        if not is_object_id(owner_id):
            return []
        return self._find({"owner_id": to_object_id(owner_id)})

    def list_pending(self) -> list[Item]:
        return self._find({"approved": False})

    def set_approval(self, item_id: str, approved: bool) -> Item | None:
        if not is_object_id(item_id):
            return None
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(item_id)},
            {"$set": {"approved": approved, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def mark_redeemed(
        self,
        item_id: str,
        buyer_id: str,
        redeemed_at: datetime,
        session: Session = None,
    ) -> Item | None:
        # compare-and-set: 현재 상태가 available 이고 승인된 경우에만 전이한다.
        doc = self._col.find_one_and_update(
            {
                "_id": to_object_id(item_id),
                "approved": True,
                "status": str(ItemStatus.AVAILABLE),
            },
            {
                "$set": {
                    "status": str(ItemStatus.REDEEMED),
                    "redeemed_by": to_object_id(buyer_id),
                    "redeemed_at": redeemed_at,
                    "updated_at": redeemed_at,
                }
            },
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        if not doc:
            return None
        return self._from_document(doc)
