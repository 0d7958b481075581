from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    PyObjectId,
    from_object_id,
)

from ...models.item import Item, ItemStatus


class ItemDocument(BaseDocument):
    """MongoDB items 컬렉션 도큐먼트 모델.

    owner_id / redeemed_by 는 users._id 를 가리키므로 ObjectId 로 저장한다.
    """

    owner_id: PyObjectId
    title: str
    description: str = ""
    category: str = ""
    type: str = ""
    size: str = ""
    condition: str = ""
    tags: list[str] = []
    image_url: str = ""
    price: int
    status: ItemStatus = ItemStatus.AVAILABLE
    approved: bool = False
    redeemed_by: Optional[PyObjectId] = None
    redeemed_at: Optional[MongoDateTime] = None

    @classmethod
    def from_domain(cls, item: Item) -> "ItemDocument":
        data: dict[str, Any] = item.model_dump(exclude={"id"})
        if item.id is not None:
            data["_id"] = item.id
        return cls.model_validate(data)

    def to_mongo_record(self) -> dict[str, Any]:
        record = super().to_mongo_record()
        # StrEnum 은 그대로 저장해도 문자열이지만 명시적으로 맞춘다.
        record["status"] = str(self.status)
        return record

    def to_domain(self) -> Item:
        redeemed_at: datetime | None = self.redeemed_at
        return Item(
            id=from_object_id(self.id),
            owner_id=str(self.owner_id),
            title=self.title,
            description=self.description,
            category=self.category,
            type=self.type,
            size=self.size,
            condition=self.condition,
            tags=list(self.tags),
            image_url=self.image_url,
            price=self.price,
            status=self.status,
            approved=self.approved,
            redeemed_by=from_object_id(self.redeemed_by),
            redeemed_at=redeemed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
