from __future__ import annotations

from common.mongo.types import BaseDocument, PyObjectId, from_object_id

from ...models.redemption import Redemption


class RedemptionDocument(BaseDocument):
    """MongoDB redemptions 컬렉션 도큐먼트 모델. item_id 에 유니크 인덱스가 있다."""

    item_id: PyObjectId
    buyer_id: PyObjectId
    seller_id: PyObjectId
    points: int

    @classmethod
    def from_domain(cls, redemption: Redemption) -> "RedemptionDocument":
        return cls.model_validate(redemption.model_dump(exclude={"id"}))

    def to_domain(self) -> Redemption:
        return Redemption(
            id=from_object_id(self.id),
            item_id=str(self.item_id),
            buyer_id=str(self.buyer_id),
            seller_id=str(self.seller_id),
            points=self.points,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
