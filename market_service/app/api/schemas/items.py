from __future__ import annotations

from pydantic import BaseModel

from common.models.user import OwnerSummary
from common.types.datetime import UtcDateTime

from ...models.item import Item, ItemStatus, ItemWithOwner
from ...models.redemption import RedemptionReceipt


class ItemResponse(BaseModel):
    id: str
    owner_id: str
    owner: OwnerSummary | None = None
    title: str
    description: str
    category: str
    type: str
    size: str
    condition: str
    tags: list[str]
    image_url: str
    price: int
    status: ItemStatus
    approved: bool
    redeemed_by: str | None = None
    redeemed_at: UtcDateTime | None = None
    created_at: UtcDateTime
    updated_at: UtcDateTime

    @classmethod
    def from_domain(cls, item: Item, owner: OwnerSummary | None = None) -> "ItemResponse":
        assert item.id is not None
        return cls(
            id=item.id,
            owner_id=item.owner_id,
            owner=owner,
            title=item.title,
            description=item.description,
            category=item.category,
            type=item.type,
            size=item.size,
            condition=item.condition,
            tags=item.tags,
            image_url=item.image_url,
            price=item.price,
            status=item.status,
            approved=item.approved,
            redeemed_by=item.redeemed_by,
            redeemed_at=item.redeemed_at,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )

    @classmethod
    def from_view(cls, view: ItemWithOwner) -> "ItemResponse":
        return cls.from_domain(view.item, view.owner)


class CreateItemResponse(BaseModel):
    message: str
    item: ItemResponse


class ApproveRequest(BaseModel):
    approve: bool


class ApproveResponse(BaseModel):
    message: str
    item: ItemResponse


class RedeemRequest(BaseModel):
    # 교환 방식. 현재는 "redeem" 만 지원한다.
    type: str | None = None


class RedeemResponse(BaseModel):
    redemption_id: str
    item_id: str
    item_status: ItemStatus
    points_deducted: int
    buyer_id: str
    buyer_points_remaining: int
    seller_id: str
    seller_points_total: int
    redeemed_at: UtcDateTime

    @classmethod
    def from_domain(cls, receipt: RedemptionReceipt) -> "RedeemResponse":
        return cls(**receipt.model_dump())
