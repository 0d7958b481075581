"""교환(redeem) 원장 모델."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from .item import ItemStatus


class Redemption(BaseModel):
    """포인트 이전 한 건의 기록. 아이템당 최대 하나 존재한다."""

    id: str | None = None
    item_id: str
    buyer_id: str
    seller_id: str
    points: int
    created_at: datetime
    updated_at: datetime


class RedemptionReceipt(BaseModel):
    """교환 성공 시 호출자에게 돌려주는 영수증."""

    redemption_id: str
    item_id: str
    item_status: ItemStatus
    points_deducted: int
    buyer_id: str
    buyer_points_remaining: int
    seller_id: str
    seller_points_total: int
    redeemed_at: datetime
