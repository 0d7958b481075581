"""아이템 관련 이벤트 정의."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Self


class ItemEventType:
    """아이템 이벤트 타입 상수."""

    ITEM_REDEEMED = "item.redeemed"


@dataclass(slots=True)
class ItemRedeemedEvent:
    """아이템 교환 완료 이벤트.

    포인트 이전이 커밋된 뒤 발행되며, 판매자에게 알림 메일을 보내는 데 쓰인다.
    컨슈머가 DB 를 다시 읽지 않도록 메일에 필요한 값을 함께 싣는다.
    """

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    redemption_id: str
    item_id: str
    item_title: str
    points: int
    buyer_id: str
    buyer_name: str
    seller_id: str
    seller_name: str
    seller_email: str
    seller_points_total: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            redemption_id=str(data["redemption_id"]),
            item_id=str(data["item_id"]),
            item_title=str(data["item_title"]),
            points=int(data["points"]),
            buyer_id=str(data["buyer_id"]),
            buyer_name=str(data.get("buyer_name", "")),
            seller_id=str(data["seller_id"]),
            seller_name=str(data.get("seller_name", "")),
            seller_email=str(data["seller_email"]),
            seller_points_total=int(data["seller_points_total"]),
        )
