"""아이템(중고 의류 등록물) 도메인 모델."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from common.models.user import OwnerSummary


class ItemStatus(StrEnum):
    """아이템 생애주기 상태.

    교환 경로가 도달할 수 있는 것은 AVAILABLE -> REDEEMED 뿐이다.
    PENDING, SWAPPED 는 기존 데이터 호환을 위해 남겨 둔 값이며 별도 의미가 없다.
    """

    AVAILABLE = "available"
    PENDING = "pending"
    SWAPPED = "swapped"
    REDEEMED = "redeemed"


class Item(BaseModel):
    id: str | None = None
    owner_id: str
    title: str
    description: str = ""
    category: str = ""
    type: str = ""
    size: str = ""
    condition: str = ""
    tags: list[str] = Field(default_factory=list)
    image_url: str = ""
    price: int = Field(gt=0)
    status: ItemStatus = ItemStatus.AVAILABLE
    approved: bool = False
    redeemed_by: str | None = None
    redeemed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_redeemable(self) -> bool:
        return self.approved and self.status == ItemStatus.AVAILABLE


class ItemCreateInput(BaseModel):
    """아이템 등록 입력. multipart 폼 값을 그대로 받아 검증한다."""

    title: str
    description: str = ""
    category: str = ""
    type: str = ""
    size: str = ""
    condition: str = ""
    tags: list[str] = Field(default_factory=list)
    price: int = Field(gt=0)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: object) -> object:
        # 폼에서는 "a, b, c" 문자열로 들어온다.
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value


class ItemWithOwner(BaseModel):
    """목록/상세 응답용. owner 는 등록자가 삭제된 경우 None 이다."""

    item: Item
    owner: OwnerSummary | None = None
