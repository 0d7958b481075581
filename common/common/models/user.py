from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


DEFAULT_SIGNUP_GRANT = 50


class UserRole(StrEnum):
    MEMBER = "member"
    ADMINISTRATOR = "administrator"


class User(BaseModel):
    """유저 도메인 모델.

    - Mongo users 컬렉션과 1:1 로 매핑된다.
    - balance 는 교환(redeem) 트랜잭션만 바꾼다. 가입 시 한 번 지급되는 포인트가 유일한 발행이다.
    - password_hash 는 도메인 밖(API 응답)으로 나가지 않는다. UserProfile 을 사용한다.
    """

    id: str | None = None
    name: str
    email: str
    password_hash: str
    balance: int = Field(default=DEFAULT_SIGNUP_GRANT, ge=0)
    role: UserRole = UserRole.MEMBER
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMINISTRATOR


class UserProfile(BaseModel):
    """자격 증명을 뺀 유저 조회 모델."""

    id: str
    name: str
    email: str
    role: UserRole
    balance: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        assert user.id is not None
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            balance=user.balance,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class OwnerSummary(BaseModel):
    """아이템 목록에 함께 내려주는 등록자 요약."""

    id: str
    name: str
    email: str
