from __future__ import annotations

from typing import Any

from common.models.user import User, UserRole
from common.mongo.types import BaseDocument, from_object_id


class UserDocument(BaseDocument):
    """MongoDB users 컬렉션 도큐먼트 모델."""

    name: str
    email: str
    password_hash: str
    balance: int
    role: UserRole

    def to_mongo_record(self) -> dict[str, Any]:
        record = super().to_mongo_record()
        record["role"] = str(self.role)
        return record

    @classmethod
    def from_domain(cls, user: User) -> "UserDocument":
        # 도메인 id 는 문자열이고, 신규 유저는 None 이라 Mongo 가 _id 를 만든다.
        data = user.model_dump(exclude={"id"})
        if user.id is not None:
            data["_id"] = user.id
        return cls.model_validate(data)

    def to_domain(self) -> User:
        return User(
            id=from_object_id(self.id),
            name=self.name,
            email=self.email,
            password_hash=self.password_hash,
            balance=self.balance,
            role=self.role,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
