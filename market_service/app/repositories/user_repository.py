from __future__ import annotations

from datetime import datetime, timezone

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.models.user import User
from common.mongo.types import is_object_id, to_object_id

from ..errors import UserAlreadyExistsError
from .documents.user_document import UserDocument
from .interfaces import Session, UserRepositoryInterface


class UserRepository(UserRepositoryInterface):
    """users 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["users"]

    @staticmethod
    def _from_document(doc: dict) -> User:
        return UserDocument.model_validate(doc).to_domain()

    def find_by_id(self, user_id: str, session: Session = None) -> User | None:
        if not is_object_id(user_id):
            return None
        doc = self._col.find_one({"_id": to_object_id(user_id)}, session=session)
        if not doc:
            return None
        return self._from_document(doc)

    def find_by_email(self, email: str) -> User | None:
        doc = self._col.find_one({"email": email})
        if not doc:
            return None
        return self._from_document(doc)

    def find_many_by_ids(self, user_ids: list[str]) -> dict[str, User]:
        """여러 유저를 한 번에 조회한다 (목록 응답의 N+1 방지)."""

        object_ids = [to_object_id(uid) for uid in set(user_ids) if is_object_id(uid)]
        if not object_ids:
            return {}

        result: dict[str, User] = {}
        for doc in self._col.find({"_id": {"$in": object_ids}}):
            user = self._from_document(doc)
            if user.id is not None:
                result[user.id] = user
        return result

    def insert(self, user: User) -> User:
        now = datetime.now(timezone.utc)
        user.created_at = now
        user.updated_at = now

        payload = UserDocument.from_domain(user).to_mongo_record()
        try:
            result = self._col.insert_one(payload)
        except DuplicateKeyError as exc:
            # 중복 확인과 insert 사이에 같은 이메일로 동시에 가입한 경우
            raise UserAlreadyExistsError() from exc
        payload["_id"] = result.inserted_id
        return self._from_document(payload)

    def update_profile(self, user_id: str, name: str) -> User | None:
        if not is_object_id(user_id):
            return None
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(user_id)},
            {"$set": {"name": name, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def debit(self, user_id: str, amount: int, session: Session = None) -> User | None:
        # 잔액 조건을 필터에 넣어 읽기-쓰기 사이의 틈 없이 차감한다.
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(user_id), "balance": {"$gte": amount}},
            {
                "$inc": {"balance": -amount},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def credit(self, user_id: str, amount: int, session: Session = None) -> User | None:
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(user_id)},
            {
                "$inc": {"balance": amount},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        if not doc:
            return None
        return self._from_document(doc)
