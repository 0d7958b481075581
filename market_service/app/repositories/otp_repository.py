from __future__ import annotations

from datetime import datetime, timezone

from pymongo import ReturnDocument
from pymongo.database import Database

from ..models.otp import OtpCode
from .documents.otp_document import OtpDocument
from .interfaces import OtpRepositoryInterface


class OtpRepository(OtpRepositoryInterface):
    """otp_codes 컬렉션에 대한 MongoDB 접근 레이어.

    TTL 인덱스가 만료 문서를 지우지만 삭제는 지연될 수 있으므로,
    조회 조건에도 expires_at > now 를 넣는다.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["otp_codes"]

    def save(self, otp: OtpCode) -> None:
        record = OtpDocument.from_domain(otp).to_mongo_record()
        self._col.replace_one({"email": otp.email}, record, upsert=True)

    def consume(self, email: str, code_hash: str, now: datetime) -> OtpCode | None:
        # 코드는 한 번만 쓸 수 있어야 하므로 찾는 동시에 지운다.
        raw = self._col.find_one_and_delete(
            {"email": email, "code_hash": code_hash, "expires_at": {"$gt": now}}
        )
        if not raw:
            return None
        return OtpDocument.model_validate(raw).to_domain()

    def record_failed_attempt(self, email: str, max_attempts: int) -> None:
        doc = self._col.find_one_and_update(
            {"email": email},
            {
                "$inc": {"attempts": 1},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc and int(doc.get("attempts", 0)) >= max_attempts:
            self._col.delete_one({"_id": doc["_id"]})

    def discard(self, email: str) -> None:
        self._col.delete_one({"email": email})
