from __future__ import annotations

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from ..errors import ItemNotAvailableError
from ..models.redemption import Redemption
from .documents.redemption_document import RedemptionDocument
from .interfaces import RedemptionRepositoryInterface, Session


class RedemptionRepository(RedemptionRepositoryInterface):
    """redemptions 컬렉션(포인트 이전 원장)에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["redemptions"]

    def create(self, redemption: Redemption, session: Session = None) -> Redemption:
        payload = RedemptionDocument.from_domain(redemption).to_mongo_record()
        try:
            result = self._col.insert_one(payload, session=session)
        except DuplicateKeyError as exc:
            # item_id 유니크 인덱스: 같은 아이템의 두 번째 원장 기록은 거부된다.
            raise ItemNotAvailableError() from exc
        return redemption.model_copy(update={"id": str(result.inserted_id)})
