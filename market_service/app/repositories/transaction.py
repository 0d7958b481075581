from __future__ import annotations

import logging
from typing import Callable, TypeVar

from pymongo import MongoClient, ReadPreference
from pymongo.errors import PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from ..errors import StorageUnavailableError
from .interfaces import Session, TransactionRunnerInterface


logger = logging.getLogger(__name__)

T = TypeVar("T")


class MongoTransactionRunner(TransactionRunnerInterface):
    """MongoDB 멀티 도큐먼트 트랜잭션 실행기.

    - ClientSession.with_transaction 을 사용하므로 TransientTransactionError
      (동시 교환에서의 write conflict 포함) 는 드라이버가 callback 을 다시 실행한다.
    - callback 이 던진 도메인 예외는 트랜잭션을 abort 한 뒤 그대로 전파된다.
    - 그 밖의 드라이버 오류는 StorageUnavailableError 로 바꾼다. 이 경우 커밋된 것은 없다.
    - 트랜잭션은 replica set 이 필요하다.
    """

    def __init__(self, client: MongoClient) -> None:
        self._client = client

    def run(self, callback: Callable[[Session], T]) -> T:
        try:
            with self._client.start_session() as session:
                return session.with_transaction(
                    callback,
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern("majority"),
                    read_preference=ReadPreference.PRIMARY,
                )
        except PyMongoError as exc:
            logger.error("mongo transaction failed: %s", exc)
            raise StorageUnavailableError() from exc
