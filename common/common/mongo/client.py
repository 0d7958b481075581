from __future__ import annotations

import logging
import threading
from typing import Optional, cast

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from .config import get_mongo_db_name, get_mongo_timeout_ms, get_mongo_uri


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI 에서 URI 를 읽고 ping 으로 연결을 검증한다.
    - DB 이름은 MONGO_DB_NAME 이 우선이고, 없으면 URI 의 기본 DB 를 쓴다.
    - users/items/otp_codes/redemptions 인덱스를 한 번만 만든다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        timeout_ms = get_mongo_timeout_ms()
        client: MongoClient = MongoClient(
            get_mongo_uri(),
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            tz_aware=True,
        )

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        db_name = get_mongo_db_name()
        try:
            db = client[db_name] if db_name else client.get_default_database()
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        try:
            _ensure_indexes(db)
        except Exception as exc:  # noqa: BLE001
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            client.close()
            raise

        _client = client
        _db = db

        logger.info("MongoDB connected and indexes ensured (db=%s)", cast(Database, _db).name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다. FastAPI 의존성으로도 쓴다."""

    if _db is None:
        get_client()
    assert _db is not None  # get_client 가 실패했다면 예외가 이미 났어야 한다.
    return _db


def close_client() -> None:
    """애플리케이션 종료 시 연결을 닫는다."""

    global _client, _db

    with _lock:
        if _client is not None:
            _client.close()
        _client = None
        _db = None


def _ensure_indexes(db: Database) -> None:
    """필수 인덱스를 생성한다. 중복 생성은 MongoDB 가 무시하므로 idempotent 하다."""

    users = db["users"]
    users.create_index([("email", ASCENDING)], name="uniq_email", unique=True)

    items = db["items"]
    # 공개 목록 / 관리자 대기열: approved + status 필터 후 최신순
    items.create_index(
        [("approved", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)],
        name="idx_approved_status_created_at",
    )
    items.create_index(
        [("owner_id", ASCENDING), ("created_at", DESCENDING)],
        name="idx_owner_created_at",
    )

    otp_codes = db["otp_codes"]
    # 이메일당 대기 중인 코드는 하나뿐이다. 새 요청이 이전 코드를 덮어쓴다.
    otp_codes.create_index([("email", ASCENDING)], name="uniq_email", unique=True)
    otp_codes.create_index(
        [("expires_at", ASCENDING)],
        name="ttl_expires_at",
        expireAfterSeconds=0,
    )

    redemptions = db["redemptions"]
    # 아이템당 교환 기록은 최대 하나
    redemptions.create_index(
        [("item_id", ASCENDING)], name="uniq_item_id", unique=True
    )
    redemptions.create_index(
        [("buyer_id", ASCENDING), ("created_at", DESCENDING)],
        name="idx_buyer_created_at",
    )
