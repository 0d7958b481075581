from __future__ import annotations

import os


KAFKA_BOOTSTRAP_SERVERS_ENV = "KAFKA_BOOTSTRAP_SERVERS"
KAFKA_GROUP_ID_ENV = "KAFKA_GROUP_ID"


def get_brokers() -> str | None:
    """Kafka 브로커 주소. 설정되지 않았으면 None (이벤트 발행 비활성)."""

    value = os.getenv(KAFKA_BOOTSTRAP_SERVERS_ENV, "").strip()
    return value or None


def require_brokers() -> str:
    """컨슈머처럼 브로커가 반드시 있어야 하는 곳에서 사용한다."""

    value = get_brokers()
    if not value:
        raise RuntimeError(
            f"{KAFKA_BOOTSTRAP_SERVERS_ENV} environment variable is required"
        )
    return value


def get_group_id() -> str:
    value = os.getenv(KAFKA_GROUP_ID_ENV, "").strip()
    if not value:
        raise RuntimeError(f"{KAFKA_GROUP_ID_ENV} environment variable is required")
    return value
