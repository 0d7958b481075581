from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic.functional_serializers import PlainSerializer

from common.mongo.types import ensure_utc_datetime


def to_utc_iso8601(value: datetime) -> str:
    """API 응답의 시각은 항상 UTC ISO8601 (+00:00) 로 내려간다."""
    return ensure_utc_datetime(value).isoformat()


UtcDateTime = Annotated[
    datetime,
    PlainSerializer(to_utc_iso8601, return_type=str, when_used="json"),
]
