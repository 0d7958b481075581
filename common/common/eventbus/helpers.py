from __future__ import annotations

import time
from typing import Any, Mapping

from .core import Event, RetryDelays


def new_json_event(
    payload: Mapping[str, Any],
    *,
    max_retry: int | None = None,
    event_id: str | None = None,
) -> Event:
    """payload 를 Event 봉투로 감싼다.

    - event_id 가 없으면 나노초 타임스탬프로 만든다.
    - max_retry 가 1~len(RetryDelays) 범위를 벗어나면 len(RetryDelays) 를 쓴다.
    """
    if max_retry is None or max_retry <= 0 or max_retry > len(RetryDelays):
        max_retry = len(RetryDelays)

    if not event_id:
        event_id = str(time.time_ns())

    return Event(id=event_id, payload=dict(payload), retry=0, max_retry=max_retry)


def decode_event(raw: Mapping[str, Any]) -> Event:
    """Kafka 에서 읽은 dict 를 Event 로 되돌린다."""
    payload = raw.get("payload")
    return Event(
        id=str(raw.get("id", "")),
        payload=dict(payload) if isinstance(payload, Mapping) else {},
        retry=int(raw.get("retry", 0)),
        max_retry=int(raw.get("max_retry", 0)),
        last_error=raw.get("last_error"),
        not_before=float(raw.get("not_before", 0.0)),
    )
