from __future__ import annotations

from dataclasses import dataclass


# 재시도 토픽별 대기 시간(초). 알림 메일은 사람이 기다리는 것이므로 짧게 가져간다.
RetryDelays: list[float] = [
    30.0,
    120.0,
    600.0,
]


class MaxRetryExceededError(Exception):
    """최대 재시도 횟수를 초과한 경우 사용되는 예외."""


@dataclass(slots=True)
class Event:
    """Kafka 메시지 봉투.

    payload 는 JSON 직렬화 가능한 dict 이고, retry/max_retry/last_error 는
    재시도 토픽을 거치며 갱신된다. not_before 는 재시도 이벤트를 처리해도 되는
    가장 이른 시각(epoch 초)이다.
    """

    id: str
    payload: dict
    retry: int = 0
    max_retry: int = 0
    last_error: str | None = None
    not_before: float = 0.0

    def __post_init__(self) -> None:
        if self.max_retry <= 0 or self.max_retry > len(RetryDelays):
            self.max_retry = len(RetryDelays)


@dataclass(frozen=True, slots=True)
class Topic:
    base: str

    def dlq(self) -> str:
        return f"{self.base}.dlq"

    def get_retry_topics(self) -> list[str]:
        return [
            f"{self.base}.retry.{index}" for index in range(1, len(RetryDelays) + 1)
        ]

    def get_retry_topic(self, retry_count: int) -> str:
        if retry_count <= 0 or retry_count > len(RetryDelays):
            raise MaxRetryExceededError()
        return f"{self.base}.retry.{retry_count}"

    def all_subscribed(self) -> list[str]:
        """컨슈머가 구독할 토픽: 기본 토픽 + 모든 재시도 토픽."""
        return [self.base, *self.get_retry_topics()]
