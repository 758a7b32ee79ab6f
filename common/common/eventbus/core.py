from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# 실패한 이벤트를 다시 처리하기까지의 대기 시간(초). 인덱스 i 는 retry.{i+1} 토픽에 대응한다.
# 컨슈머가 대기 중에도 poll 간격 제한을 넘지 않도록 max.poll.interval.ms 보다 짧게 유지한다.
RetryDelays: list[float] = [
    5.0,
    30.0,
    120.0,
    240.0,
]


class MaxRetryExceededError(Exception):
    """최대 재시도 횟수를 초과한 경우 사용되는 예외."""


@dataclass(slots=True)
class Event:
    """Kafka 메시지 한 건의 메타데이터와 페이로드.

    payload 는 JSON 직렬화 가능한 dict 를 담고, 인코딩/디코딩은 Kafka I/O 레이어가 맡는다.
    failed_at 은 마지막 처리 실패 시각(epoch 초)으로, 재시도 대기 시간 계산에 쓰인다.
    """

    id: str
    payload: Any
    retry: int = 0
    max_retry: int = 0
    last_error: str | None = None
    failed_at: float | None = None

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

    def retry_delay(self, retry_count: int) -> float:
        """retry.{retry_count} 토픽에서 꺼낸 이벤트가 기다려야 하는 시간."""
        if retry_count <= 0:
            return 0.0
        if retry_count > len(RetryDelays):
            raise MaxRetryExceededError()
        return RetryDelays[retry_count - 1]
