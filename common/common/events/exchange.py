"""스킬 교환(예약/크레딧) 관련 이벤트 정의.

notification 토픽의 이벤트는 실시간 게이트웨이가 소비해 user:{id} 채널로 전달하고,
stats 토픽의 이벤트는 exchange-service 의 통계 재계산 컨슈머가 소비한다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Self


class ExchangeEventType:
    """이벤트 타입 상수."""

    CREDIT_UPDATED = "credit.updated"
    BOOKING_UPDATED = "booking.updated"
    NOTIFICATION_CREATED = "notification.created"
    STATS_RECONCILE = "stats.reconcile"


@dataclass(slots=True)
class CreditUpdatedEvent:
    """사용자 잔액 변경 이벤트. 커밋 이후의 최신 잔액을 담는다."""

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    user_id: str
    current: int
    reserved: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            user_id=str(data["user_id"]),
            current=int(data["current"]),
            reserved=int(data["reserved"]),
        )


@dataclass(slots=True)
class BookingUpdatedEvent:
    """예약 상태 변경 이벤트. user_ids 각각에게 전달된다."""

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    user_ids: list[str]
    booking: dict[str, Any]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            user_ids=[str(v) for v in data.get("user_ids") or []],
            booking=dict(data.get("booking") or {}),
        )


@dataclass(slots=True)
class NotificationCreatedEvent:
    """사용자 토스트 알림 이벤트."""

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    user_id: str
    level: str  # "info" | "success" | "warning" | "error"
    title: str
    message: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            user_id=str(data["user_id"]),
            level=str(data.get("level", "info")),
            title=str(data.get("title", "")),
            message=str(data["message"]),
        )


@dataclass(slots=True)
class StatsReconcileEvent:
    """커밋 이후의 통계 갱신(bookings_count, 평점)이 실패했을 때 발행되는 재계산 요청.

    provider_id 가 있으면 제공자 평점도 리뷰 컬렉션 기준으로 다시 계산한다.
    """

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    offer_id: str
    provider_id: str | None
    booking_id: str
    reason: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            offer_id=str(data["offer_id"]),
            provider_id=(
                str(data["provider_id"]) if data.get("provider_id") else None
            ),
            booking_id=str(data["booking_id"]),
            reason=str(data.get("reason", "")),
        )
