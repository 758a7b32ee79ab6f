"""사용자 알림 싱크.

코어 서비스는 커밋이 끝난 뒤에만 싱크를 호출한다. 싱크 실패가 이미 커밋된 상태 변경을
되돌리거나 호출을 실패시키면 안 되므로, 구현체는 오류를 로그로 남기고 삼킨다.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Iterable, Protocol

from common.eventbus.core import Event
from common.eventbus.helpers import new_json_event
from common.eventbus.topics import TOPIC_NOTIFICATION
from common.events.exchange import (
    BookingUpdatedEvent,
    CreditUpdatedEvent,
    ExchangeEventType,
    NotificationCreatedEvent,
)

from ..models.account import CreditBalance
from ..models.booking import Booking
from ..models.notification import Notification, NotificationLevel


logger = logging.getLogger(__name__)

SOURCE = "exchange-service"


class EventPublisher(Protocol):
    """KafkaEventBus 의 발행 측 계약."""

    def publish(self, topic: str, event: Event) -> None:  # pragma: no cover - Protocol
        ...


class NotificationSink(Protocol):
    def emit_credit_update(
        self, user_id: str, balance: CreditBalance
    ) -> None:  # pragma: no cover - Protocol
        ...

    def emit_booking_update(
        self, user_ids: Iterable[str], booking: Booking
    ) -> None:  # pragma: no cover - Protocol
        ...

    def emit_notification(
        self, user_id: str, notification: Notification
    ) -> None:  # pragma: no cover - Protocol
        ...


class NullNotificationSink(NotificationSink):
    """알림이 꺼져 있을 때 쓰는 싱크. 아무것도 하지 않는다."""

    def emit_credit_update(self, user_id: str, balance: CreditBalance) -> None:
        return None

    def emit_booking_update(self, user_ids: Iterable[str], booking: Booking) -> None:
        return None

    def emit_notification(self, user_id: str, notification: Notification) -> None:
        return None


class KafkaNotificationSink(NotificationSink):
    """notification 토픽으로 JSON 이벤트를 발행한다.

    실시간 게이트웨이가 이 토픽을 구독해 user:{id} 소켓 채널로 전달한다.
    """

    def __init__(self, event_bus: EventPublisher, *, source: str = SOURCE) -> None:
        self._event_bus = event_bus
        self._source = source

    def _publish(self, payload: dict[str, Any], event_id: str) -> None:
        try:
            wrapped = new_json_event(payload=payload, event_id=event_id)
            self._event_bus.publish(TOPIC_NOTIFICATION.base, wrapped)
        except Exception:  # noqa: BLE001
            logger.exception(
                "failed to publish notification event id=%s type=%s",
                event_id,
                payload.get("type"),
            )

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def emit_credit_update(self, user_id: str, balance: CreditBalance) -> None:
        event_id = uuid.uuid4().hex
        evt = CreditUpdatedEvent(
            id=event_id,
            type=ExchangeEventType.CREDIT_UPDATED,
            timestamp=self._now(),
            source=self._source,
            version="1.0",
            user_id=str(user_id),
            current=balance.current,
            reserved=balance.reserved,
        )
        self._publish(asdict(evt), event_id)

    def emit_booking_update(self, user_ids: Iterable[str], booking: Booking) -> None:
        event_id = uuid.uuid4().hex
        evt = BookingUpdatedEvent(
            id=event_id,
            type=ExchangeEventType.BOOKING_UPDATED,
            timestamp=self._now(),
            source=self._source,
            version="1.0",
            user_ids=[str(u) for u in user_ids],
            booking=booking.model_dump(mode="json"),
        )
        self._publish(asdict(evt), event_id)

    def emit_notification(self, user_id: str, notification: Notification) -> None:
        event_id = uuid.uuid4().hex
        evt = NotificationCreatedEvent(
            id=event_id,
            type=ExchangeEventType.NOTIFICATION_CREATED,
            timestamp=self._now(),
            source=self._source,
            version="1.0",
            user_id=str(user_id),
            level=NotificationLevel(notification.level).value,
            title=notification.title,
            message=notification.message,
        )
        self._publish(asdict(evt), event_id)
