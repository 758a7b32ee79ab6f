"""통계 재계산 요청 발행기."""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Protocol

from common.eventbus.helpers import new_json_event
from common.eventbus.topics import TOPIC_STATS
from common.events.exchange import ExchangeEventType, StatsReconcileEvent

from .notification_sink import SOURCE, EventPublisher


logger = logging.getLogger(__name__)


class StatsReconcilePublisherInterface(Protocol):
    def request_reconcile(
        self,
        *,
        offer_id: str,
        booking_id: str,
        reason: str,
        provider_id: str | None = None,
    ) -> None:  # pragma: no cover - Protocol
        ...


class NullStatsReconcilePublisher(StatsReconcilePublisherInterface):
    def request_reconcile(
        self,
        *,
        offer_id: str,
        booking_id: str,
        reason: str,
        provider_id: str | None = None,
    ) -> None:
        logger.warning(
            "stats reconcile requested but publisher is disabled offer_id=%s booking_id=%s",
            offer_id,
            booking_id,
        )


class KafkaStatsReconcilePublisher(StatsReconcilePublisherInterface):
    def __init__(self, event_bus: EventPublisher, *, source: str = SOURCE) -> None:
        self._event_bus = event_bus
        self._source = source

    def request_reconcile(
        self,
        *,
        offer_id: str,
        booking_id: str,
        reason: str,
        provider_id: str | None = None,
    ) -> None:
        event_id = uuid.uuid4().hex
        evt = StatsReconcileEvent(
            id=event_id,
            type=ExchangeEventType.STATS_RECONCILE,
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=self._source,
            version="1.0",
            offer_id=str(offer_id),
            provider_id=str(provider_id) if provider_id else None,
            booking_id=str(booking_id),
            reason=reason,
        )
        try:
            wrapped = new_json_event(payload=asdict(evt), event_id=event_id)
            self._event_bus.publish(TOPIC_STATS.base, wrapped)
        except Exception:  # noqa: BLE001
            logger.exception(
                "failed to publish stats reconcile event offer_id=%s booking_id=%s",
                offer_id,
                booking_id,
            )
            return

        logger.info(
            "published StatsReconcile event id=%s offer_id=%s booking_id=%s reason=%s",
            event_id,
            offer_id,
            booking_id,
            reason,
        )
