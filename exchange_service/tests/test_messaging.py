from __future__ import annotations

from datetime import datetime, timezone

import pytest

from common.eventbus.config import get_brokers, get_group_id
from common.eventbus.core import MaxRetryExceededError
from common.eventbus.topics import TOPIC_NOTIFICATION, TOPIC_STATS
from common.events.exchange import (
    BookingUpdatedEvent,
    ExchangeEventType,
    NotificationCreatedEvent,
    StatsReconcileEvent,
)
from exchange_service.app.messaging.notification_sink import (
    KafkaNotificationSink,
    NullNotificationSink,
)
from exchange_service.app.messaging.stats_publisher import KafkaStatsReconcilePublisher
from exchange_service.app.models.account import CreditBalance
from exchange_service.app.models.booking import Booking
from exchange_service.app.models.notification import Notification, NotificationLevel

from fakes import RecordingEventBus, new_id


def _booking() -> Booking:
    now = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)
    return Booking(
        id=new_id(),
        offer_id=new_id(),
        requester_id=new_id(),
        provider_id=new_id(),
        date_start=now,
        date_end=now,
        cost_credits=5,
        created_at=now,
        updated_at=now,
    )


def test_credit_update_is_published_to_notification_topic() -> None:
    bus = RecordingEventBus()
    sink = KafkaNotificationSink(bus)

    # when
    sink.emit_credit_update("user-1", CreditBalance(current=10, reserved=5))

    # then:
    topic, event = bus.published[0]
    assert topic == TOPIC_NOTIFICATION.base
    assert event.payload["type"] == ExchangeEventType.CREDIT_UPDATED
    assert event.payload["source"] == "exchange-service"
    assert (event.payload["current"], event.payload["reserved"]) == (10, 5)
    assert event.id == event.payload["id"]


def test_booking_update_payload_decodes() -> None:
    bus = RecordingEventBus()
    booking = _booking()

    KafkaNotificationSink(bus).emit_booking_update(booking.participant_ids(), booking)

    decoded = BookingUpdatedEvent.from_dict(bus.published[0][1].payload)
    assert decoded.user_ids == booking.participant_ids()
    assert decoded.booking["id"] == booking.id
    assert decoded.booking["status"] == "pending"
    assert decoded.booking["date_start"].startswith("2026-11-02T09:00:00")


def test_notification_payload_decodes() -> None:
    bus = RecordingEventBus()

    KafkaNotificationSink(bus, source="tests").emit_notification(
        "user-2",
        Notification(level=NotificationLevel.WARNING, title="t", message="m"),
    )

    decoded = NotificationCreatedEvent.from_dict(bus.published[0][1].payload)
    assert decoded.level == "warning"
    assert decoded.source == "tests"
    assert decoded.user_id == "user-2"


def test_publish_failure_is_swallowed() -> None:
    bus = RecordingEventBus(fail=True)
    sink = KafkaNotificationSink(bus)

    sink.emit_credit_update("user-1", CreditBalance(current=1, reserved=0))
    sink.emit_notification("user-1", Notification(title="t", message="m"))

    assert bus.published == []


def test_null_sink_accepts_everything() -> None:
    sink = NullNotificationSink()
    booking = _booking()

    sink.emit_credit_update("user-1", CreditBalance(current=1, reserved=0))
    sink.emit_booking_update(booking.participant_ids(), booking)
    sink.emit_notification("user-1", Notification(title="t", message="m"))


def test_stats_reconcile_request_is_published() -> None:
    bus = RecordingEventBus()
    publisher = KafkaStatsReconcilePublisher(bus)

    # when
    publisher.request_reconcile(
        offer_id="offer-1",
        booking_id="booking-1",
        reason="rating_update_failed",
        provider_id="user-9",
    )

    # then:
    topic, event = bus.published[0]
    assert topic == TOPIC_STATS.base
    decoded = StatsReconcileEvent.from_dict(event.payload)
    assert decoded.offer_id == "offer-1"
    assert decoded.provider_id == "user-9"
    assert decoded.reason == "rating_update_failed"


def test_stats_reconcile_publish_failure_is_swallowed() -> None:
    publisher = KafkaStatsReconcilePublisher(RecordingEventBus(fail=True))

    publisher.request_reconcile(offer_id="o", booking_id="b", reason="r")


def test_group_id_falls_back_to_service_name(monkeypatch) -> None:
    monkeypatch.delenv("KAFKA_GROUP_ID", raising=False)

    assert get_group_id() == "exchange-service"


def test_brokers_are_required(monkeypatch) -> None:
    monkeypatch.delenv("KAFKA_BOOTSTRAP_SERVERS", raising=False)

    with pytest.raises(RuntimeError):
        get_brokers()


def test_stats_topic_retry_chain() -> None:
    assert TOPIC_STATS.get_retry_topic(1) == "skill-exchange.stats.retry.1"
    assert TOPIC_STATS.dlq() == "skill-exchange.stats.dlq"
    with pytest.raises(MaxRetryExceededError):
        TOPIC_STATS.get_retry_topic(len(TOPIC_STATS.get_retry_topics()) + 1)
