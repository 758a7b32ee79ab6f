from __future__ import annotations

import pytest

from common.eventbus.core import Event
from common.eventbus.topics import TOPIC_STATS
from exchange_service.app.event_handlers import stats_handler


class FakeStatisticsService:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []
        self.raise_error: Exception | None = None

    def reconcile(self, offer_id: str, provider_id: str | None = None) -> None:
        if self.raise_error is not None:
            raise self.raise_error
        self.calls.append((offer_id, provider_id))


def _reconcile_payload(**overrides) -> dict:
    payload = {
        "id": "evt-1",
        "type": "stats.reconcile",
        "timestamp": "2026-11-02T09:00:00+00:00",
        "source": "exchange-service",
        "version": "1.0",
        "offer_id": "offer-1",
        "provider_id": "user-1",
        "booking_id": "booking-1",
        "reason": "rating_update_failed",
    }
    payload.update(overrides)
    return payload


def test_reconcile_event_calls_service() -> None:
    service = FakeStatisticsService()

    stats_handler.handle_stats_event(
        Event(id="evt-1", payload=_reconcile_payload()), service=service
    )

    assert service.calls == [("offer-1", "user-1")]


def test_reconcile_event_without_provider() -> None:
    service = FakeStatisticsService()

    stats_handler.handle_stats_event(
        Event(id="evt-1", payload=_reconcile_payload(provider_id=None)),
        service=service,
    )

    assert service.calls == [("offer-1", None)]


def test_other_event_types_are_ignored() -> None:
    service = FakeStatisticsService()

    stats_handler.handle_stats_event(
        Event(id="evt-2", payload={"type": "credit.updated"}), service=service
    )
    stats_handler.handle_stats_event(Event(id="evt-3", payload="raw"), service=service)

    assert service.calls == []


def test_service_failure_propagates_for_retry() -> None:
    service = FakeStatisticsService()
    service.raise_error = RuntimeError("mongo down")

    with pytest.raises(RuntimeError):
        stats_handler.handle_stats_event(
            Event(id="evt-1", payload=_reconcile_payload()), service=service
        )


def test_malformed_payload_propagates() -> None:
    service = FakeStatisticsService()
    payload = _reconcile_payload()
    del payload["offer_id"]

    with pytest.raises(KeyError):
        stats_handler.handle_stats_event(Event(id="evt-1", payload=payload), service=service)


class FakeKafkaEventBus:
    instances: list["FakeKafkaEventBus"] = []
    next_event: Event | None = None

    def __init__(self, brokers: str) -> None:
        self.brokers = brokers
        self.subscribe_calls: list[dict] = []
        self.closed = False
        self.__class__.instances.append(self)

    def subscribe(self, *, group_id, topic, handler, stop_flag) -> None:
        self.subscribe_calls.append({"group_id": group_id, "topic": topic})
        if self.__class__.next_event is not None:
            handler(self.__class__.next_event)

    def close(self) -> None:
        self.closed = True


def test_run_stats_consumer_subscribes_and_closes(monkeypatch: pytest.MonkeyPatch) -> None:
    service = FakeStatisticsService()
    FakeKafkaEventBus.instances = []
    FakeKafkaEventBus.next_event = Event(id="evt-1", payload=_reconcile_payload())
    monkeypatch.setattr(stats_handler, "get_brokers", lambda: "kafka:9092")
    monkeypatch.setattr(stats_handler, "get_group_id", lambda: "exchange-service")
    monkeypatch.setattr(stats_handler, "KafkaEventBus", FakeKafkaEventBus)
    monkeypatch.setattr(stats_handler, "build_statistics_service", lambda db: service)

    # when
    stats_handler.run_stats_consumer([False], database=object())

    # then:
    bus = FakeKafkaEventBus.instances[0]
    assert bus.brokers == "kafka:9092"
    assert bus.subscribe_calls == [
        {"group_id": "exchange-service-stats", "topic": TOPIC_STATS}
    ]
    assert bus.closed is True
    assert service.calls == [("offer-1", "user-1")]
