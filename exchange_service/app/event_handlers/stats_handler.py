"""통계 재계산 이벤트 핸들러.

커밋 이후의 bookings_count / 평점 갱신이 실패했을 때 발행된 stats.reconcile 이벤트를
소비해 원천 데이터(bookings, reviews)에서 통계를 다시 계산한다.
재계산은 덮어쓰기이므로 같은 이벤트를 여러 번 처리해도 결과가 같다.
"""

from __future__ import annotations

import logging

from pymongo.database import Database

from common.eventbus.config import get_brokers, get_group_id
from common.eventbus.core import Event
from common.eventbus.kafka import KafkaEventBus
from common.eventbus.topics import TOPIC_STATS
from common.events.exchange import ExchangeEventType, StatsReconcileEvent

from ..messaging.stats_publisher import NullStatsReconcilePublisher
from ..repositories.account_repository import AccountRepository
from ..repositories.booking_repository import BookingRepository
from ..repositories.offer_repository import OfferRepository
from ..repositories.review_repository import ReviewRepository
from ..services.statistics_service import StatisticsService


logger = logging.getLogger(__name__)


def handle_stats_event(evt: Event, *, service: StatisticsService) -> None:
    payload = evt.payload
    if not isinstance(payload, dict):
        logger.error("unexpected payload type for event %s: %r", evt.id, type(payload))
        return

    event_type = str(payload.get("type", ""))
    if event_type != ExchangeEventType.STATS_RECONCILE:
        logger.debug("ignoring stats event type=%s id=%s", event_type, evt.id)
        return

    try:
        event = StatsReconcileEvent.from_dict(payload)
    except Exception:  # noqa: BLE001
        logger.exception("failed to decode StatsReconcileEvent payload=%r", payload)
        raise

    logger.info(
        "handling stats.reconcile event id=%s offer_id=%s reason=%s",
        event.id,
        event.offer_id,
        event.reason,
    )
    # 실패하면 예외를 그대로 올려 retry 토픽/DLQ 로 넘긴다.
    service.reconcile(event.offer_id, event.provider_id)


def build_statistics_service(database: Database) -> StatisticsService:
    return StatisticsService(
        AccountRepository(database),
        OfferRepository(database),
        BookingRepository(database),
        ReviewRepository(database),
        NullStatsReconcilePublisher(),
    )


def run_stats_consumer(stop_flag: list[bool], database: Database) -> None:
    """stats 토픽을 소비하는 구독 루프를 실행한다.

    stop_flag[0] 이 True 가 되면 루프를 종료한다.
    """
    logger.info("stats-consumer starting up")

    brokers = get_brokers()
    group_id = get_group_id() + "-stats"

    bus = KafkaEventBus(brokers)
    service = build_statistics_service(database)

    try:
        logger.info("subscribing to topic=%s group_id=%s", TOPIC_STATS.base, group_id)
        bus.subscribe(
            group_id=group_id,
            topic=TOPIC_STATS,
            handler=lambda evt: handle_stats_event(evt, service=service),
            stop_flag=stop_flag,
        )
    finally:
        bus.close()
        logger.info("stats-consumer stopped")
