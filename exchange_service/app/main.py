from __future__ import annotations

import logging
import os
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.eventbus.kafka import close_kafka_event_bus, get_kafka_event_bus
from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware
from common.mongo.client import close_client, get_database

from .api.errors import register_exception_handlers
from .api.health import router as health_router
from .api.v1 import api_router
from .config import load_config
from .event_handlers import run_stats_consumer
from .messaging.notification_sink import KafkaNotificationSink, NullNotificationSink
from .messaging.stats_publisher import KafkaStatsReconcilePublisher


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - framework hook
    """애플리케이션 생명주기 동안 공유 객체와 백그라운드 작업을 관리한다.

    - 설정, 알림 싱크, 통계 재계산 발행기를 한 번 만들어 app.state 에 둔다.
    - stats.reconcile 이벤트를 소비하는 Kafka 컨슈머 스레드
    """

    config = load_config()
    bus = get_kafka_event_bus()

    app.state.exchange_config = config
    app.state.stats_publisher = KafkaStatsReconcilePublisher(bus)
    if config.notifications_enabled:
        app.state.notification_sink = KafkaNotificationSink(bus)
    else:
        logger.info("notifications disabled; using NullNotificationSink")
        app.state.notification_sink = NullNotificationSink()

    stats_stop_flag = [False]
    stats_thread = threading.Thread(
        target=run_stats_consumer,
        args=(stats_stop_flag, get_database()),
        name="stats-consumer",
        daemon=True,
    )
    stats_thread.start()

    try:
        yield
    finally:
        stats_stop_flag[0] = True
        stats_thread.join(timeout=10.0)
        close_kafka_event_bus()
        close_client()


def create_app() -> FastAPI:
    setup_logger(name="exchange-service")
    app = FastAPI(
        title="Skill Exchange Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def main() -> None:
    import uvicorn

    port = int(os.getenv("EXCHANGE_SERVICE_PORT", "8003"))
    uvicorn.run(
        "exchange_service.app.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
