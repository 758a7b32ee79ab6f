from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import asdict
from typing import Any, Callable, Optional

from confluent_kafka import Consumer, KafkaError, Producer

from .config import get_brokers, get_message_max_bytes
from .core import Event, MaxRetryExceededError, RetryDelays, Topic

logger = logging.getLogger(__name__)


class KafkaEventBus:
    """Kafka 기반 EventBus 구현.

    - publish: JSON 인코딩 후 비동기 produce, 전송 실패는 delivery callback 에서 로그로 남긴다.
    - subscribe: 핸들러 실패 시 retry.N 토픽으로 재발행하고, 한도를 넘으면 DLQ 로 보낸다.
    """

    def __init__(self, brokers: str, *, message_max_bytes: int | None = None) -> None:
        producer_config: dict[str, Any] = {"bootstrap.servers": brokers}
        if message_max_bytes is not None:
            producer_config["message.max.bytes"] = message_max_bytes
        self._producer = Producer(producer_config)
        self._brokers = brokers

    def close(self) -> None:
        self._producer.flush()

    # 발행 -----------------------------------------------------------------
    def publish(self, topic: str, event: Event) -> None:
        payload = json.dumps(asdict(event), ensure_ascii=False, default=str).encode(
            "utf-8"
        )

        def _delivery_callback(err, msg) -> None:  # type: ignore[no-untyped-def]
            if err is not None:
                logger.error("failed to deliver message to %s: %s", msg.topic(), err)

        self._producer.produce(
            topic=topic,
            value=payload,
            key=event.id.encode("utf-8"),
            callback=_delivery_callback,
        )
        self._producer.poll(0)

    # 구독 -----------------------------------------------------------------
    def subscribe(
        self,
        group_id: str,
        topic: Topic,
        handler: Callable[[Event], None],
        *,
        poll_timeout: float = 0.1,
        stop_flag: list[bool] | None = None,
    ) -> None:
        consumer = Consumer(
            {
                "bootstrap.servers": self._brokers,
                "group.id": group_id,
                "auto.offset.reset": "earliest",
                "enable.auto.commit": False,
                # 재시도 대기(최대 RetryDelays[-1]) 동안 리밸런스되지 않도록 여유를 둔다.
                "max.poll.interval.ms": int((max(RetryDelays) + 60) * 1000),
            }
        )
        consumer.subscribe([topic.base, *topic.get_retry_topics()])

        try:
            logger.info(
                "Kafka consumer started. group_id=%s topic=%s", group_id, topic.base
            )
            while True:
                if stop_flag and stop_flag[0]:
                    break

                msg = consumer.poll(poll_timeout)
                if msg is None:
                    continue
                if msg.error():
                    if msg.error().code() == KafkaError._PARTITION_EOF:
                        continue
                    logger.error("consumer error: %s", msg.error())
                    continue

                try:
                    raw = json.loads(msg.value())
                except Exception as exc:  # noqa: BLE001
                    logger.error(
                        "invalid event payload on topic %s: %s", msg.topic(), exc
                    )
                    consumer.commit(message=msg, asynchronous=False)
                    continue

                evt = self._decode_event(raw)
                if not self._wait_for_retry(topic, evt, stop_flag):
                    break

                if not self._dispatch(topic, evt, handler):
                    continue  # 재시도/DLQ 발행 실패 -> 커밋하지 않고 다시 처리

                try:
                    consumer.commit(message=msg, asynchronous=False)
                except Exception as exc:  # noqa: BLE001
                    logger.error("offset commit error: %s", exc)
        finally:
            consumer.close()

    def _dispatch(
        self, topic: Topic, evt: Event, handler: Callable[[Event], None]
    ) -> bool:
        """핸들러를 호출하고, 실패 시 재시도 토픽 또는 DLQ 로 넘긴다.

        오프셋을 커밋해도 되면 True 를 반환한다.
        """
        try:
            handler(evt)
            return True
        except Exception as exc:  # noqa: BLE001
            evt.last_error = str(exc)
            evt.failed_at = time.time()

        next_retry = evt.retry + 1
        try:
            if next_retry > evt.max_retry:
                raise MaxRetryExceededError()
            next_topic = topic.get_retry_topic(next_retry)
        except MaxRetryExceededError:
            logger.error(
                "event %s exceeded max retry, sending to DLQ %s: %s",
                evt.id,
                topic.dlq(),
                evt.last_error,
            )
            try:
                self.publish(topic.dlq(), evt)
            except Exception as pub_exc:  # noqa: BLE001
                logger.error("failed to publish event %s to DLQ: %s", evt.id, pub_exc)
                return False
            return True

        evt.retry = next_retry
        logger.warning(
            "event %s failed, scheduling retry %d/%d to %s",
            evt.id,
            evt.retry,
            evt.max_retry,
            next_topic,
        )
        try:
            self.publish(next_topic, evt)
        except Exception as pub_exc:  # noqa: BLE001
            logger.error(
                "failed to publish retry event %s to %s: %s",
                evt.id,
                next_topic,
                pub_exc,
            )
            return False
        return True

    # 내부 util -------------------------------------------------------------
    @staticmethod
    def _wait_for_retry(
        topic: Topic, evt: Event, stop_flag: list[bool] | None
    ) -> bool:
        """재시도 이벤트라면 예정된 시각까지 기다린다. 중단 요청 시 False."""
        if evt.retry <= 0 or evt.failed_at is None:
            return True
        try:
            delay = topic.retry_delay(evt.retry)
        except MaxRetryExceededError:
            return True

        deadline = evt.failed_at + delay
        while time.time() < deadline:
            if stop_flag and stop_flag[0]:
                return False
            time.sleep(min(0.5, max(0.0, deadline - time.time())))
        return True

    @staticmethod
    def _decode_event(raw: dict) -> Event:
        failed_at = raw.get("failed_at")
        return Event(
            id=str(raw.get("id", "")),
            payload=raw.get("payload"),
            retry=int(raw.get("retry", 0)),
            max_retry=int(raw.get("max_retry", 0)),
            last_error=raw.get("last_error"),
            failed_at=float(failed_at) if failed_at is not None else None,
        )


_bus: Optional[KafkaEventBus] = None
_bus_lock = threading.Lock()


def get_kafka_event_bus() -> KafkaEventBus:
    """프로세스 전역 producer 용 KafkaEventBus 를 반환한다."""

    global _bus

    if _bus is not None:
        return _bus

    with _bus_lock:
        if _bus is None:
            _bus = KafkaEventBus(
                get_brokers(), message_max_bytes=get_message_max_bytes()
            )
        return _bus


def close_kafka_event_bus() -> None:
    global _bus

    with _bus_lock:
        if _bus is not None:
            _bus.close()
        _bus = None
