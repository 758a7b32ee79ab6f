from __future__ import annotations

import os


BROKERS_ENV = "KAFKA_BOOTSTRAP_SERVERS"
GROUP_ID_ENV = "KAFKA_GROUP_ID"
MESSAGE_MAX_BYTES_ENV = "KAFKA_MESSAGE_MAX_BYTES"

DEFAULT_GROUP_ID = "exchange-service"


def _read_env(name: str) -> str:
    return os.getenv(name, "").strip()


def get_brokers() -> str:
    """Kafka bootstrap 서버 목록. 없으면 기동 단계에서 실패한다."""

    value = _read_env(BROKERS_ENV)
    if not value:
        raise RuntimeError(f"{BROKERS_ENV} environment variable is required")
    return value


def get_group_id() -> str:
    """컨슈머 그룹 ID 접두사. 컨슈머마다 "-stats" 같은 접미사를 붙여 쓴다."""

    return _read_env(GROUP_ID_ENV) or DEFAULT_GROUP_ID


def get_message_max_bytes() -> int | None:
    """producer 의 message.max.bytes. 비어 있거나 0 이하이면 라이브러리 기본값(None)."""

    raw_value = _read_env(MESSAGE_MAX_BYTES_ENV)
    if not raw_value:
        return None

    try:
        value = int(raw_value)
    except ValueError as exc:  # noqa: TRY003
        raise RuntimeError(
            f"{MESSAGE_MAX_BYTES_ENV} must be an integer, got: {raw_value!r}"
        ) from exc

    return value if value > 0 else None
