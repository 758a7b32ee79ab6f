from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG_FILE_NAME = "config.yaml"
CONFIG_SECTION = "exchange"


@dataclass(slots=True)
class ExchangeConfig:
    """exchange-service 엔진 설정.

    - completion_max_attempts: 완료 트랜잭션이 일시적 오류로 실패했을 때 최대 시도 횟수
    - completion_retry_backoff_seconds: 재시도 간 기본 대기 시간 (시도마다 선형 증가)
    - notifications_enabled: False 이면 Kafka 알림 대신 NullNotificationSink 를 쓴다.
    - default_page_size: 목록 조회에서 page_size 가 잘못됐을 때 쓰는 기본값
    """

    completion_max_attempts: int = 3
    completion_retry_backoff_seconds: float = 0.05
    notifications_enabled: bool = True
    default_page_size: int = 10


def _find_config_path() -> Path | None:
    """작업 디렉토리에서 상위로 올라가며 config.yaml 을 찾는다. 없으면 None."""

    current = Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def _parse_int(name: str, raw: Any, *, minimum: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:  # noqa: TRY003
        raise RuntimeError(f"invalid {name}: {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got: {value}")
    return value


def _parse_float(name: str, raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:  # noqa: TRY003
        raise RuntimeError(f"invalid {name}: {raw!r}") from exc
    if value < 0:
        raise RuntimeError(f"{name} must be >= 0, got: {value}")
    return value


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise RuntimeError(f"invalid {name}: {raw!r}")


def load_config(path: Path | None = None) -> ExchangeConfig:
    """config.yaml 의 exchange 섹션을 읽고, 환경 변수로 덮어쓴 설정을 반환한다.

    파일이 없으면 기본값에서 시작한다. 값이 잘못되면 기동 시점에 RuntimeError 를 던진다.
    """

    section: dict[str, Any] = {}
    path = path or _find_config_path()
    if path is not None:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        raw_section = data.get(CONFIG_SECTION) or {}
        if not isinstance(raw_section, dict):
            raise RuntimeError(f"'{CONFIG_SECTION}' section in {path} must be a mapping")
        section = raw_section

    env_overrides = {
        "completion_max_attempts": os.getenv("COMPLETION_MAX_ATTEMPTS"),
        "completion_retry_backoff_seconds": os.getenv(
            "COMPLETION_RETRY_BACKOFF_SECONDS"
        ),
        "notifications_enabled": os.getenv("NOTIFICATIONS_ENABLED"),
        "default_page_size": os.getenv("DEFAULT_PAGE_SIZE"),
    }
    for key, value in env_overrides.items():
        if value is not None and value.strip():
            section[key] = value.strip()

    defaults = ExchangeConfig()
    return ExchangeConfig(
        completion_max_attempts=_parse_int(
            "completion_max_attempts",
            section.get("completion_max_attempts", defaults.completion_max_attempts),
            minimum=1,
        ),
        completion_retry_backoff_seconds=_parse_float(
            "completion_retry_backoff_seconds",
            section.get(
                "completion_retry_backoff_seconds",
                defaults.completion_retry_backoff_seconds,
            ),
        ),
        notifications_enabled=_parse_bool(
            "notifications_enabled",
            section.get("notifications_enabled", defaults.notifications_enabled),
        ),
        default_page_size=_parse_int(
            "default_page_size",
            section.get("default_page_size", defaults.default_page_size),
            minimum=1,
        ),
    )
