from __future__ import annotations

from pathlib import Path

import pytest

from exchange_service.app.config import ExchangeConfig, load_config


ENV_KEYS = (
    "COMPLETION_MAX_ATTEMPTS",
    "COMPLETION_RETRY_BACKOFF_SECONDS",
    "NOTIFICATIONS_ENABLED",
    "DEFAULT_PAGE_SIZE",
)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_when_section_missing(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, "other:\n  key: 1\n"))

    assert config == ExchangeConfig()


def test_values_are_read_from_yaml(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "exchange:\n"
        "  completion_max_attempts: 5\n"
        "  completion_retry_backoff_seconds: 0.2\n"
        "  notifications_enabled: false\n"
        "  default_page_size: 20\n",
    )

    config = load_config(path)

    assert config.completion_max_attempts == 5
    assert config.completion_retry_backoff_seconds == 0.2
    assert config.notifications_enabled is False
    assert config.default_page_size == 20


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, "exchange:\n  completion_max_attempts: 5\n")
    monkeypatch.setenv("COMPLETION_MAX_ATTEMPTS", "7")
    monkeypatch.setenv("NOTIFICATIONS_ENABLED", "off")

    config = load_config(path)

    assert config.completion_max_attempts == 7
    assert config.notifications_enabled is False


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("COMPLETION_MAX_ATTEMPTS", "0"),
        ("COMPLETION_MAX_ATTEMPTS", "many"),
        ("COMPLETION_RETRY_BACKOFF_SECONDS", "-1"),
        ("NOTIFICATIONS_ENABLED", "maybe"),
        ("DEFAULT_PAGE_SIZE", "0"),
    ],
)
def test_invalid_values_fail_fast(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, key: str, value: str
) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(RuntimeError):
        load_config(_write(tmp_path, "exchange: {}\n"))


def test_section_must_be_mapping(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        load_config(_write(tmp_path, "exchange: [1, 2]\n"))
