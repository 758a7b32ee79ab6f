from __future__ import annotations

import uuid
from typing import Any, Mapping

from .core import Event, RetryDelays


def new_json_event(
    payload: Mapping[str, Any],
    *,
    max_retry: int | None = None,
    event_id: str | None = None,
) -> Event:
    """dict 페이로드를 Event 로 감싼다.

    - event_id 가 없으면 uuid4 를 사용한다. (컨슈머 쪽 중복 제거 키로 쓰인다.)
    - max_retry 가 1~len(RetryDelays) 범위를 벗어나면 len(RetryDelays) 로 보정한다.
    """
    if max_retry is None or max_retry <= 0 or max_retry > len(RetryDelays):
        max_retry = len(RetryDelays)

    if not event_id:
        event_id = uuid.uuid4().hex

    return Event(id=event_id, payload=dict(payload), retry=0, max_retry=max_retry)
