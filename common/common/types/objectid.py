from __future__ import annotations

from typing import Annotated, Any

from pydantic.functional_validators import BeforeValidator


def _to_object_id_str(value: Any) -> Any:
    """ObjectId 등 문자열이 아닌 ID 를 문자열로 바꾼다. None/str 은 그대로 둔다."""

    if value is None or isinstance(value, str):
        return value
    return str(value)


# 도메인 모델의 ID/참조 필드. Mongo 에서 읽은 ObjectId 를 그대로 넣어도 str 로 정규화된다.
ObjectIdStr = Annotated[str, BeforeValidator(_to_object_id_str)]
