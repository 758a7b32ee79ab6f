from __future__ import annotations

from fastapi import Header

from common.middleware.request_trace import USER_ID_HEADER
from common.mongo.types import is_object_id

from ..exceptions import ValidationError


def get_actor_id(
    x_user_id: str = Header(
        ..., alias=USER_ID_HEADER, description="게이트웨이가 인증 후 전달하는 사용자 ID"
    ),
) -> str:
    """요청한 사용자 ID. 인증 자체는 게이트웨이의 책임이다."""

    if not is_object_id(x_user_id):
        raise ValidationError(f"invalid {USER_ID_HEADER} header")
    return x_user_id
