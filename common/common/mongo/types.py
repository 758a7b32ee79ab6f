from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


def ensure_utc_datetime(value: datetime) -> datetime:
    """datetime 값을 UTC 기준으로 정규화한다.

    - tzinfo 가 없으면 UTC 로 간주해 tzinfo=UTC 를 부여
    - tzinfo 가 있으면 UTC 로 변환
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_object_id(value: Any) -> ObjectId:
    """여러 타입(str, ObjectId 등)을 MongoDB ObjectId 로 변환한다."""

    if isinstance(value, ObjectId):
        return value
    if value is None:
        raise TypeError("ObjectId cannot be None")
    return ObjectId(str(value))


def from_object_id(value: Optional[ObjectId]) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def is_object_id(value: Any) -> bool:
    """문자열이 ObjectId 로 해석 가능한지 여부."""

    if isinstance(value, ObjectId):
        return True
    try:
        ObjectId(str(value))
    except (InvalidId, TypeError):
        return False
    return True


PyObjectId = Annotated[ObjectId, BeforeValidator(to_object_id)]
MongoDateTime = Annotated[datetime, BeforeValidator(ensure_utc_datetime)]


class BaseDocument(BaseModel):
    """MongoDB 도큐먼트용 공통 베이스 모델.

    - ObjectId 같은 임의 타입을 허용
    - alias 기반 직렬화(by_alias)로 id <-> _id 를 맞춘다.
    - Enum 필드는 값(str)으로 저장한다.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True, populate_by_name=True, use_enum_values=True
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: MongoDateTime
    updated_at: MongoDateTime

    def to_mongo_record(self) -> dict[str, Any]:
        """MongoDB 저장용 레코드(dict) 직렬화.

        exclude_none=True 로 _id=None 같은 필드를 제거해 Mongo 가 ObjectId 를 생성하도록 한다.
        """

        return self.model_dump(by_alias=True, exclude_none=True)


def build_document_data_from_domain(
    domain_model: BaseModel, *, object_id_fields: tuple[str, ...] = ()
) -> dict[str, Any]:
    """도메인 모델을 도큐먼트 dict 로 변환한다.

    object_id_fields 에 지정한 참조 필드는 문자열 ID 를 ObjectId 로 바꿔 저장한다.
    (ref 필드를 ObjectId 로 두어야 $lookup 조인이 가능하다.)
    """

    data = domain_model.model_dump(by_alias=True)
    for field in object_id_fields:
        value = data.get(field)
        if value is not None:
            data[field] = to_object_id(value)
    return data
