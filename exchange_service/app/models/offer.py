"""스킬 오퍼 도메인 모델.

오퍼 생성/수정은 범위 밖이며, 이 서비스는 bookings_count 와 평점 통계만 갱신한다.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from common.types.objectid import ObjectIdStr


class OfferStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Offer(BaseModel):
    id: ObjectIdStr | None = None
    owner_id: ObjectIdStr
    title: str = ""
    category: str | None = None
    cost_credits: int
    status: OfferStatus = OfferStatus.ACTIVE
    bookings_count: int = 0
    rating_sum: int = 0
    reviews_count: int = 0
    avg_rating: float = 0.0
    created_at: datetime
    updated_at: datetime


class OfferSnapshot(BaseModel):
    """예약 승인 판단에 필요한 오퍼의 읽기 전용 스냅샷."""

    offer_id: str
    owner_id: str
    cost_credits: int
    status: OfferStatus

    @property
    def is_active(self) -> bool:
        return self.status == OfferStatus.ACTIVE
