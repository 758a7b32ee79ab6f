from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from common.types.objectid import ObjectIdStr


MIN_RATING = 1
MAX_RATING = 5


class Review(BaseModel):
    """예약 리뷰. (booking_id, reviewer_id) 조합당 하나만 존재한다."""

    id: ObjectIdStr | None = None
    booking_id: ObjectIdStr
    reviewer_id: ObjectIdStr
    provider_id: ObjectIdStr
    offer_id: ObjectIdStr
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime


class ReviewView(BaseModel):
    """리뷰 목록 표시용 프로젝션."""

    id: str
    booking_id: str
    rating: int
    comment: str | None = None
    reviewer_id: str
    reviewer_name: str | None = None
    provider_id: str
    provider_name: str | None = None
    offer_id: str
    offer_title: str | None = None
    created_at: datetime


class RatingStats(BaseModel):
    """리뷰 컬렉션에서 다시 집계한 평점 합계/개수."""

    rating_sum: int = 0
    reviews_count: int = 0

    @property
    def average(self) -> float:
        if self.reviews_count <= 0:
            return 0.0
        return self.rating_sum / self.reviews_count
