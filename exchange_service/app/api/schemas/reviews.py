from __future__ import annotations

from pydantic import BaseModel, Field

from common.schemas.pagination import PaginatedResponse
from common.types.datetime import UtcDateTime

from ...models.review import MAX_RATING, MIN_RATING, ReviewView


class CreateReviewRequest(BaseModel):
    booking_id: str
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: str | None = Field(default=None, max_length=1000)


class CreateReviewResponse(BaseModel):
    review_id: str


class ReviewItem(BaseModel):
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
    created_at: UtcDateTime

    @classmethod
    def from_view(cls, view: ReviewView) -> "ReviewItem":
        return cls.model_validate(view.model_dump())


class ProviderReviewsResponse(PaginatedResponse[ReviewItem]):
    """제공자 리뷰 목록 + 제공자 평점 요약."""

    rating_avg: float
    reviews_count: int
