from __future__ import annotations

from common.mongo.types import BaseDocument, PyObjectId, from_object_id

from ...models.offer import Offer, OfferSnapshot, OfferStatus


class OfferDocument(BaseDocument):
    """MongoDB offers 컬렉션 도큐먼트 모델."""

    owner_id: PyObjectId
    title: str = ""
    category: str | None = None
    cost_credits: int
    status: OfferStatus = OfferStatus.ACTIVE
    bookings_count: int = 0
    rating_sum: int = 0
    reviews_count: int = 0
    avg_rating: float = 0.0

    def to_domain(self) -> Offer:
        return Offer(
            id=from_object_id(self.id),
            owner_id=str(self.owner_id),
            title=self.title,
            category=self.category,
            cost_credits=self.cost_credits,
            status=self.status,
            bookings_count=self.bookings_count,
            rating_sum=self.rating_sum,
            reviews_count=self.reviews_count,
            avg_rating=self.avg_rating,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_snapshot(self) -> OfferSnapshot:
        return OfferSnapshot(
            offer_id=str(self.id),
            owner_id=str(self.owner_id),
            cost_credits=self.cost_credits,
            status=self.status,
        )
