from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    PyObjectId,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.review import Review


class ReviewDocument(BaseDocument):
    """MongoDB reviews 컬렉션 도큐먼트 모델."""

    booking_id: PyObjectId
    reviewer_id: PyObjectId
    provider_id: PyObjectId
    offer_id: PyObjectId
    rating: int
    comment: str | None = None

    @classmethod
    def from_domain(cls, review: Review) -> "ReviewDocument":
        data = build_document_data_from_domain(
            review,
            object_id_fields=("booking_id", "reviewer_id", "provider_id", "offer_id"),
        )
        return cls.model_validate(data)

    def to_domain(self) -> Review:
        return Review(
            id=from_object_id(self.id),
            booking_id=str(self.booking_id),
            reviewer_id=str(self.reviewer_id),
            provider_id=str(self.provider_id),
            offer_id=str(self.offer_id),
            rating=self.rating,
            comment=self.comment,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
