from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.mongo.types import ensure_utc_datetime, is_object_id, to_object_id
from common.schemas.pagination import normalize_page

from .aggregation import lookup_field, paginate_stages
from .documents.review_document import ReviewDocument
from .interfaces import ReviewRepositoryInterface
from ..models.review import RatingStats, Review, ReviewView


VIEW_LOOKUPS: list[dict[str, Any]] = [
    *lookup_field("users", "reviewer_id", "name", "reviewer_name"),
    *lookup_field("users", "provider_id", "name", "provider_name"),
    *lookup_field("offers", "offer_id", "title", "offer_title"),
]


def to_review_view(raw: dict[str, Any]) -> ReviewView:
    return ReviewView(
        id=str(raw["_id"]),
        booking_id=str(raw["booking_id"]),
        rating=int(raw["rating"]),
        comment=raw.get("comment"),
        reviewer_id=str(raw["reviewer_id"]),
        reviewer_name=raw.get("reviewer_name"),
        provider_id=str(raw["provider_id"]),
        provider_name=raw.get("provider_name"),
        offer_id=str(raw["offer_id"]),
        offer_title=raw.get("offer_title"),
        created_at=ensure_utc_datetime(raw["created_at"]),
    )


class ReviewRepository(ReviewRepositoryInterface):
    """reviews 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["reviews"]
        self._col.create_indexes(
            [
                IndexModel(
                    [("booking_id", ASCENDING), ("reviewer_id", ASCENDING)],
                    name="uniq_booking_reviewer",
                    unique=True,
                ),
                IndexModel(
                    [("provider_id", ASCENDING), ("created_at", DESCENDING)],
                    name="idx_provider_created",
                ),
                IndexModel(
                    [("offer_id", ASCENDING), ("created_at", DESCENDING)],
                    name="idx_offer_created",
                ),
            ]
        )

    def create(self, review: Review) -> Review | None:
        record = ReviewDocument.from_domain(review).to_mongo_record()
        try:
            result = self._col.insert_one(record)
        except DuplicateKeyError:
            return None
        return review.model_copy(update={"id": str(result.inserted_id)})

    def _list(
        self, match: dict[str, Any], page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:
        page, page_size = normalize_page(page, page_size)
        total = self._col.count_documents(match)
        pipeline = [
            {"$match": match},
            *paginate_stages({"created_at": -1, "_id": -1}, page, page_size),
            *VIEW_LOOKUPS,
        ]
        return [to_review_view(raw) for raw in self._col.aggregate(pipeline)], total

    def list_by_provider(
        self, provider_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:
        if not is_object_id(provider_id):
            return [], 0
        return self._list({"provider_id": to_object_id(provider_id)}, page, page_size)

    def list_by_offer(
        self, offer_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:
        if not is_object_id(offer_id):
            return [], 0
        return self._list({"offer_id": to_object_id(offer_id)}, page, page_size)

    def list_by_reviewer(
        self, reviewer_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:
        if not is_object_id(reviewer_id):
            return [], 0
        return self._list({"reviewer_id": to_object_id(reviewer_id)}, page, page_size)

    def _aggregate(self, match: dict[str, Any]) -> RatingStats:
        pipeline = [
            {"$match": match},
            {
                "$group": {
                    "_id": None,
                    "rating_sum": {"$sum": "$rating"},
                    "reviews_count": {"$sum": 1},
                }
            },
        ]
        for doc in self._col.aggregate(pipeline):
            return RatingStats(
                rating_sum=int(doc.get("rating_sum", 0)),
                reviews_count=int(doc.get("reviews_count", 0)),
            )
        return RatingStats()

    def aggregate_for_provider(self, provider_id: str) -> RatingStats:
        return self._aggregate({"provider_id": to_object_id(provider_id)})

    def aggregate_for_offer(self, offer_id: str) -> RatingStats:
        return self._aggregate({"offer_id": to_object_id(offer_id)})
