from __future__ import annotations

from datetime import datetime, timezone

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from common.mongo.types import is_object_id, to_object_id

from .account_repository import rating_update_pipeline
from .documents.offer_document import OfferDocument
from .interfaces import OfferRepositoryInterface
from ..models.offer import Offer, OfferSnapshot
from ..models.review import RatingStats


class OfferRepository(OfferRepositoryInterface):
    """offers 컬렉션 접근 레이어.

    오퍼 본문은 읽기만 하고, bookings_count / 평점 통계 필드만 갱신한다.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["offers"]

    def get_active_offer(self, offer_id: str) -> OfferSnapshot | None:
        if not is_object_id(offer_id):
            return None
        doc = self._col.find_one(
            {"_id": to_object_id(offer_id)},
            {
                "owner_id": 1,
                "cost_credits": 1,
                "status": 1,
                "created_at": 1,
                "updated_at": 1,
            },
        )
        if not doc:
            return None
        return OfferDocument.model_validate(doc).to_snapshot()

    def find_by_id(self, offer_id: str) -> Offer | None:
        if not is_object_id(offer_id):
            return None
        doc = self._col.find_one({"_id": to_object_id(offer_id)})
        if not doc:
            return None
        return OfferDocument.model_validate(doc).to_domain()

    def list_by_owner(self, owner_id: str) -> list[Offer]:
        if not is_object_id(owner_id):
            return []
        cursor = self._col.find(
            {"owner_id": to_object_id(owner_id)},
            sort=[("avg_rating", DESCENDING), ("_id", DESCENDING)],
        )
        return [OfferDocument.model_validate(raw).to_domain() for raw in cursor]

    def increment_bookings_count(self, offer_id: str, amount: int = 1) -> bool:
        result = self._col.update_one(
            {"_id": to_object_id(offer_id)},
            {
                "$inc": {"bookings_count": amount},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
        )
        return result.matched_count == 1

    def set_bookings_count(self, offer_id: str, count: int) -> bool:
        result = self._col.update_one(
            {"_id": to_object_id(offer_id)},
            {
                "$set": {
                    "bookings_count": count,
                    "updated_at": datetime.now(timezone.utc),
                }
            },
        )
        return result.matched_count == 1

    def apply_rating(self, offer_id: str, rating: int) -> Offer | None:
        now = datetime.now(timezone.utc)
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(offer_id)},
            rating_update_pipeline(
                "rating_sum", "reviews_count", "avg_rating", rating, now
            ),
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return OfferDocument.model_validate(doc).to_domain()

    def set_rating_stats(self, offer_id: str, stats: RatingStats) -> bool:
        result = self._col.update_one(
            {"_id": to_object_id(offer_id)},
            {
                "$set": {
                    "rating_sum": stats.rating_sum,
                    "reviews_count": stats.reviews_count,
                    "avg_rating": stats.average,
                    "updated_at": datetime.now(timezone.utc),
                }
            },
        )
        return result.matched_count == 1
