"""계정 잔액 레포지토리.

잔액 필드(credits, reserved_credits)는 항상 조건부 단일 도큐먼트 업데이트로만 바꾼다.
읽은 값을 바탕으로 도큐먼트 전체를 다시 쓰는 방식은 동시 요청에서 갱신을 잃기 때문이다.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pymongo import ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.database import Database

from common.mongo.types import is_object_id, to_object_id

from .documents.account_document import AccountDocument
from .interfaces import AccountRepositoryInterface
from ..models.account import Account
from ..models.review import RatingStats


ACCOUNT_PROJECTION = {
    "name": 1,
    "credits": 1,
    "reserved_credits": 1,
    "rating_sum": 1,
    "reviews_count": 1,
    "rating_avg": 1,
    "created_at": 1,
    "updated_at": 1,
}


def rating_update_pipeline(
    sum_field: str, count_field: str, avg_field: str, rating: int, now: datetime
) -> list[dict[str, Any]]:
    """평점 합계/개수를 한 번에 늘리고 평균을 다시 계산하는 파이프라인 업데이트."""

    return [
        {
            "$set": {
                sum_field: {"$add": [{"$ifNull": [f"${sum_field}", 0]}, rating]},
                count_field: {"$add": [{"$ifNull": [f"${count_field}", 0]}, 1]},
                "updated_at": now,
            }
        },
        {"$set": {avg_field: {"$divide": [f"${sum_field}", f"${count_field}"]}}},
    ]


class AccountRepository(AccountRepositoryInterface):
    """users 컬렉션의 잔액/평점 필드에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["users"]

    def _to_domain(self, doc: dict[str, Any] | None) -> Account | None:
        if not doc:
            return None
        return AccountDocument.model_validate(doc).to_domain()

    def find_by_id(
        self, user_id: str, *, session: ClientSession | None = None
    ) -> Account | None:
        if not is_object_id(user_id):
            return None
        doc = self._col.find_one(
            {"_id": to_object_id(user_id)}, ACCOUNT_PROJECTION, session=session
        )
        return self._to_domain(doc)

    def reserve(self, user_id: str, amount: int) -> Account | None:
        if not is_object_id(user_id):
            return None
        now = datetime.now(timezone.utc)
        # 잔액 확인과 증가를 하나의 조건부 업데이트로 묶어 이중 예약을 막는다.
        doc = self._col.find_one_and_update(
            {
                "_id": to_object_id(user_id),
                "$expr": {
                    "$gte": [
                        {
                            "$subtract": [
                                "$credits",
                                {"$ifNull": ["$reserved_credits", 0]},
                            ]
                        },
                        amount,
                    ]
                },
            },
            {"$inc": {"reserved_credits": amount}, "$set": {"updated_at": now}},
            projection=ACCOUNT_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_domain(doc)

    def release(
        self, user_id: str, amount: int, *, session: ClientSession | None = None
    ) -> Account | None:
        if not is_object_id(user_id):
            return None
        now = datetime.now(timezone.utc)
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(user_id)},
            [
                {
                    "$set": {
                        "reserved_credits": {
                            "$max": [
                                0,
                                {
                                    "$subtract": [
                                        {"$ifNull": ["$reserved_credits", 0]},
                                        amount,
                                    ]
                                },
                            ]
                        },
                        "updated_at": now,
                    }
                }
            ],
            projection=ACCOUNT_PROJECTION,
            return_document=ReturnDocument.BEFORE,
            session=session,
        )
        return self._to_domain(doc)

    def debit_reserved(
        self, user_id: str, amount: int, *, session: ClientSession
    ) -> Account | None:
        now = datetime.now(timezone.utc)
        doc = self._col.find_one_and_update(
            {
                "_id": to_object_id(user_id),
                "reserved_credits": {"$gte": amount},
                "credits": {"$gte": amount},
            },
            {
                "$inc": {"reserved_credits": -amount, "credits": -amount},
                "$set": {"updated_at": now},
            },
            projection=ACCOUNT_PROJECTION,
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return self._to_domain(doc)

    def credit(
        self, user_id: str, amount: int, *, session: ClientSession
    ) -> Account | None:
        now = datetime.now(timezone.utc)
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(user_id)},
            {"$inc": {"credits": amount}, "$set": {"updated_at": now}},
            projection=ACCOUNT_PROJECTION,
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return self._to_domain(doc)

    def apply_rating(self, user_id: str, rating: int) -> Account | None:
        if not is_object_id(user_id):
            return None
        now = datetime.now(timezone.utc)
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(user_id)},
            rating_update_pipeline(
                "rating_sum", "reviews_count", "rating_avg", rating, now
            ),
            projection=ACCOUNT_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_domain(doc)

    def set_rating_stats(self, user_id: str, stats: RatingStats) -> bool:
        if not is_object_id(user_id):
            return False
        result = self._col.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    "rating_sum": stats.rating_sum,
                    "reviews_count": stats.reviews_count,
                    "rating_avg": stats.average,
                    "updated_at": datetime.now(timezone.utc),
                }
            },
        )
        return result.matched_count == 1
