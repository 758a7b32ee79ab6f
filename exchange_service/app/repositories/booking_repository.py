"""예약 쓰기 측 레포지토리.

상태 전이는 현재 상태를 필터에 넣은 조건부 업데이트로만 수행한다.
경쟁에서 진 쪽은 None 을 받는다.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pymongo import ASCENDING, IndexModel, ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.database import Database

from common.mongo.types import is_object_id, to_object_id

from .documents.booking_document import BOOKING_REFERENCE_FIELDS, BookingDocument
from .interfaces import BookingRepositoryInterface
from ..models.booking import ACTIVE_STATUSES, Booking, BookingStatus


class BookingRepository(BookingRepositoryInterface):
    """bookings 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["bookings"]
        self._col.create_indexes(
            [
                IndexModel(
                    [
                        ("provider_id", ASCENDING),
                        ("status", ASCENDING),
                        ("date_start", ASCENDING),
                    ],
                    name="idx_provider_status_start",
                ),
                IndexModel(
                    [
                        ("requester_id", ASCENDING),
                        ("status", ASCENDING),
                        ("date_start", ASCENDING),
                    ],
                    name="idx_requester_status_start",
                ),
                IndexModel(
                    [
                        ("offer_id", ASCENDING),
                        ("requester_id", ASCENDING),
                        ("date_start", ASCENDING),
                        ("date_end", ASCENDING),
                        ("status", ASCENDING),
                    ],
                    name="idx_overlap",
                ),
            ]
        )

    def insert(self, booking: Booking) -> Booking:
        record = BookingDocument.from_domain(booking).to_mongo_record()
        result = self._col.insert_one(record)
        return booking.model_copy(update={"id": str(result.inserted_id)})

    def find_by_id(
        self, booking_id: str, *, session: ClientSession | None = None
    ) -> Booking | None:
        if not is_object_id(booking_id):
            return None
        doc = self._col.find_one({"_id": to_object_id(booking_id)}, session=session)
        if not doc:
            return None
        return BookingDocument.model_validate(doc).to_domain()

    def find_overlapping(
        self,
        offer_id: str,
        requester_id: str,
        date_start: datetime,
        date_end: datetime,
    ) -> Booking | None:
        # 반개구간 [start, end) 끼리의 교차 조건
        doc = self._col.find_one(
            {
                "offer_id": to_object_id(offer_id),
                "requester_id": to_object_id(requester_id),
                "status": {"$in": [s.value for s in ACTIVE_STATUSES]},
                "date_start": {"$lt": date_end},
                "date_end": {"$gt": date_start},
            }
        )
        if not doc:
            return None
        return BookingDocument.model_validate(doc).to_domain()

    def transition(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
        *,
        fields: dict[str, object] | None = None,
        session: ClientSession | None = None,
    ) -> Booking | None:
        update: dict[str, Any] = {
            "status": new_status.value,
            "updated_at": datetime.now(timezone.utc),
        }
        for key, value in (fields or {}).items():
            if key in BOOKING_REFERENCE_FIELDS and value is not None:
                value = to_object_id(value)
            update[key] = value

        doc = self._col.find_one_and_update(
            {"_id": to_object_id(booking_id), "status": expected.value},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        if not doc:
            return None
        return BookingDocument.model_validate(doc).to_domain()

    def count_completed_for_offer(self, offer_id: str) -> int:
        return self._col.count_documents(
            {
                "offer_id": to_object_id(offer_id),
                "status": BookingStatus.COMPLETED.value,
            }
        )
