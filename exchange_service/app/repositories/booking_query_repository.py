"""예약 표시용 조회 레포지토리.

오퍼 제목과 당사자 이름을 $lookup 으로 붙인 BookingView 를 돌려준다.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pymongo.database import Database

from common.mongo.types import ensure_utc_datetime, is_object_id, to_object_id
from common.schemas.pagination import normalize_page

from .aggregation import lookup_field, paginate_stages
from .interfaces import BookingQueryRepositoryInterface
from ..models.booking import (
    ACTIVE_STATUSES,
    BookingFilter,
    BookingRole,
    BookingStatus,
    BookingView,
)


VIEW_LOOKUPS: list[dict[str, Any]] = [
    *lookup_field("offers", "offer_id", "title", "offer_title"),
    *lookup_field("users", "requester_id", "name", "requester_name"),
    *lookup_field("users", "provider_id", "name", "provider_name"),
]


def _participant_match(user_id: str) -> dict[str, Any]:
    oid = to_object_id(user_id)
    return {"$or": [{"requester_id": oid}, {"provider_id": oid}]}


def _optional_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    return ensure_utc_datetime(value)


def _optional_id(value: Any) -> str | None:
    return None if value is None else str(value)


def to_booking_view(raw: dict[str, Any]) -> BookingView:
    return BookingView(
        id=str(raw["_id"]),
        offer_id=str(raw["offer_id"]),
        offer_title=raw.get("offer_title"),
        requester_id=str(raw["requester_id"]),
        requester_name=raw.get("requester_name"),
        provider_id=str(raw["provider_id"]),
        provider_name=raw.get("provider_name"),
        date_start=ensure_utc_datetime(raw["date_start"]),
        date_end=ensure_utc_datetime(raw["date_end"]),
        timezone=raw.get("timezone"),
        status=raw["status"],
        cost_credits=int(raw["cost_credits"]),
        credit_transfer_id=_optional_id(raw.get("credit_transfer_id")),
        cancellation_reason=raw.get("cancellation_reason"),
        notes=raw.get("notes"),
        created_at=_optional_datetime(raw.get("created_at")),
        updated_at=_optional_datetime(raw.get("updated_at")),
    )


class BookingQueryRepository(BookingQueryRepositoryInterface):
    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["bookings"]

    def find_view(self, booking_id: str) -> BookingView | None:
        if not is_object_id(booking_id):
            return None
        pipeline = [{"$match": {"_id": to_object_id(booking_id)}}, *VIEW_LOOKUPS]
        for raw in self._col.aggregate(pipeline):
            return to_booking_view(raw)
        return None

    def _build_match(self, flt: BookingFilter) -> dict[str, Any]:
        oid = to_object_id(flt.user_id)
        if flt.role == BookingRole.REQUESTER:
            match: dict[str, Any] = {"requester_id": oid}
        elif flt.role == BookingRole.PROVIDER:
            match = {"provider_id": oid}
        else:
            match = _participant_match(flt.user_id)

        if flt.status is not None:
            match["status"] = BookingStatus(flt.status).value

        date_range: dict[str, datetime] = {}
        if flt.date_from is not None:
            date_range["$gte"] = flt.date_from
        if flt.date_to is not None:
            date_range["$lte"] = flt.date_to
        if date_range:
            match["date_start"] = date_range
        return match

    def list_views(
        self, flt: BookingFilter, page: int, page_size: int
    ) -> tuple[list[BookingView], int]:
        page, page_size = normalize_page(page, page_size)
        match = self._build_match(flt)

        total = self._col.count_documents(match)
        pipeline = [
            {"$match": match},
            *paginate_stages({"date_start": -1, "_id": -1}, page, page_size),
            *VIEW_LOOKUPS,
        ]
        items = [to_booking_view(raw) for raw in self._col.aggregate(pipeline)]
        return items, total

    def count_for_user(self, user_id: str) -> tuple[int, int]:
        pipeline = [
            {"$match": _participant_match(user_id)},
            {
                "$group": {
                    "_id": None,
                    "total": {"$sum": 1},
                    "active": {
                        "$sum": {
                            "$cond": [
                                {
                                    "$in": [
                                        "$status",
                                        [s.value for s in ACTIVE_STATUSES],
                                    ]
                                },
                                1,
                                0,
                            ]
                        }
                    },
                }
            },
        ]
        for doc in self._col.aggregate(pipeline):
            return int(doc.get("total", 0)), int(doc.get("active", 0))
        return 0, 0

    def list_upcoming(
        self, user_id: str, now: datetime, limit: int
    ) -> list[BookingView]:
        match = _participant_match(user_id)
        match["status"] = BookingStatus.ACCEPTED.value
        match["date_start"] = {"$gte": now}
        pipeline = [
            {"$match": match},
            {"$sort": {"date_start": 1, "_id": 1}},
            {"$limit": limit},
            *VIEW_LOOKUPS,
        ]
        return [to_booking_view(raw) for raw in self._col.aggregate(pipeline)]
