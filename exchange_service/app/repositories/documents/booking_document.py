"""bookings 컬렉션 도큐먼트.

참조 필드(offer_id, requester_id, provider_id, credit_transfer_id)는 $lookup 조인을 위해
ObjectId 로 저장한다.
"""

from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    PyObjectId,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.booking import Booking, BookingStatus


BOOKING_REFERENCE_FIELDS = ("offer_id", "requester_id", "provider_id", "credit_transfer_id")


class BookingDocument(BaseDocument):
    offer_id: PyObjectId
    requester_id: PyObjectId
    provider_id: PyObjectId
    date_start: MongoDateTime
    date_end: MongoDateTime
    timezone: str | None = None
    cost_credits: int
    status: BookingStatus = BookingStatus.PENDING
    cancellation_reason: str | None = None
    notes: str | None = None
    credit_transfer_id: PyObjectId | None = None

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingDocument":
        data = build_document_data_from_domain(
            booking, object_id_fields=BOOKING_REFERENCE_FIELDS
        )
        return cls.model_validate(data)

    def to_domain(self) -> Booking:
        return Booking(
            id=from_object_id(self.id),
            offer_id=str(self.offer_id),
            requester_id=str(self.requester_id),
            provider_id=str(self.provider_id),
            date_start=self.date_start,
            date_end=self.date_end,
            timezone=self.timezone,
            cost_credits=self.cost_credits,
            status=self.status,
            cancellation_reason=self.cancellation_reason,
            notes=self.notes,
            credit_transfer_id=from_object_id(self.credit_transfer_id),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
