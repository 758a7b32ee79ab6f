from __future__ import annotations

from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator

from common.types.datetime import UtcDateTime

from ...models.booking import Booking, BookingView


class CreateBookingRequest(BaseModel):
    offer_id: str
    date_start: UtcDateTime
    date_end: UtcDateTime
    timezone: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _check_range(self) -> Self:
        if self.date_end <= self.date_start:
            raise ValueError("date_end must be after date_start")
        return self


class CreateBookingResponse(BaseModel):
    booking_id: str


class UpdateBookingStatusRequest(BaseModel):
    status: Literal["accepted", "canceled", "completed"]
    cancellation_reason: str | None = Field(default=None, max_length=300)


class BookingItem(BaseModel):
    id: str
    offer_id: str
    offer_title: str | None = None
    requester_id: str
    requester_name: str | None = None
    provider_id: str
    provider_name: str | None = None
    date_start: UtcDateTime
    date_end: UtcDateTime
    timezone: str | None = None
    status: str
    cost_credits: int
    credit_transfer_id: str | None = None
    cancellation_reason: str | None = None
    notes: str | None = None
    created_at: UtcDateTime | None = None
    updated_at: UtcDateTime | None = None

    @classmethod
    def from_view(cls, view: BookingView) -> "BookingItem":
        return cls.model_validate(
            {**view.model_dump(), "status": view.status.value}
        )

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingItem":
        return cls(
            id=booking.id or "",
            offer_id=booking.offer_id,
            requester_id=booking.requester_id,
            provider_id=booking.provider_id,
            date_start=booking.date_start,
            date_end=booking.date_end,
            timezone=booking.timezone,
            status=booking.status.value,
            cost_credits=booking.cost_credits,
            credit_transfer_id=booking.credit_transfer_id,
            cancellation_reason=booking.cancellation_reason,
            notes=booking.notes,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )
