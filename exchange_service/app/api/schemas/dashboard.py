from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from ...models.ledger import DashboardStats
from ...models.offer import Offer
from .bookings import BookingItem
from .credits import CreditSummaryItem, LedgerEntryItem


class BookingCountsItem(BaseModel):
    total: int
    active: int
    upcoming: int


class TopOfferItem(BaseModel):
    id: str
    title: str
    category: str | None = None
    bookings_count: int
    avg_rating: float

    @classmethod
    def from_offer(cls, offer: Offer) -> "TopOfferItem":
        return cls(
            id=offer.id or "",
            title=offer.title,
            category=offer.category,
            bookings_count=offer.bookings_count,
            avg_rating=offer.avg_rating,
        )


class DailyBalanceItem(BaseModel):
    date: date
    credits: int


class DashboardResponse(BaseModel):
    credits: CreditSummaryItem
    bookings: BookingCountsItem
    offers_listed: int
    top_offers: list[TopOfferItem]
    upcoming_bookings: list[BookingItem]
    recent_activity: list[LedgerEntryItem]
    credit_history: list[DailyBalanceItem]

    @classmethod
    def from_stats(cls, stats: DashboardStats) -> "DashboardResponse":
        return cls(
            credits=CreditSummaryItem.from_summary(stats.credits),
            bookings=BookingCountsItem(**stats.bookings.model_dump()),
            offers_listed=stats.offers_listed,
            top_offers=[TopOfferItem.from_offer(o) for o in stats.top_offers],
            upcoming_bookings=[BookingItem.from_view(v) for v in stats.upcoming_bookings],
            recent_activity=[LedgerEntryItem.from_entry(e) for e in stats.recent_activity],
            credit_history=[
                DailyBalanceItem(date=p.day, credits=p.credits)
                for p in stats.credit_history
            ],
        )
