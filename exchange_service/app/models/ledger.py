"""원장 요약/이력, 완료 결과, 대시보드용 모델."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from .account import CreditBalance
from .booking import Booking, BookingView
from .credit_transaction import CreditTransaction
from .offer import Offer


class LedgerSummary(BaseModel):
    """사용자 원장 요약.

    available 은 새 예약에 쓸 수 있는 양(credits - reserved_credits)이고,
    lifetime_income/outcome 은 completed 이체의 누적 수입/지출이다.
    """

    user_id: str
    total: int
    available: int
    reserved: int
    lifetime_income: int
    lifetime_outcome: int


class LedgerEntry(BaseModel):
    """사용자 관점의 이체 한 건. 받은 경우 amount > 0, 보낸 경우 amount < 0."""

    transaction_id: str
    booking_id: str
    amount: int
    counterpart_id: str
    counterpart_name: str | None = None
    offer_title: str | None = None
    performed_at: datetime


class CompletionResult(BaseModel):
    """완료 트랜잭션 커밋 결과."""

    booking: Booking
    transaction: CreditTransaction
    requester_balance: CreditBalance
    provider_balance: CreditBalance


class DailyBalance(BaseModel):
    day: date
    credits: int


class BookingCounts(BaseModel):
    total: int = 0
    active: int = 0
    upcoming: int = 0


class DashboardStats(BaseModel):
    credits: LedgerSummary
    bookings: BookingCounts
    offers_listed: int
    top_offers: list[Offer]
    upcoming_bookings: list[BookingView]
    recent_activity: list[LedgerEntry]
    credit_history: list[DailyBalance]
