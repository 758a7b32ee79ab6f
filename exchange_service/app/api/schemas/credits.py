from __future__ import annotations

from pydantic import BaseModel

from common.schemas.pagination import PaginatedResponse
from common.types.datetime import UtcDateTime

from ...models.ledger import LedgerEntry, LedgerSummary


class LedgerEntryItem(BaseModel):
    transaction_id: str
    booking_id: str
    amount: int
    type: str  # "received" | "sent"
    counterpart_id: str
    counterpart_name: str | None = None
    offer_title: str | None = None
    performed_at: UtcDateTime

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            **entry.model_dump(),
            type="received" if entry.amount > 0 else "sent",
        )


class CreditSummaryItem(BaseModel):
    total: int
    available: int
    reserved: int
    lifetime_income: int
    lifetime_outcome: int

    @classmethod
    def from_summary(cls, summary: LedgerSummary) -> "CreditSummaryItem":
        return cls(
            total=summary.total,
            available=summary.available,
            reserved=summary.reserved,
            lifetime_income=summary.lifetime_income,
            lifetime_outcome=summary.lifetime_outcome,
        )


class CreditsMeResponse(CreditSummaryItem):
    history: PaginatedResponse[LedgerEntryItem]
