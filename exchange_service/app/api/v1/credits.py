from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from common.schemas.pagination import PaginatedResponse, count_pages, normalize_page

from ..actor import get_actor_id
from ..schemas.credits import CreditSummaryItem, CreditsMeResponse, LedgerEntryItem
from ...services.ledger_service import LedgerService, get_ledger_service


router = APIRouter(prefix="/credits", tags=["credits"])


@router.get(
    "/me",
    response_model=CreditsMeResponse,
    summary="내 크레딧 요약 + 이체 이력",
)
def get_my_credits(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    actor_id: str = Depends(get_actor_id),
    service: LedgerService = Depends(get_ledger_service),
) -> CreditsMeResponse:
    summary = service.get_summary(actor_id)
    entries, total = service.get_history(actor_id, page, page_size)
    page, page_size = normalize_page(page, page_size)
    return CreditsMeResponse(
        **CreditSummaryItem.from_summary(summary).model_dump(),
        history=PaginatedResponse[LedgerEntryItem](
            items=[LedgerEntryItem.from_entry(e) for e in entries],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=count_pages(total, page_size),
        ),
    )
