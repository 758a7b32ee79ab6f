from __future__ import annotations

from fastapi import APIRouter, Depends

from ..actor import get_actor_id
from ..schemas.dashboard import DashboardResponse
from ...services.booking_query_service import (
    BookingQueryService,
    get_booking_query_service,
)


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/me", response_model=DashboardResponse, summary="내 대시보드 통계")
def get_my_dashboard(
    actor_id: str = Depends(get_actor_id),
    service: BookingQueryService = Depends(get_booking_query_service),
) -> DashboardResponse:
    return DashboardResponse.from_stats(service.get_dashboard(actor_id))
