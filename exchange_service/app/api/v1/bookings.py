from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from common.schemas.pagination import PaginatedResponse, count_pages, normalize_page

from ..actor import get_actor_id
from ..schemas.bookings import (
    BookingItem,
    CreateBookingRequest,
    CreateBookingResponse,
    UpdateBookingStatusRequest,
)
from ...models.booking import BookingRole, BookingStatus
from ...services.booking_query_service import (
    BookingQueryService,
    get_booking_query_service,
)
from ...services.booking_service import BookingService, get_booking_service


router = APIRouter()


@router.post(
    "",
    response_model=CreateBookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="예약 요청 생성",
)
def create_booking(
    body: CreateBookingRequest,
    actor_id: str = Depends(get_actor_id),
    service: BookingService = Depends(get_booking_service),
) -> CreateBookingResponse:
    booking = service.create_booking(
        requester_id=actor_id,
        offer_id=body.offer_id,
        date_start=body.date_start,
        date_end=body.date_end,
        timezone_name=body.timezone,
        notes=body.notes,
    )
    return CreateBookingResponse(booking_id=booking.id or "")


@router.get(
    "",
    response_model=PaginatedResponse[BookingItem],
    summary="내 예약 목록 조회",
)
def list_bookings(
    role: BookingRole = Query(BookingRole.ALL, description="requester | provider | all"),
    booking_status: BookingStatus | None = Query(None, alias="status"),
    date_from: datetime | None = Query(None, description="date_start 하한 (포함)"),
    date_to: datetime | None = Query(None, description="date_start 상한 (포함)"),
    page: int = Query(1, ge=1, description="조회할 페이지 (1부터 시작)"),
    page_size: int = Query(10, ge=1, le=100, description="페이지당 아이템 개수 (1~100)"),
    actor_id: str = Depends(get_actor_id),
    service: BookingQueryService = Depends(get_booking_query_service),
) -> PaginatedResponse[BookingItem]:
    items, total = service.list_bookings(
        actor_id,
        role=role,
        status=booking_status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    page, page_size = normalize_page(page, page_size)
    return PaginatedResponse[BookingItem](
        items=[BookingItem.from_view(v) for v in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=count_pages(total, page_size),
    )


@router.get(
    "/{booking_id}",
    response_model=BookingItem,
    summary="예약 상세 조회",
)
def get_booking(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    service: BookingQueryService = Depends(get_booking_query_service),
) -> BookingItem:
    return BookingItem.from_view(service.get_booking(actor_id, booking_id))


@router.patch(
    "/{booking_id}/status",
    response_model=BookingItem,
    summary="예약 상태 변경 (수락/취소/완료)",
)
def update_booking_status(
    booking_id: str,
    body: UpdateBookingStatusRequest,
    actor_id: str = Depends(get_actor_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingItem:
    booking = service.transition(
        actor_id,
        booking_id,
        body.status,
        cancellation_reason=body.cancellation_reason,
    )
    return BookingItem.from_booking(booking)
