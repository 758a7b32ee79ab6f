from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from common.schemas.pagination import PaginatedResponse, count_pages, normalize_page

from ..actor import get_actor_id
from ..schemas.reviews import (
    CreateReviewRequest,
    CreateReviewResponse,
    ProviderReviewsResponse,
    ReviewItem,
)
from ...services.review_service import ReviewService, get_review_service


router = APIRouter()


@router.post(
    "",
    response_model=CreateReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="완료된 예약에 리뷰 작성",
)
def submit_review(
    body: CreateReviewRequest,
    actor_id: str = Depends(get_actor_id),
    service: ReviewService = Depends(get_review_service),
) -> CreateReviewResponse:
    review = service.submit(
        reviewer_id=actor_id,
        booking_id=body.booking_id,
        rating=body.rating,
        comment=body.comment,
    )
    return CreateReviewResponse(review_id=review.id or "")


@router.get(
    "/users/{provider_id}",
    response_model=ProviderReviewsResponse,
    summary="제공자가 받은 리뷰 목록",
)
def list_provider_reviews(
    provider_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    service: ReviewService = Depends(get_review_service),
) -> ProviderReviewsResponse:
    rating = service.get_provider_rating(provider_id)
    items, total = service.list_for_provider(provider_id, page, page_size)
    page, page_size = normalize_page(page, page_size)
    return ProviderReviewsResponse(
        items=[ReviewItem.from_view(v) for v in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=count_pages(total, page_size),
        rating_avg=rating.average,
        reviews_count=rating.reviews_count,
    )


@router.get(
    "/offers/{offer_id}",
    response_model=PaginatedResponse[ReviewItem],
    summary="오퍼 리뷰 목록",
)
def list_offer_reviews(
    offer_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    service: ReviewService = Depends(get_review_service),
) -> PaginatedResponse[ReviewItem]:
    items, total = service.list_for_offer(offer_id, page, page_size)
    page, page_size = normalize_page(page, page_size)
    return PaginatedResponse[ReviewItem](
        items=[ReviewItem.from_view(v) for v in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=count_pages(total, page_size),
    )


@router.get(
    "/written",
    response_model=PaginatedResponse[ReviewItem],
    summary="내가 작성한 리뷰 목록",
)
def list_written_reviews(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    actor_id: str = Depends(get_actor_id),
    service: ReviewService = Depends(get_review_service),
) -> PaginatedResponse[ReviewItem]:
    items, total = service.list_written(actor_id, page, page_size)
    page, page_size = normalize_page(page, page_size)
    return PaginatedResponse[ReviewItem](
        items=[ReviewItem.from_view(v) for v in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=count_pages(total, page_size),
    )
