from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import Depends

from common.schemas.pagination import normalize_page

from ..config import ExchangeConfig
from ..dependencies import (
    get_account_repository,
    get_booking_repository,
    get_exchange_config,
    get_review_repository,
)
from ..exceptions import (
    AccountNotFoundError,
    BookingNotFoundError,
    DuplicateReviewError,
    ForbiddenError,
    NotCompletedError,
    ValidationError,
)
from ..models.booking import BookingStatus, is_participant
from ..models.review import MAX_RATING, MIN_RATING, RatingStats, Review, ReviewView
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    BookingRepositoryInterface,
    ReviewRepositoryInterface,
)
from .statistics_service import StatisticsService, get_statistics_service


logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


class ReviewService:
    """리뷰 작성과 목록 조회.

    - 완료된 예약의 요청자만 리뷰를 남길 수 있다. (제공자는 자기 자신을 평가하지 않는다.)
    - (booking, reviewer) 당 하나. 중복은 저장소의 유니크 제약이 최종 판정한다.
    """

    def __init__(
        self,
        review_repo: ReviewRepositoryInterface,
        booking_repo: BookingRepositoryInterface,
        account_repo: AccountRepositoryInterface,
        statistics: StatisticsService,
        *,
        default_page_size: int = 10,
    ) -> None:
        self._review_repo = review_repo
        self._booking_repo = booking_repo
        self._account_repo = account_repo
        self._statistics = statistics
        self._default_page_size = default_page_size

    def submit(
        self,
        reviewer_id: str,
        booking_id: str,
        rating: int,
        comment: str | None = None,
    ) -> Review:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError("rating must be an integer")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                f"rating must be between {MIN_RATING} and {MAX_RATING}"
            )
        if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
            raise ValidationError(
                f"comment must be at most {MAX_COMMENT_LENGTH} characters"
            )

        booking = self._booking_repo.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"booking not found: {booking_id}")
        if not is_participant(booking, reviewer_id).is_requester:
            raise ForbiddenError("only the requester can review this booking")
        if booking.status != BookingStatus.COMPLETED:
            raise NotCompletedError("only completed bookings can be reviewed")

        now = datetime.now(timezone.utc)
        created = self._review_repo.create(
            Review(
                booking_id=booking_id,
                reviewer_id=reviewer_id,
                provider_id=booking.provider_id,
                offer_id=booking.offer_id,
                rating=rating,
                comment=comment,
                created_at=now,
                updated_at=now,
            )
        )
        if created is None:
            raise DuplicateReviewError("you have already reviewed this booking")

        logger.info(
            "review submitted",
            extra={
                "booking_id": booking_id,
                "user_id": reviewer_id,
                "offer_id": booking.offer_id,
                "body": {"rating": rating},
            },
        )
        self._statistics.apply_review(created)
        return created

    def _page(self, page: int, page_size: int) -> tuple[int, int]:
        return normalize_page(page, page_size, self._default_page_size)

    def list_for_provider(
        self, provider_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:
        page, page_size = self._page(page, page_size)
        return self._review_repo.list_by_provider(provider_id, page, page_size)

    def get_provider_rating(self, provider_id: str) -> RatingStats:
        account = self._account_repo.find_by_id(provider_id)
        if account is None:
            raise AccountNotFoundError(f"account not found: {provider_id}")
        return RatingStats(
            rating_sum=account.rating_sum, reviews_count=account.reviews_count
        )

    def list_for_offer(
        self, offer_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:
        page, page_size = self._page(page, page_size)
        return self._review_repo.list_by_offer(offer_id, page, page_size)

    def list_written(
        self, reviewer_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:
        page, page_size = self._page(page, page_size)
        return self._review_repo.list_by_reviewer(reviewer_id, page, page_size)


def get_review_service(
    review_repo: ReviewRepositoryInterface = Depends(get_review_repository),
    booking_repo: BookingRepositoryInterface = Depends(get_booking_repository),
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    statistics: StatisticsService = Depends(get_statistics_service),
    config: ExchangeConfig = Depends(get_exchange_config),
) -> ReviewService:
    """FastAPI DI용 ReviewService 팩토리."""

    return ReviewService(
        review_repo,
        booking_repo,
        account_repo,
        statistics,
        default_page_size=config.default_page_size,
    )
