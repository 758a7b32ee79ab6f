"""평점/인기도 통계 집계.

평점은 합계(rating_sum)와 개수(reviews_count)로 저장하고, 리뷰 한 건은
원자적 파이프라인 업데이트 한 번으로 반영한다. 동시에 들어온 리뷰끼리 갱신을 잃지 않는다.

커밋 이후의 통계 갱신은 best-effort 이다. 실패하면 로그를 남기고 재계산 요청을 발행하며,
호출한 쪽(완료/리뷰)은 실패로 취급하지 않는다.
"""

from __future__ import annotations

import logging

from fastapi import Depends

from ..dependencies import (
    get_account_repository,
    get_booking_repository,
    get_offer_repository,
    get_review_repository,
    get_stats_publisher,
)
from ..messaging.stats_publisher import StatsReconcilePublisherInterface
from ..models.booking import Booking
from ..models.review import Review
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    BookingRepositoryInterface,
    OfferRepositoryInterface,
    ReviewRepositoryInterface,
)


logger = logging.getLogger(__name__)


class StatisticsService:
    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        offer_repo: OfferRepositoryInterface,
        booking_repo: BookingRepositoryInterface,
        review_repo: ReviewRepositoryInterface,
        publisher: StatsReconcilePublisherInterface,
    ) -> None:
        self._account_repo = account_repo
        self._offer_repo = offer_repo
        self._booking_repo = booking_repo
        self._review_repo = review_repo
        self._publisher = publisher

    def record_completion(self, booking: Booking) -> bool:
        """완료된 예약 한 건을 offer.bookings_count 에 반영한다. 성공 여부를 반환한다."""

        try:
            if self._offer_repo.increment_bookings_count(booking.offer_id):
                return True
            logger.error(
                "bookings_count not incremented: offer missing",
                extra={"offer_id": booking.offer_id, "booking_id": booking.id},
            )
        except Exception:  # noqa: BLE001
            logger.exception(
                "failed to increment bookings_count",
                extra={"offer_id": booking.offer_id, "booking_id": booking.id},
            )

        self._publisher.request_reconcile(
            offer_id=booking.offer_id,
            booking_id=booking.id or "",
            reason="bookings_count_increment_failed",
        )
        return False

    def apply_review(self, review: Review) -> bool:
        """리뷰 한 건을 제공자/오퍼 평점 통계에 반영한다. 성공 여부를 반환한다."""

        try:
            provider = self._account_repo.apply_rating(review.provider_id, review.rating)
            offer = self._offer_repo.apply_rating(review.offer_id, review.rating)
            if provider is not None and offer is not None:
                return True
            logger.error(
                "rating not applied: provider or offer missing",
                extra={"user_id": review.provider_id, "offer_id": review.offer_id},
            )
        except Exception:  # noqa: BLE001
            logger.exception(
                "failed to apply rating",
                extra={"user_id": review.provider_id, "offer_id": review.offer_id},
            )

        self._publisher.request_reconcile(
            offer_id=review.offer_id,
            provider_id=review.provider_id,
            booking_id=review.booking_id,
            reason="rating_update_failed",
        )
        return False

    def reconcile(self, offer_id: str, provider_id: str | None = None) -> None:
        """원천 데이터(bookings, reviews)에서 통계를 다시 계산해 덮어쓴다. 멱등."""

        completed = self._booking_repo.count_completed_for_offer(offer_id)
        self._offer_repo.set_bookings_count(offer_id, completed)
        self._offer_repo.set_rating_stats(
            offer_id, self._review_repo.aggregate_for_offer(offer_id)
        )

        if provider_id:
            self._account_repo.set_rating_stats(
                provider_id, self._review_repo.aggregate_for_provider(provider_id)
            )

        logger.info(
            "stats reconciled",
            extra={
                "offer_id": offer_id,
                "user_id": provider_id,
                "body": {"bookings_count": completed},
            },
        )


def get_statistics_service(
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    offer_repo: OfferRepositoryInterface = Depends(get_offer_repository),
    booking_repo: BookingRepositoryInterface = Depends(get_booking_repository),
    review_repo: ReviewRepositoryInterface = Depends(get_review_repository),
    publisher: StatsReconcilePublisherInterface = Depends(get_stats_publisher),
) -> StatisticsService:
    """FastAPI DI용 StatisticsService 팩토리."""

    return StatisticsService(
        account_repo, offer_repo, booking_repo, review_repo, publisher
    )
