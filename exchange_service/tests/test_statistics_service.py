from __future__ import annotations

from datetime import datetime, timezone

from exchange_service.app.models.booking import Booking, BookingStatus
from exchange_service.app.models.review import RatingStats, Review

from fakes import new_id


def _completed_booking(fx, offer, requester_id: str) -> Booking:
    now = datetime.now(timezone.utc)
    return fx.booking_repo.insert(
        Booking(
            offer_id=offer.id,
            requester_id=requester_id,
            provider_id=offer.owner_id,
            date_start=now,
            date_end=now,
            cost_credits=offer.cost_credits,
            status=BookingStatus.COMPLETED,
            created_at=now,
            updated_at=now,
        )
    )


def _review(fx, booking: Booking, rating: int) -> Review:
    now = datetime.now(timezone.utc)
    created = fx.review_repo.create(
        Review(
            booking_id=booking.id,
            reviewer_id=booking.requester_id,
            provider_id=booking.provider_id,
            offer_id=booking.offer_id,
            rating=rating,
            created_at=now,
            updated_at=now,
        )
    )
    assert created is not None
    return created


def test_record_completion_increments_bookings_count(fx) -> None:
    provider = fx.store.add_account()
    offer = fx.store.add_offer(provider.id)
    booking = _completed_booking(fx, offer, new_id())

    assert fx.statistics.record_completion(booking) is True
    assert fx.store.offers[offer.id].bookings_count == 1
    assert fx.publisher.requests == []


def test_record_completion_for_missing_offer_requests_reconcile(fx) -> None:
    provider = fx.store.add_account()
    offer = fx.store.add_offer(provider.id)
    booking = _completed_booking(fx, offer, new_id())
    del fx.store.offers[offer.id]

    # when
    ok = fx.statistics.record_completion(booking)

    # then:
    assert ok is False
    assert fx.publisher.requests[0]["reason"] == "bookings_count_increment_failed"


def test_reconcile_recomputes_counts_and_ratings(fx) -> None:
    provider = fx.store.add_account()
    offer = fx.store.add_offer(provider.id)
    first = _completed_booking(fx, offer, new_id())
    second = _completed_booking(fx, offer, new_id())
    _review(fx, first, 5)
    _review(fx, second, 2)
    # 통계가 어긋난 상태
    fx.store.offers[offer.id] = fx.store.offers[offer.id].model_copy(
        update={"bookings_count": 7, "rating_sum": 1, "reviews_count": 1, "avg_rating": 1.0}
    )

    # when
    fx.statistics.reconcile(offer.id, provider.id)

    # then:
    stored = fx.store.offers[offer.id]
    assert stored.bookings_count == 2
    assert (stored.rating_sum, stored.reviews_count, stored.avg_rating) == (7, 2, 3.5)
    account = fx.store.accounts[provider.id]
    assert (account.rating_sum, account.reviews_count, account.rating_avg) == (7, 2, 3.5)


def test_reconcile_is_idempotent(fx) -> None:
    provider = fx.store.add_account()
    offer = fx.store.add_offer(provider.id)
    _review(fx, _completed_booking(fx, offer, new_id()), 4)

    fx.statistics.reconcile(offer.id, provider.id)
    first = fx.store.offers[offer.id].model_dump(exclude={"updated_at"})
    fx.statistics.reconcile(offer.id, provider.id)

    assert fx.store.offers[offer.id].model_dump(exclude={"updated_at"}) == first


def test_rating_stats_average_of_empty_is_zero() -> None:
    assert RatingStats().average == 0.0
