from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from exchange_service.app.exceptions import (
    AccountNotFoundError,
    BookingNotFoundError,
    DuplicateReviewError,
    ForbiddenError,
    NotCompletedError,
    ValidationError,
)
from exchange_service.app.models.booking import BookingStatus

from fakes import new_id


def _booking(fx, *, complete: bool = True):
    requester = fx.store.add_account(name="alice", credits=20)
    provider = fx.store.add_account(name="bob", credits=0)
    offer = fx.store.add_offer(provider.id, cost=5, title="Guitar basics")
    start = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)
    booking = fx.bookings.create_booking(
        requester.id, offer.id, start, start + timedelta(hours=1)
    )
    if complete:
        fx.bookings.transition(provider.id, booking.id, BookingStatus.ACCEPTED)
        fx.bookings.transition(provider.id, booking.id, BookingStatus.COMPLETED)
    return requester, provider, offer, booking


def test_submit_review_updates_provider_and_offer_ratings(fx) -> None:
    requester, provider, offer, booking = _booking(fx)

    # when
    review = fx.reviews.submit(requester.id, booking.id, 4, "great")

    # then:
    assert review.provider_id == provider.id
    assert review.offer_id == offer.id
    account = fx.store.accounts[provider.id]
    assert (account.rating_sum, account.reviews_count, account.rating_avg) == (4, 1, 4.0)
    stored_offer = fx.store.offers[offer.id]
    assert (stored_offer.reviews_count, stored_offer.avg_rating) == (1, 4.0)


def test_duplicate_review_applies_stats_once(fx) -> None:
    requester, provider, _, booking = _booking(fx)
    fx.reviews.submit(requester.id, booking.id, 5)

    # when
    with pytest.raises(DuplicateReviewError):
        fx.reviews.submit(requester.id, booking.id, 1)

    # then:
    account = fx.store.accounts[provider.id]
    assert account.reviews_count == 1
    assert account.rating_avg == 5.0
    assert len(fx.store.reviews) == 1


def test_average_is_recomputed_from_sum_and_count(fx) -> None:
    provider = fx.store.add_account(name="bob")
    offer = fx.store.add_offer(provider.id, cost=1)
    start = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)
    for rating in (5, 4, 3):
        requester = fx.store.add_account(credits=5)
        booking = fx.bookings.create_booking(
            requester.id, offer.id, start, start + timedelta(hours=1)
        )
        fx.bookings.transition(provider.id, booking.id, BookingStatus.ACCEPTED)
        fx.bookings.transition(provider.id, booking.id, BookingStatus.COMPLETED)
        fx.reviews.submit(requester.id, booking.id, rating)

    stats = fx.reviews.get_provider_rating(provider.id)
    assert stats.reviews_count == 3
    assert stats.average == 4.0
    assert fx.store.offers[offer.id].avg_rating == 4.0


def test_provider_cannot_review_own_booking(fx) -> None:
    _, provider, _, booking = _booking(fx)

    with pytest.raises(ForbiddenError):
        fx.reviews.submit(provider.id, booking.id, 5)


def test_stranger_cannot_review(fx) -> None:
    _, _, _, booking = _booking(fx)
    stranger = fx.store.add_account()

    with pytest.raises(ForbiddenError):
        fx.reviews.submit(stranger.id, booking.id, 5)


def test_review_requires_completed_booking(fx) -> None:
    requester, _, _, booking = _booking(fx, complete=False)

    with pytest.raises(NotCompletedError):
        fx.reviews.submit(requester.id, booking.id, 5)

    assert fx.store.reviews == {}


def test_review_unknown_booking(fx) -> None:
    user = fx.store.add_account()

    with pytest.raises(BookingNotFoundError):
        fx.reviews.submit(user.id, new_id(), 5)


@pytest.mark.parametrize("rating", [0, 6, -1, True, 4.5])
def test_rating_must_be_integer_between_one_and_five(fx, rating) -> None:
    requester, _, _, booking = _booking(fx)

    with pytest.raises(ValidationError):
        fx.reviews.submit(requester.id, booking.id, rating)


def test_comment_length_is_limited(fx) -> None:
    requester, _, _, booking = _booking(fx)

    with pytest.raises(ValidationError):
        fx.reviews.submit(requester.id, booking.id, 5, "c" * 1001)


def test_rating_failure_publishes_reconcile_request(fx) -> None:
    requester, provider, offer, booking = _booking(fx)
    fx.account_repo.fail_apply_rating = True

    # when
    review = fx.reviews.submit(requester.id, booking.id, 3)

    # then: 리뷰는 저장되고, 통계는 재계산 요청으로 넘어간다.
    assert review.id in fx.store.reviews
    assert fx.publisher.requests[-1] == {
        "offer_id": offer.id,
        "booking_id": booking.id,
        "reason": "rating_update_failed",
        "provider_id": provider.id,
    }


def test_list_reviews_for_provider_offer_and_reviewer(fx) -> None:
    requester, provider, offer, booking = _booking(fx)
    fx.reviews.submit(requester.id, booking.id, 5, "excellent")

    by_provider, total = fx.reviews.list_for_provider(provider.id, 1, 10)
    by_offer, _ = fx.reviews.list_for_offer(offer.id, 0, 0)
    written, _ = fx.reviews.list_written(requester.id, 1, 10)

    assert total == 1
    assert by_provider[0].reviewer_name == "alice"
    assert by_offer[0].offer_title == "Guitar basics"
    assert written[0].comment == "excellent"


def test_provider_rating_for_unknown_account(fx) -> None:
    with pytest.raises(AccountNotFoundError):
        fx.reviews.get_provider_rating(new_id())
