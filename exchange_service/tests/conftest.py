from __future__ import annotations

from dataclasses import dataclass

import pytest

from exchange_service.app.messaging.booking_notifier import BookingNotifier
from exchange_service.app.services.booking_query_service import BookingQueryService
from exchange_service.app.services.booking_service import BookingService
from exchange_service.app.services.completion_service import CompletionService
from exchange_service.app.services.ledger_service import LedgerService
from exchange_service.app.services.reservation_service import ReservationService
from exchange_service.app.services.review_service import ReviewService
from exchange_service.app.services.statistics_service import StatisticsService

from fakes import (
    FakeAccountRepository,
    FakeBookingQueryRepository,
    FakeBookingRepository,
    FakeCreditTransactionRepository,
    FakeOfferRepository,
    FakeReviewRepository,
    FakeStore,
    FakeTransactionRunner,
    RecordingNotificationSink,
    RecordingStatsPublisher,
)


@dataclass
class ExchangeFixture:
    store: FakeStore
    account_repo: FakeAccountRepository
    offer_repo: FakeOfferRepository
    booking_repo: FakeBookingRepository
    query_repo: FakeBookingQueryRepository
    transaction_repo: FakeCreditTransactionRepository
    review_repo: FakeReviewRepository
    runner: FakeTransactionRunner
    sink: RecordingNotificationSink
    publisher: RecordingStatsPublisher
    sleeps: list[float]
    reservation: ReservationService
    statistics: StatisticsService
    completion: CompletionService
    bookings: BookingService
    reviews: ReviewService
    ledger: LedgerService
    queries: BookingQueryService


def build_fixture(*, max_attempts: int = 3) -> ExchangeFixture:
    store = FakeStore()
    account_repo = FakeAccountRepository(store)
    offer_repo = FakeOfferRepository(store)
    booking_repo = FakeBookingRepository(store)
    query_repo = FakeBookingQueryRepository(store)
    transaction_repo = FakeCreditTransactionRepository(store)
    review_repo = FakeReviewRepository(store)
    runner = FakeTransactionRunner(store)
    sink = RecordingNotificationSink()
    publisher = RecordingStatsPublisher()
    sleeps: list[float] = []

    notifier = BookingNotifier(sink)
    reservation = ReservationService(account_repo)
    statistics = StatisticsService(
        account_repo, offer_repo, booking_repo, review_repo, publisher
    )
    completion = CompletionService(
        account_repo,
        booking_repo,
        transaction_repo,
        runner,
        statistics,
        notifier,
        max_attempts=max_attempts,
        backoff_seconds=0.01,
        sleep=sleeps.append,
    )
    bookings = BookingService(
        offer_repo, booking_repo, reservation, runner, completion, notifier
    )
    reviews = ReviewService(
        review_repo, booking_repo, account_repo, statistics, default_page_size=10
    )
    ledger = LedgerService(account_repo, transaction_repo, default_page_size=10)
    queries = BookingQueryService(
        query_repo, account_repo, offer_repo, transaction_repo, default_page_size=10
    )

    return ExchangeFixture(
        store=store,
        account_repo=account_repo,
        offer_repo=offer_repo,
        booking_repo=booking_repo,
        query_repo=query_repo,
        transaction_repo=transaction_repo,
        review_repo=review_repo,
        runner=runner,
        sink=sink,
        publisher=publisher,
        sleeps=sleeps,
        reservation=reservation,
        statistics=statistics,
        completion=completion,
        bookings=bookings,
        reviews=reviews,
        ledger=ledger,
        queries=queries,
    )


@pytest.fixture
def fx() -> ExchangeFixture:
    return build_fixture()
