from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from exchange_service.app.exceptions import (
    AccountNotFoundError,
    BookingNotFoundError,
    ForbiddenError,
)
from exchange_service.app.models.booking import BookingRole, BookingStatus
from exchange_service.app.models.credit_transaction import CreditTransaction
from exchange_service.app.services.booking_query_service import build_daily_balances

from fakes import new_id


NOW = datetime.now(timezone.utc).replace(microsecond=0)


def _complete(fx, requester, provider, offer, *, hours_from_now: int):
    start = NOW + timedelta(hours=hours_from_now)
    booking = fx.bookings.create_booking(
        requester.id, offer.id, start, start + timedelta(hours=1)
    )
    fx.bookings.transition(provider.id, booking.id, BookingStatus.ACCEPTED)
    fx.bookings.transition(provider.id, booking.id, BookingStatus.COMPLETED)
    return booking


def test_summary_reports_available_reserved_and_lifetime_totals(fx) -> None:
    alice = fx.store.add_account(name="alice", credits=20)
    bob = fx.store.add_account(name="bob", credits=5)
    bob_offer = fx.store.add_offer(bob.id, cost=5)
    alice_offer = fx.store.add_offer(alice.id, cost=2)
    _complete(fx, alice, bob, bob_offer, hours_from_now=1)
    _complete(fx, bob, alice, alice_offer, hours_from_now=2)
    fx.bookings.create_booking(
        alice.id, bob_offer.id, NOW + timedelta(days=3), NOW + timedelta(days=3, hours=1)
    )

    # when
    summary = fx.ledger.get_summary(alice.id)

    # then:
    assert summary.total == 17
    assert summary.reserved == 5
    assert summary.available == 12
    assert summary.lifetime_income == 2
    assert summary.lifetime_outcome == 5


def test_summary_for_unknown_account(fx) -> None:
    with pytest.raises(AccountNotFoundError):
        fx.ledger.get_summary(new_id())


def test_history_signs_amounts_by_direction(fx) -> None:
    alice = fx.store.add_account(name="alice", credits=20)
    bob = fx.store.add_account(name="bob", credits=0)
    offer = fx.store.add_offer(bob.id, cost=5, title="Chess")
    _complete(fx, alice, bob, offer, hours_from_now=1)

    alice_entries, total = fx.ledger.get_history(alice.id, 1, 10)
    bob_entries, _ = fx.ledger.get_history(bob.id, 1, 10)

    assert total == 1
    assert alice_entries[0].amount == -5
    assert alice_entries[0].counterpart_name == "bob"
    assert alice_entries[0].offer_title == "Chess"
    assert bob_entries[0].amount == 5
    assert bob_entries[0].counterpart_id == alice.id


def test_get_booking_only_for_participants(fx) -> None:
    alice = fx.store.add_account(name="alice", credits=20)
    bob = fx.store.add_account(name="bob")
    stranger = fx.store.add_account(name="eve")
    offer = fx.store.add_offer(bob.id, title="Chess")
    booking = fx.bookings.create_booking(
        alice.id, offer.id, NOW, NOW + timedelta(hours=1)
    )

    view = fx.queries.get_booking(bob.id, booking.id)

    assert view.offer_title == "Chess"
    assert view.requester_name == "alice"
    with pytest.raises(ForbiddenError):
        fx.queries.get_booking(stranger.id, booking.id)
    with pytest.raises(BookingNotFoundError):
        fx.queries.get_booking(bob.id, new_id())


def test_completed_booking_view_links_its_transfer(fx) -> None:
    alice = fx.store.add_account(name="alice", credits=20)
    bob = fx.store.add_account(name="bob")
    offer = fx.store.add_offer(bob.id, cost=5)
    pending = fx.bookings.create_booking(
        alice.id, offer.id, NOW, NOW + timedelta(hours=1)
    )
    completed = _complete(fx, alice, bob, offer, hours_from_now=2)

    view = fx.queries.get_booking(alice.id, completed.id)

    (transaction,) = fx.store.transactions.values()
    assert view.credit_transfer_id == transaction.id
    assert fx.queries.get_booking(alice.id, pending.id).credit_transfer_id is None


def test_list_bookings_filters_by_role_and_status(fx) -> None:
    alice = fx.store.add_account(name="alice", credits=50)
    bob = fx.store.add_account(name="bob", credits=50)
    bob_offer = fx.store.add_offer(bob.id, cost=5)
    alice_offer = fx.store.add_offer(alice.id, cost=5)
    first = fx.bookings.create_booking(alice.id, bob_offer.id, NOW, NOW + timedelta(hours=1))
    fx.bookings.create_booking(
        bob.id, alice_offer.id, NOW + timedelta(days=1), NOW + timedelta(days=1, hours=1)
    )
    fx.bookings.transition(alice.id, first.id, BookingStatus.CANCELED)

    everything, total = fx.queries.list_bookings(alice.id)
    as_provider, _ = fx.queries.list_bookings(alice.id, role=BookingRole.PROVIDER)
    canceled, _ = fx.queries.list_bookings(alice.id, status=BookingStatus.CANCELED)
    later, _ = fx.queries.list_bookings(alice.id, date_from=NOW + timedelta(hours=12))

    assert total == 2
    assert everything[0].date_start > everything[1].date_start
    assert [v.requester_id for v in as_provider] == [bob.id]
    assert [v.id for v in canceled] == [first.id]
    assert [v.provider_id for v in later] == [alice.id]


def test_build_daily_balances_works_backwards_from_current() -> None:
    user = new_id()
    other = new_id()

    def tx(day: int, amount: int, incoming: bool) -> CreditTransaction:
        when = datetime(2026, 10, day, 10, 0, tzinfo=timezone.utc)
        return CreditTransaction(
            booking_id=new_id(),
            from_user_id=other if incoming else user,
            to_user_id=user if incoming else other,
            amount_credits=amount,
            performed_at=when,
            created_at=when,
            updated_at=when,
        )

    points = build_daily_balances(
        user, 12, [tx(3, 5, True), tx(3, 2, False), tx(7, 4, True)]
    )

    # 시작 잔액: 12 - (5 - 2 + 4) = 5
    assert [(p.day, p.credits) for p in points] == [
        (date(2026, 10, 3), 8),
        (date(2026, 10, 7), 12),
    ]


def test_build_daily_balances_without_transactions() -> None:
    assert build_daily_balances(new_id(), 10, []) == []


def test_dashboard_aggregates_counts_offers_and_history(fx) -> None:
    alice = fx.store.add_account(name="alice", credits=30)
    bob = fx.store.add_account(name="bob", credits=0)
    for rating in (1.0, 4.5, 3.0, 5.0):
        fx.store.add_offer(alice.id, avg_rating=rating)
    bob_offer = fx.store.add_offer(bob.id, cost=5)
    done = fx.bookings.create_booking(
        alice.id, bob_offer.id, NOW - timedelta(days=2), NOW - timedelta(days=2, hours=-1)
    )
    fx.bookings.transition(bob.id, done.id, BookingStatus.ACCEPTED)
    fx.bookings.transition(bob.id, done.id, BookingStatus.COMPLETED)
    soon = fx.bookings.create_booking(
        alice.id, bob_offer.id, NOW + timedelta(days=1), NOW + timedelta(days=1, hours=1)
    )
    fx.bookings.transition(bob.id, soon.id, BookingStatus.ACCEPTED)
    fx.bookings.create_booking(
        alice.id, bob_offer.id, NOW + timedelta(days=2), NOW + timedelta(days=2, hours=1)
    )

    # when
    stats = fx.queries.get_dashboard(alice.id, now=NOW)

    # then:
    assert (stats.bookings.total, stats.bookings.active, stats.bookings.upcoming) == (3, 2, 1)
    assert stats.upcoming_bookings[0].id == soon.id
    assert stats.offers_listed == 4
    assert [o.avg_rating for o in stats.top_offers] == [5.0, 4.5, 3.0]
    assert stats.credits.total == 25
    assert stats.credits.reserved == 10
    assert stats.credits.lifetime_outcome == 5
    assert [e.amount for e in stats.recent_activity] == [-5]
    assert stats.credit_history[-1].credits == 25


def test_dashboard_for_unknown_account(fx) -> None:
    with pytest.raises(AccountNotFoundError):
        fx.queries.get_dashboard(new_id(), now=NOW)
