from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from exchange_service.app.main import create_app
from exchange_service.app.services.booking_query_service import get_booking_query_service
from exchange_service.app.services.booking_service import get_booking_service
from exchange_service.app.services.ledger_service import get_ledger_service
from exchange_service.app.services.review_service import get_review_service

from conftest import ExchangeFixture, build_fixture


START = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def api() -> tuple[TestClient, ExchangeFixture]:
    fx = build_fixture()
    app = create_app()
    app.dependency_overrides[get_booking_service] = lambda: fx.bookings
    app.dependency_overrides[get_booking_query_service] = lambda: fx.queries
    app.dependency_overrides[get_review_service] = lambda: fx.reviews
    app.dependency_overrides[get_ledger_service] = lambda: fx.ledger
    # lifespan 을 돌리지 않도록 with 블록 없이 사용한다.
    return TestClient(app), fx


def _headers(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


def _create_body(offer_id: str) -> dict:
    return {
        "offer_id": offer_id,
        "date_start": START.isoformat(),
        "date_end": (START + timedelta(hours=1)).isoformat(),
        "timezone": "Asia/Seoul",
    }


def test_health() -> None:
    client = TestClient(create_app())

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_booking_lifecycle_over_http(api) -> None:
    client, fx = api
    requester = fx.store.add_account(name="alice", credits=10)
    provider = fx.store.add_account(name="bob", credits=0)
    offer = fx.store.add_offer(provider.id, cost=5, title="Chess")

    # when
    created = client.post(
        "/api/v1/bookings", json=_create_body(offer.id), headers=_headers(requester.id)
    )
    booking_id = created.json()["booking_id"]
    accepted = client.patch(
        f"/api/v1/bookings/{booking_id}/status",
        json={"status": "accepted"},
        headers=_headers(provider.id),
    )
    completed = client.patch(
        f"/api/v1/bookings/{booking_id}/status",
        json={"status": "completed"},
        headers=_headers(provider.id),
    )

    # then:
    assert created.status_code == 201
    assert accepted.json()["status"] == "accepted"
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"
    assert fx.store.accounts[requester.id].credits == 5
    assert fx.store.accounts[provider.id].credits == 5


def test_get_and_list_bookings(api) -> None:
    client, fx = api
    requester = fx.store.add_account(name="alice", credits=10)
    provider = fx.store.add_account(name="bob")
    offer = fx.store.add_offer(provider.id, title="Chess")
    booking = fx.bookings.create_booking(
        requester.id, offer.id, START, START + timedelta(hours=1)
    )

    detail = client.get(f"/api/v1/bookings/{booking.id}", headers=_headers(provider.id))
    listing = client.get(
        "/api/v1/bookings",
        params={"role": "requester", "status": "pending"},
        headers=_headers(requester.id),
    )

    assert detail.status_code == 200
    assert detail.json()["offer_title"] == "Chess"
    assert detail.json()["requester_name"] == "alice"
    body = listing.json()
    assert body["total"] == 1
    assert body["total_pages"] == 1
    assert body["items"][0]["id"] == booking.id


def test_domain_errors_use_code_and_message(api) -> None:
    client, fx = api
    requester = fx.store.add_account(credits=2)
    provider = fx.store.add_account()
    offer = fx.store.add_offer(provider.id, cost=5)

    response = client.post(
        "/api/v1/bookings", json=_create_body(offer.id), headers=_headers(requester.id)
    )

    assert response.status_code == 402
    assert response.json()["detail"]["code"] == "insufficient_credits"
    assert response.json()["detail"]["message"]


def test_forbidden_and_not_found(api) -> None:
    client, fx = api
    requester = fx.store.add_account(credits=10)
    provider = fx.store.add_account()
    stranger = fx.store.add_account()
    offer = fx.store.add_offer(provider.id)
    booking = fx.bookings.create_booking(
        requester.id, offer.id, START, START + timedelta(hours=1)
    )

    forbidden = client.get(f"/api/v1/bookings/{booking.id}", headers=_headers(stranger.id))
    missing = client.post(
        "/api/v1/bookings",
        json=_create_body(str(stranger.id)),
        headers=_headers(requester.id),
    )

    assert forbidden.status_code == 403
    assert forbidden.json()["detail"]["code"] == "forbidden"
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "offer_not_found"


def test_invalid_transition_returns_conflict(api) -> None:
    client, fx = api
    requester = fx.store.add_account(credits=10)
    provider = fx.store.add_account()
    offer = fx.store.add_offer(provider.id)
    booking = fx.bookings.create_booking(
        requester.id, offer.id, START, START + timedelta(hours=1)
    )

    response = client.patch(
        f"/api/v1/bookings/{booking.id}/status",
        json={"status": "completed"},
        headers=_headers(provider.id),
    )

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "invalid_transition"


def test_actor_header_is_validated(api) -> None:
    client, _ = api

    missing = client.get("/api/v1/bookings")
    malformed = client.get("/api/v1/bookings", headers=_headers("not-an-id"))

    assert missing.status_code == 422
    assert malformed.status_code == 422
    assert malformed.json()["detail"]["code"] == "validation_error"


def test_request_body_validation(api) -> None:
    client, fx = api
    user = fx.store.add_account()
    body = _create_body(str(user.id))
    body["date_end"] = body["date_start"]

    response = client.post("/api/v1/bookings", json=body, headers=_headers(user.id))
    bad_status = client.patch(
        f"/api/v1/bookings/{user.id}/status",
        json={"status": "pending"},
        headers=_headers(user.id),
    )

    assert response.status_code == 422
    assert bad_status.status_code == 422


def _completed_booking(fx):
    requester = fx.store.add_account(name="alice", credits=10)
    provider = fx.store.add_account(name="bob")
    offer = fx.store.add_offer(provider.id, cost=5, title="Chess")
    booking = fx.bookings.create_booking(
        requester.id, offer.id, START, START + timedelta(hours=1)
    )
    fx.bookings.transition(provider.id, booking.id, "accepted")
    fx.bookings.transition(provider.id, booking.id, "completed")
    return requester, provider, offer, booking


def test_reviews_endpoints(api) -> None:
    client, fx = api
    requester, provider, offer, booking = _completed_booking(fx)

    # when
    created = client.post(
        "/api/v1/reviews",
        json={"booking_id": booking.id, "rating": 4, "comment": "nice"},
        headers=_headers(requester.id),
    )
    duplicate = client.post(
        "/api/v1/reviews",
        json={"booking_id": booking.id, "rating": 5},
        headers=_headers(requester.id),
    )
    by_provider = client.get(f"/api/v1/reviews/users/{provider.id}")
    by_offer = client.get(f"/api/v1/reviews/offers/{offer.id}")
    written = client.get("/api/v1/reviews/written", headers=_headers(requester.id))

    # then:
    assert created.status_code == 201
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["code"] == "duplicate_review"
    provider_body = by_provider.json()
    assert provider_body["rating_avg"] == 4.0
    assert provider_body["reviews_count"] == 1
    assert provider_body["items"][0]["reviewer_name"] == "alice"
    assert by_offer.json()["total"] == 1
    assert written.json()["items"][0]["comment"] == "nice"


def test_review_rating_out_of_range(api) -> None:
    client, fx = api
    requester, _, _, booking = _completed_booking(fx)

    response = client.post(
        "/api/v1/reviews",
        json={"booking_id": booking.id, "rating": 6},
        headers=_headers(requester.id),
    )

    assert response.status_code == 422


def test_credits_me(api) -> None:
    client, fx = api
    requester, provider, _, _ = _completed_booking(fx)

    mine = client.get("/api/v1/credits/me", headers=_headers(requester.id)).json()
    theirs = client.get("/api/v1/credits/me", headers=_headers(provider.id)).json()

    assert (mine["total"], mine["available"], mine["reserved"]) == (5, 5, 0)
    assert mine["lifetime_outcome"] == 5
    assert mine["history"]["items"][0]["type"] == "sent"
    assert mine["history"]["items"][0]["amount"] == -5
    assert theirs["history"]["items"][0]["type"] == "received"


def test_dashboard_me(api) -> None:
    client, fx = api
    requester, _, _, _ = _completed_booking(fx)

    response = client.get("/api/v1/dashboard/me", headers=_headers(requester.id))

    assert response.status_code == 200
    body = response.json()
    assert body["credits"]["total"] == 5
    assert body["bookings"]["total"] == 1
    assert body["recent_activity"][0]["offer_title"] == "Chess"
    assert body["credit_history"][-1]["credits"] == 5
