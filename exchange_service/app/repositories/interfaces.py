from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar

from pymongo.client_session import ClientSession

from ..models.account import Account
from ..models.booking import Booking, BookingFilter, BookingStatus, BookingView
from ..models.credit_transaction import CreditTransaction
from ..models.ledger import LedgerEntry
from ..models.offer import Offer, OfferSnapshot
from ..models.review import RatingStats, Review, ReviewView


T = TypeVar("T")


class TransactionRunnerInterface(Protocol):
    """다중 도큐먼트 트랜잭션 실행기.

    callback 이 예외 없이 끝나면 커밋하고, 예외가 나면 아무 변경도 남기지 않는다.
    일시적 오류(쓰기 충돌, 커밋 결과 불명 등)는 TransientStoreError 로 변환해 던진다.
    """

    def run(
        self, callback: Callable[[ClientSession], T]
    ) -> T:  # pragma: no cover - Protocol
        ...


class AccountRepositoryInterface(Protocol):
    """users 컬렉션의 잔액/평점 필드에 대한 원자적 연산 계약.

    잔액 필드는 도큐먼트 전체를 읽고 다시 쓰지 않고, 반드시 조건부 단일 업데이트로 바꾼다.
    """

    def find_by_id(
        self, user_id: str, *, session: ClientSession | None = None
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def reserve(
        self, user_id: str, amount: int
    ) -> Account | None:  # pragma: no cover - Protocol
        """credits - reserved_credits >= amount 일 때만 reserved_credits 를 늘린다.

        조건이 맞지 않거나 계정이 없으면 None, 성공하면 갱신 후 계정을 반환한다.
        """
        ...

    def release(
        self, user_id: str, amount: int, *, session: ClientSession | None = None
    ) -> Account | None:  # pragma: no cover - Protocol
        """reserved_credits 를 amount 만큼 줄이되 0 미만으로 내려가지 않게 한다.

        갱신 전 계정을 반환한다. 계정이 없으면 None.
        예약 취소처럼 다른 변경과 함께 묶을 때는 session 을 넘긴다.
        """
        ...

    def debit_reserved(
        self, user_id: str, amount: int, *, session: ClientSession
    ) -> Account | None:  # pragma: no cover - Protocol
        """reserved_credits 와 credits 를 함께 차감한다. 둘 다 amount 이상일 때만."""
        ...

    def credit(
        self, user_id: str, amount: int, *, session: ClientSession
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def apply_rating(
        self, user_id: str, rating: int
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def set_rating_stats(
        self, user_id: str, stats: RatingStats
    ) -> bool:  # pragma: no cover - Protocol
        ...


class OfferRepositoryInterface(Protocol):
    """오퍼 카탈로그(읽기) + 통계 필드 갱신 계약."""

    def get_active_offer(
        self, offer_id: str
    ) -> OfferSnapshot | None:  # pragma: no cover - Protocol
        """승인 판단용 스냅샷. 오퍼가 없으면 None (비활성이어도 스냅샷은 반환)."""
        ...

    def find_by_id(self, offer_id: str) -> Offer | None:  # pragma: no cover - Protocol
        ...

    def list_by_owner(
        self, owner_id: str
    ) -> list[Offer]:  # pragma: no cover - Protocol
        ...

    def increment_bookings_count(
        self, offer_id: str, amount: int = 1
    ) -> bool:  # pragma: no cover - Protocol
        ...

    def set_bookings_count(
        self, offer_id: str, count: int
    ) -> bool:  # pragma: no cover - Protocol
        ...

    def apply_rating(
        self, offer_id: str, rating: int
    ) -> Offer | None:  # pragma: no cover - Protocol
        ...

    def set_rating_stats(
        self, offer_id: str, stats: RatingStats
    ) -> bool:  # pragma: no cover - Protocol
        ...


class BookingRepositoryInterface(Protocol):
    """bookings 컬렉션 쓰기 측 계약."""

    def insert(self, booking: Booking) -> Booking:  # pragma: no cover - Protocol
        ...

    def find_by_id(
        self, booking_id: str, *, session: ClientSession | None = None
    ) -> Booking | None:  # pragma: no cover - Protocol
        ...

    def find_overlapping(
        self,
        offer_id: str,
        requester_id: str,
        date_start: datetime,
        date_end: datetime,
    ) -> Booking | None:  # pragma: no cover - Protocol
        """같은 요청자/오퍼의 pending/accepted 예약 중 [date_start, date_end) 와 겹치는 것."""
        ...

    def transition(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
        *,
        fields: dict[str, object] | None = None,
        session: ClientSession | None = None,
    ) -> Booking | None:  # pragma: no cover - Protocol
        """status == expected 인 경우에만 new_status 로 바꾸고 갱신 후 예약을 반환한다.

        상태가 이미 바뀌었으면(경쟁에서 짐) None.
        """
        ...

    def count_completed_for_offer(
        self, offer_id: str
    ) -> int:  # pragma: no cover - Protocol
        ...


class BookingQueryRepositoryInterface(Protocol):
    """표시용 예약 프로젝션 조회 계약. 쓰기 측 불변식과 분리되어 있다."""

    def find_view(
        self, booking_id: str
    ) -> BookingView | None:  # pragma: no cover - Protocol
        ...

    def list_views(
        self, flt: BookingFilter, page: int, page_size: int
    ) -> tuple[list[BookingView], int]:  # pragma: no cover - Protocol
        ...

    def count_for_user(
        self, user_id: str
    ) -> tuple[int, int]:  # pragma: no cover - Protocol
        """(전체 예약 수, pending/accepted 예약 수)."""
        ...

    def list_upcoming(
        self, user_id: str, now: datetime, limit: int
    ) -> list[BookingView]:  # pragma: no cover - Protocol
        ...


class CreditTransactionRepositoryInterface(Protocol):
    """credit_transactions 컬렉션(append-only) 계약."""

    def insert(
        self, tx: CreditTransaction, *, session: ClientSession
    ) -> CreditTransaction:  # pragma: no cover - Protocol
        """(booking_id, from, to) 가 이미 있으면 DuplicateTransferError."""
        ...

    def find_by_booking(
        self, booking_id: str
    ) -> CreditTransaction | None:  # pragma: no cover - Protocol
        ...

    def get_totals(
        self, user_id: str
    ) -> tuple[int, int]:  # pragma: no cover - Protocol
        """completed 이체 기준 (누적 수입, 누적 지출)."""
        ...

    def list_entries(
        self, user_id: str, page: int, page_size: int
    ) -> tuple[list[LedgerEntry], int]:  # pragma: no cover - Protocol
        ...

    def list_since(
        self, user_id: str, since: datetime
    ) -> list[CreditTransaction]:  # pragma: no cover - Protocol
        """since 이후 completed 이체, performed_at 오름차순."""
        ...


class ReviewRepositoryInterface(Protocol):
    def create(self, review: Review) -> Review | None:  # pragma: no cover - Protocol
        """(booking_id, reviewer_id) 리뷰가 이미 있으면 None."""
        ...

    def list_by_provider(
        self, provider_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:  # pragma: no cover - Protocol
        ...

    def list_by_offer(
        self, offer_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:  # pragma: no cover - Protocol
        ...

    def list_by_reviewer(
        self, reviewer_id: str, page: int, page_size: int
    ) -> tuple[list[ReviewView], int]:  # pragma: no cover - Protocol
        ...

    def aggregate_for_provider(
        self, provider_id: str
    ) -> RatingStats:  # pragma: no cover - Protocol
        ...

    def aggregate_for_offer(
        self, offer_id: str
    ) -> RatingStats:  # pragma: no cover - Protocol
        ...
