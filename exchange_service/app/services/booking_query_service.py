"""예약 조회/대시보드 (읽기 측).

표시용 프로젝션만 다루며 잔액 판단에는 쓰지 않는다.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import Depends

from common.schemas.pagination import normalize_page

from ..config import ExchangeConfig
from ..dependencies import (
    get_account_repository,
    get_booking_query_repository,
    get_credit_transaction_repository,
    get_exchange_config,
    get_offer_repository,
)
from ..exceptions import AccountNotFoundError, BookingNotFoundError, ForbiddenError
from ..models.booking import BookingFilter, BookingRole, BookingStatus, BookingView
from ..models.credit_transaction import CreditTransaction
from ..models.ledger import BookingCounts, DailyBalance, DashboardStats, LedgerSummary
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    BookingQueryRepositoryInterface,
    CreditTransactionRepositoryInterface,
    OfferRepositoryInterface,
)


UPCOMING_LIMIT = 5
TOP_OFFERS_LIMIT = 3
RECENT_ACTIVITY_LIMIT = 10
CREDIT_HISTORY_DAYS = 30


def build_daily_balances(
    user_id: str, current_credits: int, transactions: list[CreditTransaction]
) -> list[DailyBalance]:
    """현재 credits 에서 기간 내 이체를 거꾸로 빼 시작 잔액을 구한 뒤, 날짜별 마감 잔액을 만든다.

    transactions 는 performed_at 오름차순이어야 한다. 이체가 없는 날은 점을 만들지 않는다.
    """

    def signed(tx: CreditTransaction) -> int:
        return tx.amount_credits if tx.to_user_id == user_id else -tx.amount_credits

    running = current_credits - sum(signed(tx) for tx in transactions)
    points: list[DailyBalance] = []
    for tx in transactions:
        running += signed(tx)
        day = tx.performed_at.astimezone(timezone.utc).date()
        if points and points[-1].day == day:
            points[-1].credits = running
        else:
            points.append(DailyBalance(day=day, credits=running))
    return points


class BookingQueryService:
    def __init__(
        self,
        query_repo: BookingQueryRepositoryInterface,
        account_repo: AccountRepositoryInterface,
        offer_repo: OfferRepositoryInterface,
        transaction_repo: CreditTransactionRepositoryInterface,
        *,
        default_page_size: int = 10,
    ) -> None:
        self._query_repo = query_repo
        self._account_repo = account_repo
        self._offer_repo = offer_repo
        self._transaction_repo = transaction_repo
        self._default_page_size = default_page_size

    def get_booking(self, actor_id: str, booking_id: str) -> BookingView:
        view = self._query_repo.find_view(booking_id)
        if view is None:
            raise BookingNotFoundError(f"booking not found: {booking_id}")
        if str(actor_id) not in (view.requester_id, view.provider_id):
            raise ForbiddenError("not a participant of this booking")
        return view

    def list_bookings(
        self,
        actor_id: str,
        *,
        role: BookingRole = BookingRole.ALL,
        status: BookingStatus | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        page: int = 1,
        page_size: int = 0,
    ) -> tuple[list[BookingView], int]:
        page, page_size = normalize_page(page, page_size, self._default_page_size)
        flt = BookingFilter(
            user_id=actor_id,
            role=role,
            status=status,
            date_from=date_from,
            date_to=date_to,
        )
        return self._query_repo.list_views(flt, page, page_size)

    def get_dashboard(self, user_id: str, now: datetime | None = None) -> DashboardStats:
        now = now or datetime.now(timezone.utc)
        account = self._account_repo.find_by_id(user_id)
        if account is None:
            raise AccountNotFoundError(f"account not found: {user_id}")

        total, active = self._query_repo.count_for_user(user_id)
        upcoming = self._query_repo.list_upcoming(user_id, now, UPCOMING_LIMIT)
        offers = self._offer_repo.list_by_owner(user_id)
        top_offers = sorted(offers, key=lambda o: o.avg_rating or 0.0, reverse=True)
        income, outcome = self._transaction_repo.get_totals(user_id)
        recent, _ = self._transaction_repo.list_entries(
            user_id, 1, RECENT_ACTIVITY_LIMIT
        )
        history = self._transaction_repo.list_since(
            user_id, now - timedelta(days=CREDIT_HISTORY_DAYS)
        )

        return DashboardStats(
            credits=LedgerSummary(
                user_id=user_id,
                total=account.credits,
                available=account.effective_balance,
                reserved=account.reserved_credits,
                lifetime_income=income,
                lifetime_outcome=outcome,
            ),
            bookings=BookingCounts(total=total, active=active, upcoming=len(upcoming)),
            offers_listed=len(offers),
            top_offers=top_offers[:TOP_OFFERS_LIMIT],
            upcoming_bookings=upcoming,
            recent_activity=recent,
            credit_history=build_daily_balances(user_id, account.credits, history),
        )


def get_booking_query_service(
    query_repo: BookingQueryRepositoryInterface = Depends(get_booking_query_repository),
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    offer_repo: OfferRepositoryInterface = Depends(get_offer_repository),
    transaction_repo: CreditTransactionRepositoryInterface = Depends(
        get_credit_transaction_repository
    ),
    config: ExchangeConfig = Depends(get_exchange_config),
) -> BookingQueryService:
    """FastAPI DI용 BookingQueryService 팩토리."""

    return BookingQueryService(
        query_repo,
        account_repo,
        offer_repo,
        transaction_repo,
        default_page_size=config.default_page_size,
    )
