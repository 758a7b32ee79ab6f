"""사용자 원장 조회 (요약 + 이체 이력)."""

from __future__ import annotations

from fastapi import Depends

from common.schemas.pagination import normalize_page

from ..config import ExchangeConfig
from ..dependencies import (
    get_account_repository,
    get_credit_transaction_repository,
    get_exchange_config,
)
from ..exceptions import AccountNotFoundError
from ..models.ledger import LedgerEntry, LedgerSummary
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    CreditTransactionRepositoryInterface,
)


class LedgerService:
    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        transaction_repo: CreditTransactionRepositoryInterface,
        *,
        default_page_size: int = 10,
    ) -> None:
        self._account_repo = account_repo
        self._transaction_repo = transaction_repo
        self._default_page_size = default_page_size

    def get_summary(self, user_id: str) -> LedgerSummary:
        """available = credits - reserved_credits, 누적 수입/지출은 completed 이체 합계."""

        account = self._account_repo.find_by_id(user_id)
        if account is None:
            raise AccountNotFoundError(f"account not found: {user_id}")

        income, outcome = self._transaction_repo.get_totals(user_id)
        return LedgerSummary(
            user_id=user_id,
            total=account.credits,
            available=account.effective_balance,
            reserved=account.reserved_credits,
            lifetime_income=income,
            lifetime_outcome=outcome,
        )

    def get_history(
        self, user_id: str, page: int, page_size: int
    ) -> tuple[list[LedgerEntry], int]:
        """받은 이체는 +amount, 보낸 이체는 -amount. 최신순."""

        page, page_size = normalize_page(page, page_size, self._default_page_size)
        return self._transaction_repo.list_entries(user_id, page, page_size)


def get_ledger_service(
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    transaction_repo: CreditTransactionRepositoryInterface = Depends(
        get_credit_transaction_repository
    ),
    config: ExchangeConfig = Depends(get_exchange_config),
) -> LedgerService:
    """FastAPI DI용 LedgerService 팩토리."""

    return LedgerService(
        account_repo, transaction_repo, default_page_size=config.default_page_size
    )
