"""예약 완료 트랜잭션 코디네이터.

크레딧을 (예약이 아니라) 실제로 옮기는 유일한 경로다. 아래 네 가지 변경을
하나의 다중 도큐먼트 트랜잭션으로 묶는다.

1. 요청자: reserved_credits, credits 차감
2. 제공자: credits 증가
3. CreditTransaction 추가 (booking, from, to 유니크)
4. 예약: accepted -> completed, credit_transfer_id 설정

커밋 이후의 bookings_count 증가와 알림은 트랜잭션 밖에서 best-effort 로 처리한다.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends
from pymongo.client_session import ClientSession

from ..config import ExchangeConfig
from ..dependencies import (
    get_account_repository,
    get_booking_repository,
    get_credit_transaction_repository,
    get_exchange_config,
    get_notification_sink,
    get_transaction_runner,
)
from ..exceptions import (
    AccountNotFoundError,
    AlreadyCompletedError,
    BookingNotFoundError,
    DuplicateTransferError,
    InsufficientCreditsError,
    InvalidTransitionError,
    TransientStoreError,
)
from ..messaging.booking_notifier import BookingNotifier
from ..messaging.notification_sink import NotificationSink
from ..models.booking import BookingStatus
from ..models.credit_transaction import CreditTransaction, CreditTransactionStatus
from ..models.ledger import CompletionResult
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    BookingRepositoryInterface,
    CreditTransactionRepositoryInterface,
    TransactionRunnerInterface,
)
from .statistics_service import StatisticsService, get_statistics_service


logger = logging.getLogger(__name__)


class CompletionService:
    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        booking_repo: BookingRepositoryInterface,
        transaction_repo: CreditTransactionRepositoryInterface,
        runner: TransactionRunnerInterface,
        statistics: StatisticsService,
        notifier: BookingNotifier,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._account_repo = account_repo
        self._booking_repo = booking_repo
        self._transaction_repo = transaction_repo
        self._runner = runner
        self._statistics = statistics
        self._notifier = notifier
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    def complete(self, booking_id: str) -> CompletionResult:
        """accepted 예약을 완료하고 cost_credits 만큼 요청자 -> 제공자로 이체한다.

        - 일시적 오류(TransientStoreError)는 max_attempts 까지 재시도한다.
        - 커밋 결과를 알 수 없던 시도 뒤의 재시도가 이미 완료된 예약을 보면,
          그 커밋이 반영된 것이므로 저장된 결과를 그대로 돌려준다(이중 차감 없음).
        - 다른 요청이 먼저 같은 이체를 커밋했다면(DuplicateTransferError) 저장된
          결과를 돌려주되, 커밋 후 처리는 그 요청이 이미 했으므로 건너뛴다.
        - 그 밖의 오류는 재시도하지 않고 그대로 던진다.
        """

        commit_uncertain = False
        committed_elsewhere = False
        attempt = 0
        while True:
            attempt += 1
            try:
                result = self._runner.run(
                    lambda session: self._complete_in_transaction(booking_id, session)
                )
                break
            except TransientStoreError as exc:
                commit_uncertain = commit_uncertain or exc.commit_uncertain
                if attempt >= self._max_attempts:
                    logger.error(
                        "completion failed after %d attempts",
                        attempt,
                        extra={"booking_id": booking_id, "attempt": attempt},
                    )
                    raise
                logger.warning(
                    "completion transaction aborted; retrying: %s",
                    exc.message,
                    extra={"booking_id": booking_id, "attempt": attempt},
                )
                self._sleep(self._backoff_seconds * attempt)
            except AlreadyCompletedError:
                if not commit_uncertain:
                    raise
                recovered = self._load_committed(booking_id)
                if recovered is None:
                    raise
                logger.info(
                    "completion committed by an earlier attempt",
                    extra={"booking_id": booking_id, "attempt": attempt},
                )
                result = recovered
                break
            except DuplicateTransferError:
                recovered = self._load_committed(booking_id)
                if recovered is None:
                    raise InvalidTransitionError(
                        f"transfer already recorded for booking {booking_id}"
                    )
                committed_elsewhere = not commit_uncertain
                result = recovered
                break

        if committed_elsewhere:
            logger.info(
                "completion already committed by another request",
                extra={"booking_id": booking_id, "attempt": attempt},
            )
            return result

        logger.info(
            "booking completed",
            extra={
                "booking_id": booking_id,
                "user_id": result.booking.provider_id,
                "body": {
                    "amount": result.transaction.amount_credits,
                    "transaction_id": result.transaction.id,
                },
            },
        )
        self._after_commit(result)
        return result

    def _complete_in_transaction(
        self, booking_id: str, session: ClientSession
    ) -> CompletionResult:
        booking = self._booking_repo.find_by_id(booking_id, session=session)
        if booking is None:
            raise BookingNotFoundError(f"booking not found: {booking_id}")
        if booking.status == BookingStatus.COMPLETED:
            raise AlreadyCompletedError("booking is already completed")
        if booking.status != BookingStatus.ACCEPTED:
            raise InvalidTransitionError(
                f"cannot complete booking in status {BookingStatus(booking.status).value}"
            )

        cost = booking.cost_credits
        requester = self._account_repo.debit_reserved(
            booking.requester_id, cost, session=session
        )
        if requester is None:
            raise InsufficientCreditsError("requester reserved credits are insufficient")

        provider = self._account_repo.credit(booking.provider_id, cost, session=session)
        if provider is None:
            raise AccountNotFoundError(f"account not found: {booking.provider_id}")

        now = datetime.now(timezone.utc)
        transaction = self._transaction_repo.insert(
            CreditTransaction(
                booking_id=booking_id,
                from_user_id=booking.requester_id,
                to_user_id=booking.provider_id,
                amount_credits=cost,
                status=CreditTransactionStatus.COMPLETED,
                performed_at=now,
                created_at=now,
                updated_at=now,
            ),
            session=session,
        )

        completed = self._booking_repo.transition(
            booking_id,
            BookingStatus.ACCEPTED,
            BookingStatus.COMPLETED,
            fields={"credit_transfer_id": transaction.id},
            session=session,
        )
        if completed is None:
            raise InvalidTransitionError("booking status changed concurrently")

        return CompletionResult(
            booking=completed,
            transaction=transaction,
            requester_balance=requester.balance(),
            provider_balance=provider.balance(),
        )

    def _load_committed(self, booking_id: str) -> CompletionResult | None:
        """이미 커밋된 완료 결과를 저장소에서 다시 구성한다."""

        booking = self._booking_repo.find_by_id(booking_id)
        if booking is None or booking.status != BookingStatus.COMPLETED:
            return None
        transaction = self._transaction_repo.find_by_booking(booking_id)
        requester = self._account_repo.find_by_id(booking.requester_id)
        provider = self._account_repo.find_by_id(booking.provider_id)
        if transaction is None or requester is None or provider is None:
            return None
        return CompletionResult(
            booking=booking,
            transaction=transaction,
            requester_balance=requester.balance(),
            provider_balance=provider.balance(),
        )

    def _after_commit(self, result: CompletionResult) -> None:
        self._statistics.record_completion(result.booking)
        self._notifier.booking_completed(
            result.booking, result.requester_balance, result.provider_balance
        )


def get_completion_service(
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    booking_repo: BookingRepositoryInterface = Depends(get_booking_repository),
    transaction_repo: CreditTransactionRepositoryInterface = Depends(
        get_credit_transaction_repository
    ),
    runner: TransactionRunnerInterface = Depends(get_transaction_runner),
    statistics: StatisticsService = Depends(get_statistics_service),
    sink: NotificationSink = Depends(get_notification_sink),
    config: ExchangeConfig = Depends(get_exchange_config),
) -> CompletionService:
    """FastAPI DI용 CompletionService 팩토리."""

    return CompletionService(
        account_repo,
        booking_repo,
        transaction_repo,
        runner,
        statistics,
        BookingNotifier(sink),
        max_attempts=config.completion_max_attempts,
        backoff_seconds=config.completion_retry_backoff_seconds,
    )
