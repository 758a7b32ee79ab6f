"""크레딧 예약(hold) 엔진.

예약/해제는 계정 도큐먼트 하나에 대한 원자적 증감으로 처리한다.
예약 취소는 상태 변경과 해제를 호출자의 트랜잭션(session) 하나로 묶는다.
"""

from __future__ import annotations

import logging

from pymongo.client_session import ClientSession

from ..exceptions import AccountNotFoundError, InsufficientCreditsError, ValidationError
from ..models.account import Account
from ..repositories.interfaces import AccountRepositoryInterface


logger = logging.getLogger(__name__)


class ReservationService:
    def __init__(self, account_repo: AccountRepositoryInterface) -> None:
        self._account_repo = account_repo

    def reserve(self, user_id: str, amount: int) -> Account:
        """effective balance 가 amount 이상일 때만 reserved_credits 를 늘린다.

        잔액 확인과 증가는 하나의 조건부 업데이트이므로, 동시에 들어온 두 요청이
        같은 잔액을 두 번 예약할 수 없다.
        """

        if amount <= 0:
            raise ValidationError("amount must be positive")

        account = self._account_repo.reserve(user_id, amount)
        if account is not None:
            logger.info(
                "credits reserved",
                extra={"user_id": user_id, "body": {"amount": amount}},
            )
            return account

        if self._account_repo.find_by_id(user_id) is None:
            raise AccountNotFoundError(f"account not found: {user_id}")

        logger.info(
            "reservation rejected: insufficient credits",
            extra={"user_id": user_id, "body": {"amount": amount}},
        )
        raise InsufficientCreditsError("insufficient effective balance")

    def release(
        self, user_id: str, amount: int, *, session: ClientSession | None = None
    ) -> Account:
        """reserved_credits 를 amount 만큼 되돌린다. 0 아래로는 내려가지 않는다.

        갱신 후 계정을 반환한다. session 이 있으면 그 트랜잭션 안에서 해제한다.
        """

        if amount <= 0:
            raise ValidationError("amount must be positive")

        before = self._account_repo.release(user_id, amount, session=session)
        if before is None:
            raise AccountNotFoundError(f"account not found: {user_id}")

        if before.reserved_credits < amount:
            # 정상 흐름에서는 일어나지 않는다. 0 으로 고정하고 흔적만 남긴다.
            logger.warning(
                "released more than reserved; clamped to 0",
                extra={
                    "user_id": user_id,
                    "body": {"amount": amount, "reserved": before.reserved_credits},
                },
            )

        released = min(before.reserved_credits, amount)
        return before.model_copy(
            update={"reserved_credits": before.reserved_credits - released}
        )

