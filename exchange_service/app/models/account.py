"""계정(크레딧 잔액) 도메인 모델.

credits 는 보유 총량, reserved_credits 는 그중 pending/accepted 예약에 묶인 양이다.
항상 0 <= reserved_credits <= credits 를 만족해야 하며, 새 예약에 쓸 수 있는 양은
effective_balance(credits - reserved_credits) 이다.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from common.types.objectid import ObjectIdStr


class Account(BaseModel):
    """users 컬렉션 중 원장/평점에 필요한 부분."""

    id: ObjectIdStr | None = None
    name: str = ""
    credits: int = 0
    reserved_credits: int = 0
    # 제공자 평점은 합계/개수로 저장하고 평균은 파생값으로 함께 기록한다.
    rating_sum: int = 0
    reviews_count: int = 0
    rating_avg: float = 0.0
    created_at: datetime
    updated_at: datetime

    @property
    def effective_balance(self) -> int:
        return self.credits - self.reserved_credits

    def balance(self) -> "CreditBalance":
        return CreditBalance(current=self.credits, reserved=self.reserved_credits)


class CreditBalance(BaseModel):
    """알림으로 내보내는 잔액 스냅샷."""

    current: int
    reserved: int
