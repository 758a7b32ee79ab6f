"""크레딧 이체 원장 도메인 모델.

append-only 이며 (booking_id, from_user_id, to_user_id) 조합은 유일하다.
reversed 상태는 보정(역분개) 항목을 위한 자리로, 현재 생성하는 코드 경로는 없다.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from common.types.objectid import ObjectIdStr


class CreditTransactionStatus(str, Enum):
    COMPLETED = "completed"
    REVERSED = "reversed"


class CreditTransaction(BaseModel):
    id: ObjectIdStr | None = None
    booking_id: ObjectIdStr
    from_user_id: ObjectIdStr
    to_user_id: ObjectIdStr
    amount_credits: int
    status: CreditTransactionStatus = CreditTransactionStatus.COMPLETED
    performed_at: datetime
    created_at: datetime
    updated_at: datetime
