"""예약 도메인 모델과 상태 머신 정의."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from common.types.objectid import ObjectIdStr


class BookingStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CANCELED = "canceled"


# 크레딧이 예약(hold)되어 있는 상태. 겹침 검사도 이 상태들만 대상으로 한다.
ACTIVE_STATUSES: tuple[BookingStatus, ...] = (
    BookingStatus.PENDING,
    BookingStatus.ACCEPTED,
)
TERMINAL_STATUSES: tuple[BookingStatus, ...] = (
    BookingStatus.COMPLETED,
    BookingStatus.CANCELED,
)
# 외부에서 요청할 수 있는 목표 상태
REQUESTABLE_STATUSES: tuple[BookingStatus, ...] = (
    BookingStatus.ACCEPTED,
    BookingStatus.CANCELED,
    BookingStatus.COMPLETED,
)


class BookingRole(str, Enum):
    REQUESTER = "requester"
    PROVIDER = "provider"
    ALL = "all"


class Booking(BaseModel):
    """예약 도메인 모델.

    - provider_id 와 cost_credits 는 생성 시점의 오퍼 값을 스냅샷한다.
    - 일정은 [date_start, date_end) 반개구간이다.
    - credit_transfer_id 는 completed 로 바뀌는 트랜잭션에서 단 한 번 설정된다.
    """

    id: ObjectIdStr | None = None
    offer_id: ObjectIdStr
    requester_id: ObjectIdStr
    provider_id: ObjectIdStr
    date_start: datetime
    date_end: datetime
    timezone: str | None = None
    cost_credits: int
    status: BookingStatus = BookingStatus.PENDING
    cancellation_reason: str | None = None
    notes: str | None = None
    credit_transfer_id: ObjectIdStr | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def overlaps(self, date_start: datetime, date_end: datetime) -> bool:
        return self.date_start < date_end and self.date_end > date_start

    def participant_ids(self) -> list[str]:
        return [self.requester_id, self.provider_id]


@dataclass(frozen=True, slots=True)
class Participation:
    """예약에 대한 사용자의 역할."""

    is_requester: bool
    is_provider: bool

    @property
    def is_participant(self) -> bool:
        return self.is_requester or self.is_provider


def is_participant(booking: Booking, user_id: str) -> Participation:
    """상태 머신과 리뷰 작성이 공통으로 쓰는 당사자 판별."""

    user_id = str(user_id)
    return Participation(
        is_requester=booking.requester_id == user_id,
        is_provider=booking.provider_id == user_id,
    )


class BookingView(BaseModel):
    """표시용 읽기 프로젝션. 오퍼 제목과 당사자 이름을 조인해 둔다.

    잔액 판단에는 절대 쓰지 않는다.
    """

    id: str
    offer_id: str
    offer_title: str | None = None
    requester_id: str
    requester_name: str | None = None
    provider_id: str
    provider_name: str | None = None
    date_start: datetime
    date_end: datetime
    timezone: str | None = None
    status: BookingStatus
    cost_credits: int
    credit_transfer_id: str | None = None
    cancellation_reason: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BookingFilter(BaseModel):
    """예약 목록 조회 조건."""

    user_id: str
    role: BookingRole = BookingRole.ALL
    status: BookingStatus | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
