from __future__ import annotations


class ExchangeError(Exception):
    """exchange-service 도메인 예외의 베이스.

    code 는 API 응답의 detail.code 로, status_code 는 HTTP 상태 코드로 그대로 쓰인다.
    """

    code: str = "exchange_error"
    status_code: int = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFoundError(ExchangeError):
    code = "not_found"
    status_code = 404


class OfferNotFoundError(NotFoundError):
    code = "offer_not_found"


class BookingNotFoundError(NotFoundError):
    code = "booking_not_found"


class AccountNotFoundError(NotFoundError):
    code = "account_not_found"


class ForbiddenError(ExchangeError):
    """예약 당사자가 아니거나, 해당 역할로는 허용되지 않는 동작."""

    code = "forbidden"
    status_code = 403


class InvalidTransitionError(ExchangeError):
    """예약 상태 머신이 허용하지 않는 전이."""

    code = "invalid_transition"
    status_code = 409


class AlreadyCompletedError(InvalidTransitionError):
    code = "already_completed"


class NotCompletedError(InvalidTransitionError):
    """완료되지 않은 예약에 리뷰를 남기려는 경우."""

    code = "not_completed"


class OfferInactiveError(ExchangeError):
    code = "offer_inactive"
    status_code = 409


class SelfBookingError(ExchangeError):
    code = "self_booking"
    status_code = 400


class InsufficientCreditsError(ExchangeError):
    code = "insufficient_credits"
    status_code = 402


class OverlappingBookingError(ExchangeError):
    code = "overlapping_booking"
    status_code = 409


class DuplicateReviewError(ExchangeError):
    code = "duplicate_review"
    status_code = 409


class ValidationError(ExchangeError):
    code = "validation_error"
    status_code = 422


class TransientStoreError(ExchangeError):
    """네트워크 오류/트랜잭션 충돌. 같은 요청을 다시 시도해도 안전하다.

    commit_uncertain 이 True 이면 커밋 결과를 알 수 없는 상태(커밋이 반영됐을 수도 있음)다.
    """

    code = "transient_store_error"
    status_code = 503

    def __init__(self, message: str | None = None, *, commit_uncertain: bool = False) -> None:
        super().__init__(message)
        self.commit_uncertain = commit_uncertain


class DuplicateTransferError(ExchangeError):
    """같은 (booking, from, to) 이체가 이미 기록되어 있음. 코디네이터 내부에서만 처리한다."""

    code = "duplicate_transfer"
    status_code = 409
