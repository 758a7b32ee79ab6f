"""예약 생성(admission)과 상태 머신.

pending -> accepted -> completed, pending -> canceled 만 허용하며
completed / canceled 는 종료 상태다.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import Depends
from pymongo.client_session import ClientSession

from common.types.datetime import as_utc

from ..dependencies import (
    get_account_repository,
    get_booking_repository,
    get_notification_sink,
    get_offer_repository,
    get_transaction_runner,
)
from ..exceptions import (
    AlreadyCompletedError,
    BookingNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    OfferInactiveError,
    OfferNotFoundError,
    OverlappingBookingError,
    SelfBookingError,
    ValidationError,
)
from ..messaging.booking_notifier import BookingNotifier
from ..messaging.notification_sink import NotificationSink
from ..models.account import Account
from ..models.booking import (
    REQUESTABLE_STATUSES,
    Booking,
    BookingStatus,
    is_participant,
)
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    BookingRepositoryInterface,
    OfferRepositoryInterface,
    TransactionRunnerInterface,
)
from .completion_service import CompletionService, get_completion_service
from .reservation_service import ReservationService


logger = logging.getLogger(__name__)

MAX_TIMEZONE_LENGTH = 50
MAX_NOTES_LENGTH = 1000
MAX_CANCELLATION_REASON_LENGTH = 300


class BookingService:
    def __init__(
        self,
        offer_repo: OfferRepositoryInterface,
        booking_repo: BookingRepositoryInterface,
        reservation: ReservationService,
        runner: TransactionRunnerInterface,
        completion: CompletionService,
        notifier: BookingNotifier,
    ) -> None:
        self._offer_repo = offer_repo
        self._booking_repo = booking_repo
        self._reservation = reservation
        self._runner = runner
        self._completion = completion
        self._notifier = notifier

    # 생성 -----------------------------------------------------------------
    def create_booking(
        self,
        requester_id: str,
        offer_id: str,
        date_start: datetime,
        date_end: datetime,
        timezone_name: str | None = None,
        notes: str | None = None,
    ) -> Booking:
        """예약 요청을 받아 pending 예약을 만든다.

        크레딧이 아닌 검사(오퍼 상태, 자기 예약, 일정 겹침)를 모두 통과한 뒤에만
        크레딧을 예약하므로, 거절된 요청은 아무 상태도 남기지 않는다.
        """

        date_start = as_utc(date_start)
        date_end = as_utc(date_end)
        if date_end <= date_start:
            raise ValidationError("date_end must be after date_start")
        if timezone_name is not None and len(timezone_name) > MAX_TIMEZONE_LENGTH:
            raise ValidationError(
                f"timezone must be at most {MAX_TIMEZONE_LENGTH} characters"
            )
        if notes is not None and len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(f"notes must be at most {MAX_NOTES_LENGTH} characters")

        offer = self._offer_repo.get_active_offer(offer_id)
        if offer is None:
            raise OfferNotFoundError(f"offer not found: {offer_id}")
        if not offer.is_active:
            self._reject("offer_inactive", requester_id, offer_id)
            raise OfferInactiveError("offer is not active")
        if offer.owner_id == str(requester_id):
            self._reject("self_booking", requester_id, offer_id)
            raise SelfBookingError("cannot book your own offer")

        overlapping = self._booking_repo.find_overlapping(
            offer_id, requester_id, date_start, date_end
        )
        if overlapping is not None:
            self._reject("overlapping_booking", requester_id, offer_id)
            raise OverlappingBookingError(
                "you already have a booking for this offer in that time range"
            )

        account = self._reservation.reserve(requester_id, offer.cost_credits)

        now = datetime.now(timezone.utc)
        try:
            booking = self._booking_repo.insert(
                Booking(
                    offer_id=offer_id,
                    requester_id=requester_id,
                    provider_id=offer.owner_id,
                    date_start=date_start,
                    date_end=date_end,
                    timezone=timezone_name,
                    cost_credits=offer.cost_credits,
                    status=BookingStatus.PENDING,
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                )
            )
        except Exception:
            # 예약 도큐먼트가 없으면 잡아 둔 크레딧도 남기지 않는다.
            self._reservation.release(requester_id, offer.cost_credits)
            raise

        logger.info(
            "booking created",
            extra={
                "booking_id": booking.id,
                "offer_id": offer_id,
                "user_id": requester_id,
                "body": {"cost_credits": offer.cost_credits},
            },
        )
        self._notifier.booking_created(booking, account.balance())
        return booking

    def _reject(self, reason: str, requester_id: str, offer_id: str) -> None:
        logger.info(
            "booking rejected: %s",
            reason,
            extra={"user_id": requester_id, "offer_id": offer_id},
        )

    # 상태 전이 ------------------------------------------------------------
    def transition(
        self,
        actor_id: str,
        booking_id: str,
        new_status: BookingStatus | str,
        cancellation_reason: str | None = None,
    ) -> Booking:
        try:
            target = BookingStatus(new_status)
        except ValueError as exc:
            raise ValidationError(f"unknown status: {new_status}") from exc
        if target not in REQUESTABLE_STATUSES:
            raise ValidationError(f"cannot request status: {target.value}")

        booking = self._booking_repo.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"booking not found: {booking_id}")

        participation = is_participant(booking, actor_id)
        if not participation.is_participant:
            raise ForbiddenError("not a participant of this booking")

        if booking.status == BookingStatus.COMPLETED:
            if target == BookingStatus.COMPLETED:
                raise AlreadyCompletedError("booking is already completed")
            raise InvalidTransitionError("booking is already completed")
        if booking.status == BookingStatus.CANCELED:
            raise InvalidTransitionError("booking is already canceled")

        if target == BookingStatus.ACCEPTED:
            if not participation.is_provider:
                raise ForbiddenError("only the provider can accept a booking")
            return self._accept(booking)

        if target == BookingStatus.CANCELED:
            return self._cancel(booking, actor_id, cancellation_reason)

        if not participation.is_provider:
            raise ForbiddenError("only the provider can complete a booking")
        if booking.status != BookingStatus.ACCEPTED:
            raise InvalidTransitionError("only accepted bookings can be completed")
        return self._completion.complete(booking_id).booking

    def _accept(self, booking: Booking) -> Booking:
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransitionError("only pending bookings can be accepted")

        accepted = self._booking_repo.transition(
            booking.id or "", BookingStatus.PENDING, BookingStatus.ACCEPTED
        )
        if accepted is None:
            raise InvalidTransitionError("booking status changed concurrently")

        logger.info(
            "booking accepted",
            extra={"booking_id": accepted.id, "user_id": accepted.provider_id},
        )
        self._notifier.booking_accepted(accepted)
        return accepted

    def _cancel(
        self, booking: Booking, actor_id: str, cancellation_reason: str | None
    ) -> Booking:
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransitionError("only pending bookings can be canceled")
        if (
            cancellation_reason is not None
            and len(cancellation_reason) > MAX_CANCELLATION_REASON_LENGTH
        ):
            raise ValidationError(
                "cancellation_reason must be at most "
                f"{MAX_CANCELLATION_REASON_LENGTH} characters"
            )

        canceled, requester = self._runner.run(
            lambda session: self._cancel_in_transaction(
                booking.id or "", cancellation_reason, session
            )
        )

        logger.info(
            "booking canceled",
            extra={
                "booking_id": canceled.id,
                "user_id": actor_id,
                "body": {"released": canceled.cost_credits},
            },
        )
        self._notifier.booking_canceled(canceled, requester.balance())
        return canceled

    def _cancel_in_transaction(
        self,
        booking_id: str,
        cancellation_reason: str | None,
        session: ClientSession,
    ) -> tuple[Booking, Account]:
        # 상태 변경과 크레딧 해제는 함께 커밋되거나 함께 버려진다.
        canceled = self._booking_repo.transition(
            booking_id,
            BookingStatus.PENDING,
            BookingStatus.CANCELED,
            fields={"cancellation_reason": cancellation_reason},
            session=session,
        )
        if canceled is None:
            raise InvalidTransitionError("booking status changed concurrently")

        requester = self._reservation.release(
            canceled.requester_id, canceled.cost_credits, session=session
        )
        return canceled, requester


def get_booking_service(
    offer_repo: OfferRepositoryInterface = Depends(get_offer_repository),
    booking_repo: BookingRepositoryInterface = Depends(get_booking_repository),
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    runner: TransactionRunnerInterface = Depends(get_transaction_runner),
    completion: CompletionService = Depends(get_completion_service),
    sink: NotificationSink = Depends(get_notification_sink),
) -> BookingService:
    """FastAPI DI용 BookingService 팩토리."""

    return BookingService(
        offer_repo,
        booking_repo,
        ReservationService(account_repo),
        runner,
        completion,
        BookingNotifier(sink),
    )
