"""예약 생애주기 이벤트를 사용자 알림으로 바꿔 싱크에 전달한다.

모든 메서드는 커밋이 끝난 뒤에만 호출된다. 싱크에서 난 오류는 여기서 로그로 남기고 삼킨다.
"""

from __future__ import annotations

import logging
from typing import Callable

from .notification_sink import NotificationSink
from ..models.account import CreditBalance
from ..models.booking import Booking
from ..models.notification import Notification, NotificationLevel


logger = logging.getLogger(__name__)


class BookingNotifier:
    def __init__(self, sink: NotificationSink) -> None:
        self._sink = sink

    def _safe(self, action: str, booking: Booking, fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception:  # noqa: BLE001
            logger.exception(
                "notification failed: %s", action, extra={"booking_id": booking.id}
            )

    def _broadcast(self, booking: Booking) -> None:
        self._safe(
            "booking_update",
            booking,
            lambda: self._sink.emit_booking_update(booking.participant_ids(), booking),
        )

    def _credit(self, user_id: str, balance: CreditBalance | None, booking: Booking) -> None:
        if balance is None:
            return
        self._safe(
            "credit_update",
            booking,
            lambda: self._sink.emit_credit_update(user_id, balance),
        )

    def _notify(self, user_id: str, booking: Booking, notification: Notification) -> None:
        self._safe(
            "notification",
            booking,
            lambda: self._sink.emit_notification(user_id, notification),
        )

    def booking_created(self, booking: Booking, requester_balance: CreditBalance) -> None:
        self._credit(booking.requester_id, requester_balance, booking)
        self._broadcast(booking)
        self._notify(
            booking.provider_id,
            booking,
            Notification(
                level=NotificationLevel.INFO,
                title="New Booking Request",
                message="You have a new booking request.",
            ),
        )

    def booking_accepted(self, booking: Booking) -> None:
        self._broadcast(booking)
        self._notify(
            booking.requester_id,
            booking,
            Notification(
                level=NotificationLevel.SUCCESS,
                title="Booking Accepted",
                message="Your booking has been accepted by the provider!",
            ),
        )

    def booking_canceled(
        self, booking: Booking, requester_balance: CreditBalance | None
    ) -> None:
        self._credit(booking.requester_id, requester_balance, booking)
        self._broadcast(booking)
        self._notify(
            booking.requester_id,
            booking,
            Notification(
                level=NotificationLevel.INFO,
                title="Booking Canceled",
                message="Your booking has been canceled. Reserved credits have been released.",
            ),
        )
        self._notify(
            booking.provider_id,
            booking,
            Notification(
                level=NotificationLevel.INFO,
                title="Booking Canceled",
                message="A booking has been canceled.",
            ),
        )

    def booking_completed(
        self,
        booking: Booking,
        requester_balance: CreditBalance,
        provider_balance: CreditBalance,
    ) -> None:
        self._credit(booking.requester_id, requester_balance, booking)
        self._credit(booking.provider_id, provider_balance, booking)
        self._broadcast(booking)
        self._notify(
            booking.requester_id,
            booking,
            Notification(
                level=NotificationLevel.SUCCESS,
                title="Booking Completed",
                message=(
                    f"Your booking has been completed. {booking.cost_credits} "
                    "credits transferred."
                ),
            ),
        )
        self._notify(
            booking.provider_id,
            booking,
            Notification(
                level=NotificationLevel.SUCCESS,
                title="Booking Completed",
                message=f"Booking completed! You earned {booking.cost_credits} credits.",
            ),
        )
