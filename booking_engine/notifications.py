"""
Booking notifications.

``NotificationService`` builds one notification per booking event and
hands it to a ``NotificationChannel``. Delivery is fire-and-forget from
the engine's point of view: failures are logged and never raised.
"""

import logging
from datetime import date
from typing import Any, Optional

from booking_engine.config import settings
from booking_engine.ports import NotificationChannel, UserDirectory
from booking_engine.schemas.booking_schema import Booking
from booking_engine.schemas.notification_schema import Notification, NotificationType

logger = logging.getLogger(__name__)


class InMemoryNotificationChannel:
    """Records every notification in an outbox instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def send_notification(self, user_id: str, notification: Notification) -> bool:
        self.sent.append(notification)
        logger.debug("Notification queued for %s: %s", user_id, notification.title)
        return True

    def for_user(self, user_id: str) -> list[Notification]:
        return [n for n in self.sent if n.user_id == user_id]

    def actions(self) -> list[str]:
        return [n.action for n in self.sent]

    def reset(self) -> None:
        self.sent.clear()


def _when(booking: Booking) -> str:
    return f"{booking.booking_date.isoformat()} at {booking.start_time}"


class NotificationService:
    """Builds booking notifications and delivers them through a channel."""

    def __init__(
        self,
        channel: NotificationChannel,
        users: Optional[UserDirectory] = None,
        channels: Optional[list[str]] = None,
    ) -> None:
        self._channel = channel
        self._users = users
        self._channels = channels or settings.notifications.channel_list

    async def send(
        self,
        user_id: str,
        type_: NotificationType,
        title: str,
        body: str,
        data: dict[str, Any],
    ) -> bool:
        """Resolve the recipient and deliver. Returns False when nothing was sent."""
        if self._users is not None and await self._users.find_by_id(user_id) is None:
            logger.warning("Notification recipient %s not found; skipping '%s'", user_id, title)
            return False

        notification = Notification(
            user_id=user_id,
            type=type_,
            title=title,
            body=body,
            data=data,
            channels=list(self._channels),
        )
        try:
            return await self._channel.send_notification(user_id, notification)
        except Exception:
            logger.exception("Failed to deliver '%s' to %s", title, user_id)
            return False

    # Convenience methods for specific booking events

    async def send_new_booking(self, professional_user_id: str, booking: Booking) -> bool:
        return await self.send(
            professional_user_id,
            NotificationType.BOOKING,
            "New Booking Request",
            f"You have a new booking request for {booking.event_type} on {_when(booking)}.",
            {"booking_id": booking.id, "action": "new_booking"},
        )

    async def send_booking_confirmation(self, client_id: str, booking: Booking) -> bool:
        return await self.send(
            client_id,
            NotificationType.BOOKING,
            "Booking Confirmed",
            f"Your booking for {booking.event_type} on {_when(booking)} has been confirmed.",
            {"booking_id": booking.id, "action": "booking_confirmed"},
        )

    async def send_booking_rejection(self, client_id: str, booking: Booking, reason: str) -> bool:
        return await self.send(
            client_id,
            NotificationType.BOOKING,
            "Booking Request Declined",
            f"Your booking request was declined. Reason: {reason}",
            {"booking_id": booking.id, "action": "booking_rejected", "reason": reason},
        )

    async def send_booking_cancellation(
        self, user_id: str, booking: Booking, reason: Optional[str]
    ) -> bool:
        body = "Your booking has been cancelled."
        if reason:
            body += f" Reason: {reason}"
        return await self.send(
            user_id,
            NotificationType.BOOKING,
            "Booking Cancelled",
            body,
            {"booking_id": booking.id, "action": "booking_cancelled", "reason": reason},
        )

    async def send_booking_rescheduled(
        self, user_id: str, booking: Booking, previous_date: date, previous_start: str
    ) -> bool:
        return await self.send(
            user_id,
            NotificationType.BOOKING,
            "Booking Rescheduled",
            f"Your booking on {previous_date.isoformat()} at {previous_start} "
            f"has moved to {_when(booking)}.",
            {"booking_id": booking.id, "action": "booking_rescheduled"},
        )

    async def send_booking_reminder(self, user_id: str, booking: Booking) -> bool:
        return await self.send(
            user_id,
            NotificationType.REMINDER,
            "Booking Reminder",
            f"Reminder: your {booking.event_type} booking is on {_when(booking)}.",
            {"booking_id": booking.id, "action": "booking_reminder"},
        )

    async def send_review_request(self, client_id: str, booking: Booking) -> bool:
        return await self.send(
            client_id,
            NotificationType.REVIEW,
            "How was your experience?",
            "Please leave a review for your recent booking.",
            {
                "booking_id": booking.id,
                "professional_id": booking.professional_id,
                "action": "review_request",
            },
        )

    async def send_professional_assigned(self, professional_user_id: str, booking: Booking) -> bool:
        return await self.send(
            professional_user_id,
            NotificationType.ASSIGNMENT,
            "New Booking Assigned",
            f"You have been assigned a {booking.event_type} booking on {_when(booking)}. "
            "Please confirm or decline.",
            {"booking_id": booking.id, "action": "booking_assigned"},
        )

    async def send_booking_assigned_to_client(self, client_id: str, booking: Booking) -> bool:
        return await self.send(
            client_id,
            NotificationType.ASSIGNMENT,
            "Professional Assigned",
            f"A professional has been assigned to your {booking.event_type} booking "
            f"on {_when(booking)}.",
            {
                "booking_id": booking.id,
                "professional_id": booking.professional_id,
                "action": "professional_assigned",
            },
        )
