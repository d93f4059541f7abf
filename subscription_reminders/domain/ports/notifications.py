from __future__ import annotations

from datetime import date
from typing import Protocol


class ReminderNotifier(Protocol):
    """Delivers upcoming-delivery reminders to customers.

    Implementations raise ``NotificationDispatchError`` only when the reminder
    was definitely not delivered, and ``DeliveryUncertainError`` when the
    channel failed after the reminder may have been accepted. Each call must be
    bounded by a timeout.
    """

    def send_subscription_reminder(
        self,
        email: str,
        recipient_name: str,
        product_name: str,
        next_delivery_date: date,
        confirmation_token: str,
    ) -> None:
        ...
