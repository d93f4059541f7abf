"""Subscription entity and its status state machine."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, FrozenSet, Optional

from ..errors import InvalidTransitionError, MissingParameterError
from .enums import Frequency, SubscriptionStatus

ALLOWED_TRANSITIONS: Dict[SubscriptionStatus, FrozenSet[SubscriptionStatus]] = {
    SubscriptionStatus.ACTIVE: frozenset({SubscriptionStatus.PAUSED, SubscriptionStatus.CANCELLED}),
    SubscriptionStatus.PAUSED: frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED}),
    SubscriptionStatus.CANCELLED: frozenset(),
}


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class Subscription:
    """
    Subscription entity representing a recurring product delivery.

    Attributes:
        id: Unique identifier
        customer_id: Reference to the owning customer
        product_id: Reference to the delivered product
        frequency: Delivery interval
        quantity: Units per delivery
        discount_percent: Discount applied to each delivery
        status: Lifecycle status (active, paused, cancelled)
        start_date: First day of the subscription
        next_delivery_date: Next scheduled delivery, meaningful while active
        pause_until: Resume date, always set while paused
        payment_method_id: Opaque payment method reference
        shipping_address_id: Opaque shipping address reference
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        customer_id: int,
        product_id: int,
        frequency: Frequency,
        quantity: int,
        discount_percent: Decimal,
        status: SubscriptionStatus,
        start_date: date,
        next_delivery_date: date,
        pause_until: Optional[date] = None,
        payment_method_id: Optional[str] = None,
        shipping_address_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        if status is SubscriptionStatus.PAUSED and pause_until is None:
            raise MissingParameterError("A paused subscription requires a pause_until date.")
        self.id = id
        self.customer_id = customer_id
        self.product_id = product_id
        self.frequency = frequency
        self.quantity = quantity
        self.discount_percent = discount_percent
        self.status = status
        self.start_date = start_date
        self.next_delivery_date = next_delivery_date
        self.pause_until = pause_until if status is SubscriptionStatus.PAUSED else None
        self.payment_method_id = payment_method_id
        self.shipping_address_id = shipping_address_id
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or self.created_at

    def is_active(self) -> bool:
        return self.status is SubscriptionStatus.ACTIVE

    def is_cancelled(self) -> bool:
        return self.status is SubscriptionStatus.CANCELLED

    def pause(self, pause_until: Optional[date], now: datetime) -> None:
        if pause_until is None:
            raise MissingParameterError("Pausing a subscription requires a pause_until date.")
        self._transition(SubscriptionStatus.PAUSED, now)
        self.pause_until = pause_until

    def resume(self, now: datetime, next_delivery_date: Optional[date] = None) -> None:
        self._transition(SubscriptionStatus.ACTIVE, now)
        self.pause_until = None
        if next_delivery_date is not None:
            self.next_delivery_date = next_delivery_date

    def cancel(self, now: datetime) -> None:
        self._transition(SubscriptionStatus.CANCELLED, now)
        self.pause_until = None

    def _transition(self, target: SubscriptionStatus, now: datetime) -> None:
        if not can_transition(self.status, target):
            raise InvalidTransitionError(
                f"Subscription {self.id} cannot move from {self.status.value} to {target.value}."
            )
        self.status = target
        self.updated_at = now

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} customer_id={self.customer_id} status={self.status.value}>"
