"""Service for subscription management."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from ..core.clock import Clock, utc_now
from ..domain.errors import (
    CustomerNotFoundError,
    InvalidTransitionError,
    ProductNotFoundError,
    SubscriptionNotFoundError,
)
from ..domain.models import Frequency, Subscription
from ..domain.ports.persistence import PersistenceGateway
from ..domain.schedule import next_delivery, roll_forward

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubscriptionOption:
    frequency: Frequency
    label: str
    discount_percent: Decimal


SUBSCRIPTION_OPTIONS: Tuple[SubscriptionOption, ...] = (
    SubscriptionOption(Frequency.WEEKLY, "Weekly", Decimal("15")),
    SubscriptionOption(Frequency.BIWEEKLY, "Every 2 weeks", Decimal("12")),
    SubscriptionOption(Frequency.MONTHLY, "Monthly", Decimal("10")),
)


class SubscriptionService:
    """Service for managing recurring delivery subscriptions."""

    def __init__(self, persistence: PersistenceGateway, *, clock: Clock = utc_now):
        self.persistence = persistence
        self._clock = clock

    @staticmethod
    def subscription_options() -> List[SubscriptionOption]:
        return list(SUBSCRIPTION_OPTIONS)

    def create_subscription(
        self,
        customer_id: int,
        product_id: int,
        frequency: Frequency,
        quantity: int = 1,
        discount_percent: Decimal = Decimal("0"),
        start_date: Optional[date] = None,
        payment_method_id: Optional[str] = None,
        shipping_address_id: Optional[str] = None,
    ) -> Subscription:
        """
        Create an active subscription.

        Args:
            customer_id: Owning customer
            product_id: Delivered product
            frequency: Delivery interval
            quantity: Units per delivery
            discount_percent: Discount applied to each delivery
            start_date: Defaults to today
            payment_method_id: Opaque payment method reference
            shipping_address_id: Opaque shipping address reference

        Returns:
            The persisted Subscription; its first delivery is one interval after today

        Raises:
            CustomerNotFoundError: If the customer does not exist
            ProductNotFoundError: If the product does not exist
            ValueError: If quantity or discount are out of range
        """
        if quantity <= 0:
            raise ValueError("Quantity must be at least 1.")
        if not Decimal("0") <= discount_percent <= Decimal("100"):
            raise ValueError("Discount must be between 0 and 100 percent.")
        if self.persistence.get_customer(customer_id) is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found.")
        if self.persistence.get_product(product_id) is None:
            raise ProductNotFoundError(f"Product {product_id} not found.")

        today = self._clock().date()
        subscription = self.persistence.create_subscription(
            customer_id=customer_id,
            product_id=product_id,
            frequency=frequency,
            quantity=quantity,
            discount_percent=discount_percent,
            start_date=start_date or today,
            next_delivery_date=next_delivery(today, frequency),
            payment_method_id=payment_method_id,
            shipping_address_id=shipping_address_id,
        )
        logger.info("Subscription created: %s", subscription.id)
        return subscription

    def get_subscription(self, subscription_id: int) -> Subscription:
        subscription = self.persistence.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Subscription {subscription_id} not found.")
        return subscription

    def list_customer_subscriptions(self, customer_id: int) -> List[Subscription]:
        return self.persistence.list_subscriptions_for_customer(customer_id)

    def pause_subscription(self, subscription_id: int, pause_until: Optional[date]) -> Subscription:
        subscription = self.get_subscription(subscription_id)
        previous = subscription.status
        subscription.pause(pause_until, self._clock())
        return self._save(subscription, previous)

    def resume_subscription(self, subscription_id: int) -> Subscription:
        """Reactivate a paused subscription, moving a lapsed delivery date into the future."""
        now = self._clock()
        subscription = self.get_subscription(subscription_id)
        previous = subscription.status
        upcoming = roll_forward(subscription.next_delivery_date, subscription.frequency, now.date())
        subscription.resume(now, next_delivery_date=upcoming)
        return self._save(subscription, previous)

    def cancel_subscription(self, subscription_id: int) -> Subscription:
        subscription = self.get_subscription(subscription_id)
        previous = subscription.status
        subscription.cancel(self._clock())
        return self._save(subscription, previous)

    def reminder_history(self, subscription_id: int):
        """Return (reminders sent, last reminder timestamp) for a subscription."""
        self.get_subscription(subscription_id)
        return self.persistence.get_reminder_history(subscription_id)

    def _save(self, subscription: Subscription, previous_status) -> Subscription:
        if not self.persistence.save_subscription_state(subscription, expected_status=previous_status):
            raise InvalidTransitionError(
                f"Subscription {subscription.id} changed status concurrently."
            )
        logger.info("Subscription %s is now %s", subscription.id, subscription.status.value)
        return subscription
