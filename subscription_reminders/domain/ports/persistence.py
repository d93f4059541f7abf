from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Protocol, Tuple

from ..models import (
    Confirmation,
    Customer,
    CustomerAction,
    Frequency,
    Product,
    Subscription,
    SubscriptionStatus,
)


class CatalogRepository(Protocol):
    """Read access to customers and products owned by the wider shop."""

    def get_customer(self, customer_id: int) -> Optional[Customer]:
        ...

    def get_product(self, product_id: int) -> Optional[Product]:
        ...


class SubscriptionRepository(Protocol):
    """Persistence functions related to subscription records."""

    def create_subscription(
        self,
        customer_id: int,
        product_id: int,
        frequency: Frequency,
        quantity: int,
        discount_percent: Decimal,
        start_date: date,
        next_delivery_date: date,
        payment_method_id: Optional[str] = None,
        shipping_address_id: Optional[str] = None,
    ) -> Subscription:
        ...

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        ...

    def list_subscriptions_for_customer(self, customer_id: int) -> List[Subscription]:
        ...

    def find_active_subscriptions_with_next_delivery_date(self, delivery_date: date) -> List[Subscription]:
        ...

    def save_subscription_state(
        self,
        subscription: Subscription,
        *,
        expected_status: SubscriptionStatus,
    ) -> bool:
        """Write status fields only if the stored status still equals ``expected_status``."""
        ...

    def count_subscriptions_by_status(self, status: SubscriptionStatus) -> int:
        ...


class ConfirmationRepository(Protocol):
    """Persistence functions related to reminder confirmations."""

    def create_confirmation_if_absent(
        self,
        subscription_id: int,
        token: str,
        scheduled_delivery_date: date,
        created_at: datetime,
        expires_at: datetime,
    ) -> Optional[Confirmation]:
        """Insert unless (subscription_id, scheduled_delivery_date) exists; None when skipped."""
        ...

    def find_confirmation(self, subscription_id: int, scheduled_delivery_date: date) -> Optional[Confirmation]:
        ...

    def get_confirmation(self, confirmation_id: int) -> Optional[Confirmation]:
        ...

    def get_confirmation_by_token(self, token: str) -> Optional[Confirmation]:
        ...

    def discard_confirmation(self, confirmation_id: int) -> bool:
        """Delete a confirmation that has not been consumed yet."""
        ...

    def reissue_confirmation(
        self,
        confirmation_id: int,
        token: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> Optional[Confirmation]:
        ...

    def record_confirmation_response(
        self,
        confirmation_id: int,
        response: CustomerAction,
        responded_at: datetime,
        subscription: Optional[Subscription] = None,
        expected_status: Optional[SubscriptionStatus] = None,
    ) -> bool:
        """Consume the confirmation and persist ``subscription`` in one transaction.

        Returns False, leaving storage untouched, when the confirmation was already
        consumed or has expired by ``responded_at``.
        """
        ...

    def count_confirmations_created_between(self, start: datetime, end: datetime) -> int:
        ...

    def count_pending_confirmations(self, now: datetime) -> int:
        ...

    def count_confirmed_by_response(self, response: CustomerAction) -> int:
        ...

    def get_reminder_history(self, subscription_id: int) -> Tuple[int, Optional[datetime]]:
        ...

    def purge_expired_confirmations(self, older_than: datetime) -> int:
        ...


class PersistenceGateway(
    CatalogRepository,
    SubscriptionRepository,
    ConfirmationRepository,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    pass
