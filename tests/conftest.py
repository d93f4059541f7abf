"""Shared fixtures for the reminder service tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Set

import pytest

from subscription_reminders.core.config import ReminderSettings
from subscription_reminders.domain.errors import DeliveryUncertainError, NotificationDispatchError
from subscription_reminders.domain.models import Frequency, Subscription, SubscriptionStatus
from subscription_reminders.infrastructure.persistence.sqlite import SQLitePersistence
from subscription_reminders.services.confirmation_processor import ConfirmationProcessor
from subscription_reminders.services.confirmation_tokens import ConfirmationTokenManager
from subscription_reminders.services.reminder_scheduler import ReminderScheduler
from subscription_reminders.services.statistics import ReminderStatisticsService
from subscription_reminders.services.subscription_service import SubscriptionService

SWEEP_DAY = date(2024, 6, 1)


class FixedClock:
    """Callable clock whose time only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class SentReminder:
    email: str
    recipient_name: str
    product_name: str
    next_delivery_date: date
    confirmation_token: str


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: List[SentReminder] = []
        self.failing_emails: Set[str] = set()
        self.uncertain_emails: Set[str] = set()
        self._lock = threading.Lock()

    def send_subscription_reminder(
        self,
        email: str,
        recipient_name: str,
        product_name: str,
        next_delivery_date: date,
        confirmation_token: str,
    ) -> None:
        if email in self.failing_emails:
            raise NotificationDispatchError(f"SMTP refused {email}")
        if email in self.uncertain_emails:
            raise DeliveryUncertainError(f"Connection to the mail server for {email} dropped")
        with self._lock:
            self.sent.append(
                SentReminder(email, recipient_name, product_name, next_delivery_date, confirmation_token)
            )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def persistence(tmp_path):
    store = SQLitePersistence(tmp_path / "reminders.db")
    yield store
    store.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def reminder_settings() -> ReminderSettings:
    return ReminderSettings(lead_days=3, token_expiry_days=7, workers=4)


@pytest.fixture
def token_manager(persistence, reminder_settings) -> ConfirmationTokenManager:
    return ConfirmationTokenManager(persistence, expiry_days=reminder_settings.token_expiry_days)


@pytest.fixture
def scheduler(persistence, notifier, token_manager, reminder_settings, clock) -> ReminderScheduler:
    return ReminderScheduler(persistence, notifier, token_manager, reminder_settings, clock=clock)


@pytest.fixture
def processor(persistence, token_manager, clock) -> ConfirmationProcessor:
    return ConfirmationProcessor(persistence, token_manager, clock=clock)


@pytest.fixture
def statistics_service(persistence, clock) -> ReminderStatisticsService:
    return ReminderStatisticsService(persistence, clock=clock)


@pytest.fixture
def subscription_service(persistence, clock) -> SubscriptionService:
    return SubscriptionService(persistence, clock=clock)


@pytest.fixture
def make_subscription(persistence):
    """Create a customer, a product and an active subscription in one call."""
    counter = {"value": 0}

    def factory(
        next_delivery_date: date = date(2024, 6, 4),
        frequency: Frequency = Frequency.WEEKLY,
        *,
        email: Optional[str] = None,
        full_name: Optional[str] = "Jane Doe",
        product_name: str = "Organic Vegetable Box",
        base_price: Decimal = Decimal("12.50"),
        quantity: int = 2,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    ) -> Subscription:
        counter["value"] += 1
        customer = persistence.create_customer(
            email or f"customer{counter['value']}@example.com", full_name
        )
        product = persistence.create_product(product_name, base_price, "https://cdn.example.com/box.png")
        subscription = persistence.create_subscription(
            customer_id=customer.id,
            product_id=product.id,
            frequency=frequency,
            quantity=quantity,
            discount_percent=Decimal("15"),
            start_date=date(2024, 1, 1),
            next_delivery_date=next_delivery_date,
        )
        if status is not SubscriptionStatus.ACTIVE:
            previous = subscription.status
            moment = datetime(2024, 5, 1, tzinfo=timezone.utc)
            if status is SubscriptionStatus.PAUSED:
                subscription.pause(date(2024, 7, 1), moment)
            else:
                subscription.cancel(moment)
            persistence.save_subscription_state(subscription, expected_status=previous)
        return subscription

    return factory
