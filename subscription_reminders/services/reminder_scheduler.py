from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from ..core.clock import Clock, utc_now
from ..core.config import ReminderSettings
from ..domain.errors import (
    ConfirmationAlreadyProcessedError,
    ConfirmationNotFoundError,
    CustomerNotFoundError,
    DeliveryUncertainError,
    ProductNotFoundError,
    ReminderError,
    SubscriptionNotActiveError,
    SubscriptionNotFoundError,
)
from ..domain.models import Confirmation, Customer, Product, Subscription
from ..domain.ports.notifications import ReminderNotifier
from ..domain.ports.persistence import PersistenceGateway
from .confirmation_tokens import ConfirmationTokenManager

logger = logging.getLogger(__name__)

DEFAULT_RECIPIENT_NAME = "Customer"


@dataclass(slots=True)
class ManualReminderResult:
    success_count: int = 0
    failed_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.success_count > 0

    @property
    def message(self) -> str:
        return f"Sent {self.success_count} reminder(s), {self.failed_count} failed."


class ReminderScheduler:
    """Daily sweep that issues confirmation links for upcoming deliveries."""

    def __init__(
        self,
        persistence: PersistenceGateway,
        notifier: ReminderNotifier,
        token_manager: ConfirmationTokenManager,
        settings: ReminderSettings,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._persistence = persistence
        self._notifier = notifier
        self._tokens = token_manager
        self._settings = settings
        self._clock = clock

    def target_date(self, today: date) -> date:
        return today + timedelta(days=self._settings.lead_days)

    def send_pending_reminders(self, today: Optional[date] = None) -> int:
        """Remind every active subscription delivering ``lead_days`` after ``today``.

        Safe to run more than once per day: a delivery that already has a
        confirmation is skipped. Returns the number of reminders dispatched.
        """
        now = self._clock()
        today = today or now.date()
        target = self.target_date(today)
        logger.info("Checking subscriptions for reminders. Target date: %s", target)

        candidates = self._persistence.find_active_subscriptions_with_next_delivery_date(target)
        logger.info("Found %s subscriptions to send reminders", len(candidates))
        if not candidates:
            return 0

        workers = min(self._settings.workers, len(candidates))
        if workers == 1:
            results = [self._remind_safely(subscription, now) for subscription in candidates]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reminder") as pool:
                results = list(pool.map(lambda item: self._remind_safely(item, now), candidates))

        sent = sum(1 for result in results if result)
        logger.info("Sent %s reminders successfully", sent)
        return sent

    def send_manual_reminders(self, subscription_ids: Iterable[int]) -> ManualReminderResult:
        """Send reminders for hand-picked subscriptions regardless of their delivery date."""
        now = self._clock()
        result = ManualReminderResult()
        for subscription_id in subscription_ids:
            try:
                self._send_manual_reminder(subscription_id, now)
            except ReminderError as exc:
                logger.warning("Manual reminder for subscription %s failed: %s", subscription_id, exc)
                result.errors.append(f"Subscription {subscription_id}: {exc}")
                result.failed_count += 1
            except Exception as exc:
                logger.exception("Error sending manual reminder for subscription %s", subscription_id)
                result.errors.append(f"Subscription {subscription_id}: {exc}")
                result.failed_count += 1
            else:
                result.success_count += 1
        logger.info(result.message)
        return result

    def purge_expired_confirmations(self, older_than_days: int) -> int:
        """Delete unanswered confirmations that expired more than ``older_than_days`` ago."""
        if older_than_days < 0:
            raise ValueError("older_than_days must not be negative")
        cutoff = self._clock() - timedelta(days=older_than_days)
        purged = self._persistence.purge_expired_confirmations(cutoff)
        if purged:
            logger.info("Purged %s expired confirmations older than %s.", purged, cutoff.isoformat())
        return purged

    # ------------------------------------------------------------------
    def _remind_safely(self, subscription: Subscription, now: datetime) -> bool:
        try:
            return self._remind(subscription, now)
        except ReminderError as exc:
            logger.warning("Failed to send reminder for subscription %s: %s", subscription.id, exc)
        except Exception:
            logger.exception("Failed to send reminder for subscription %s", subscription.id)
        return False

    def _remind(self, subscription: Subscription, now: datetime) -> bool:
        existing = self._persistence.find_confirmation(subscription.id, subscription.next_delivery_date)
        if existing is not None:
            logger.info("Reminder already sent for subscription %s", subscription.id)
            return False

        customer, product = self._load_recipient(subscription)
        confirmation = self._persistence.create_confirmation_if_absent(
            subscription_id=subscription.id,
            token=self._tokens.generate_token(),
            scheduled_delivery_date=subscription.next_delivery_date,
            created_at=now,
            expires_at=self._tokens.expires_at(now),
        )
        if confirmation is None:
            logger.info("Reminder for subscription %s was issued concurrently", subscription.id)
            return False

        self._dispatch_or_discard(subscription, customer, product, confirmation)
        logger.info("Sent reminder for subscription %s to %s", subscription.id, customer.email)
        return True

    def _send_manual_reminder(self, subscription_id: int, now: datetime) -> None:
        subscription = self._persistence.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Subscription {subscription_id} does not exist.")
        if not subscription.is_active():
            raise SubscriptionNotActiveError(f"Subscription {subscription_id} is not active.")
        customer, product = self._load_recipient(subscription)

        confirmation = self._persistence.create_confirmation_if_absent(
            subscription_id=subscription.id,
            token=self._tokens.generate_token(),
            scheduled_delivery_date=subscription.next_delivery_date,
            created_at=now,
            expires_at=self._tokens.expires_at(now),
        )
        if confirmation is not None:
            self._dispatch_or_discard(subscription, customer, product, confirmation)
            return

        existing = self._reusable_confirmation(subscription, now)
        self._notify(subscription, customer, product, existing.token)

    def _reusable_confirmation(self, subscription: Subscription, now: datetime) -> Confirmation:
        existing = self._persistence.find_confirmation(subscription.id, subscription.next_delivery_date)
        if existing is None:
            raise ConfirmationNotFoundError(
                f"Reminder for subscription {subscription.id} was withdrawn while being resent."
            )
        if existing.is_confirmed:
            raise ConfirmationAlreadyProcessedError(
                f"Customer already responded for the delivery on {subscription.next_delivery_date}."
            )
        if not self._tokens.is_expired(existing, now):
            return existing
        reissued = self._persistence.reissue_confirmation(
            existing.id,
            token=self._tokens.generate_token(),
            created_at=now,
            expires_at=self._tokens.expires_at(now),
        )
        if reissued is None:
            raise ConfirmationAlreadyProcessedError(
                f"Customer already responded for the delivery on {subscription.next_delivery_date}."
            )
        return reissued

    def _dispatch_or_discard(
        self,
        subscription: Subscription,
        customer: Customer,
        product: Product,
        confirmation: Confirmation,
    ) -> None:
        try:
            self._notify(subscription, customer, product, confirmation.token)
        except DeliveryUncertainError:
            # The customer may already hold this link, so its token must stay valid.
            logger.warning(
                "Keeping confirmation %s for subscription %s after uncertain delivery",
                confirmation.id,
                subscription.id,
            )
            raise
        except Exception:
            # Without the row a later sweep retries this delivery.
            self._persistence.discard_confirmation(confirmation.id)
            raise

    def _notify(self, subscription: Subscription, customer: Customer, product: Product, token: str) -> None:
        self._notifier.send_subscription_reminder(
            email=customer.email,
            recipient_name=customer.full_name or DEFAULT_RECIPIENT_NAME,
            product_name=product.name,
            next_delivery_date=subscription.next_delivery_date,
            confirmation_token=token,
        )

    def _load_recipient(self, subscription: Subscription) -> Tuple[Customer, Product]:
        customer = self._persistence.get_customer(subscription.customer_id)
        if customer is None:
            raise CustomerNotFoundError(
                f"Customer {subscription.customer_id} of subscription {subscription.id} not found."
            )
        product = self._persistence.get_product(subscription.product_id)
        if product is None:
            raise ProductNotFoundError(
                f"Product {subscription.product_id} of subscription {subscription.id} not found."
            )
        return customer, product
