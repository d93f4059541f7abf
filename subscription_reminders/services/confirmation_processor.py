"""Applies the customer's answer to a reminder."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.clock import Clock, utc_now
from ..domain.errors import (
    ConfirmationAlreadyProcessedError,
    InvalidTransitionError,
    MissingParameterError,
    SubscriptionNotFoundError,
)
from ..domain.models import CustomerAction, Frequency, Subscription
from ..domain.ports.persistence import PersistenceGateway
from .confirmation_tokens import ConfirmationTokenManager, mask_token

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT_NAME = "Unknown product"


@dataclass(slots=True)
class ConfirmationOutcome:
    action: CustomerAction
    subscription_id: int
    pause_until: Optional[date] = None
    subscription: Optional[Subscription] = None


@dataclass(slots=True)
class ConfirmationDetails:
    subscription_id: int
    product_name: str
    product_image: Optional[str]
    scheduled_delivery_date: date
    frequency: Optional[Frequency]
    quantity: int
    total_amount: Decimal
    is_expired: bool
    is_already_processed: bool

    @property
    def state(self) -> str:
        if self.is_already_processed:
            return "processed"
        if self.is_expired:
            return "expired"
        return "valid"


class ConfirmationProcessor:
    """Consumes confirmation tokens and updates the related subscription."""

    def __init__(
        self,
        persistence: PersistenceGateway,
        token_manager: ConfirmationTokenManager,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._persistence = persistence
        self._tokens = token_manager
        self._clock = clock

    def get_confirmation_details(self, token: str) -> ConfirmationDetails:
        """
        Build the landing page view for a reminder link.

        Raises:
            ConfirmationNotFoundError: If the token is unknown
        """
        confirmation = self._tokens.lookup(token)
        now = self._clock()
        subscription = self._persistence.get_subscription(confirmation.subscription_id)
        product = self._persistence.get_product(subscription.product_id) if subscription else None
        quantity = subscription.quantity if subscription else 1
        return ConfirmationDetails(
            subscription_id=confirmation.subscription_id,
            product_name=product.name if product else UNKNOWN_PRODUCT_NAME,
            product_image=product.image_url if product else None,
            scheduled_delivery_date=confirmation.scheduled_delivery_date,
            frequency=subscription.frequency if subscription else None,
            quantity=quantity,
            total_amount=(product.base_price if product else Decimal("0")) * quantity,
            is_expired=self._tokens.is_expired(confirmation, now),
            is_already_processed=confirmation.is_confirmed,
        )

    def process_confirmation(
        self,
        token: str,
        action: str,
        pause_until: Optional[date] = None,
    ) -> ConfirmationOutcome:
        """
        Apply ``action`` to the subscription behind ``token`` and consume the token.

        Nothing is written unless every check passes; the subscription change
        and the token consumption are stored in a single transaction.

        Raises:
            ConfirmationNotFoundError: Unknown token
            ConfirmationExpiredError: Token past its expiry
            ConfirmationAlreadyProcessedError: Token already consumed
            InvalidActionError: Action is not continue, pause or cancel
            MissingParameterError: Pause requested without pause_until
            InvalidTransitionError: Subscription status does not allow the change
        """
        now = self._clock()
        confirmation = self._tokens.resolve(token, now)
        parsed = CustomerAction.parse(action)

        if parsed is CustomerAction.PAUSE and pause_until is None:
            logger.warning("Pause action requires pause_until date")
            raise MissingParameterError("Choose a date until which the subscription is paused.")

        subscription: Optional[Subscription] = None
        expected_status = None
        if parsed is not CustomerAction.CONTINUE:
            subscription = self._persistence.get_subscription(confirmation.subscription_id)
            if subscription is None:
                raise SubscriptionNotFoundError(
                    f"Subscription {confirmation.subscription_id} not found."
                )
            expected_status = subscription.status
            try:
                if parsed is CustomerAction.PAUSE:
                    subscription.pause(pause_until, now)
                else:
                    subscription.cancel(now)
            except InvalidTransitionError:
                self._raise_if_consumed(confirmation.id, token)
                raise

        recorded = self._persistence.record_confirmation_response(
            confirmation.id,
            parsed,
            now,
            subscription=subscription,
            expected_status=expected_status,
        )
        if not recorded:
            logger.warning("Confirmation already processed: %s", mask_token(token))
            raise ConfirmationAlreadyProcessedError("This confirmation has already been handled.")

        if parsed is CustomerAction.CONTINUE:
            logger.info("Customer confirmed to continue subscription %s", confirmation.subscription_id)
        elif parsed is CustomerAction.PAUSE:
            logger.info(
                "Customer paused subscription %s until %s", confirmation.subscription_id, pause_until
            )
        else:
            logger.info("Customer cancelled subscription %s", confirmation.subscription_id)

        return ConfirmationOutcome(
            action=parsed,
            subscription_id=confirmation.subscription_id,
            pause_until=pause_until if parsed is CustomerAction.PAUSE else None,
            subscription=subscription,
        )

    def _raise_if_consumed(self, confirmation_id: int, token: str) -> None:
        # A concurrent answer may have changed the subscription after this one was resolved.
        current = self._persistence.get_confirmation(confirmation_id)
        if current is not None and current.is_confirmed:
            logger.warning("Confirmation already processed: %s", mask_token(token))
            raise ConfirmationAlreadyProcessedError("This confirmation has already been handled.")
