"""Issuing and validating single-use confirmation tokens."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from ..domain.errors import (
    ConfirmationAlreadyProcessedError,
    ConfirmationExpiredError,
    ConfirmationNotFoundError,
)
from ..domain.models import Confirmation
from ..domain.ports.persistence import ConfirmationRepository

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def mask_token(token: Optional[str]) -> str:
    """Shorten a token for log output."""
    if not token:
        return "<empty>"
    return f"{token[:8]}..."


class ConfirmationTokenManager:
    """Generates bearer tokens and resolves them back to confirmations."""

    def __init__(self, confirmation_repository: ConfirmationRepository, expiry_days: int = 7):
        self.confirmation_repository = confirmation_repository
        self.expiry = timedelta(days=expiry_days)

    @staticmethod
    def generate_token() -> str:
        """
        Generate a new confirmation token.

        Returns:
            256 random bits in the URL-safe base64 alphabet, without padding,
            so the value can be used directly as a query parameter.
        """
        return secrets.token_urlsafe(TOKEN_BYTES)

    @staticmethod
    def is_expired(confirmation: Confirmation, now: datetime) -> bool:
        return confirmation.is_expired(now)

    def expires_at(self, issued_at: datetime) -> datetime:
        return issued_at + self.expiry

    def lookup(self, token: str) -> Confirmation:
        """
        Find a confirmation by exact token match.

        Raises:
            ConfirmationNotFoundError: If no confirmation carries the token
        """
        if not token or not token.strip():
            raise ConfirmationNotFoundError("Confirmation token is missing.")
        confirmation = self.confirmation_repository.get_confirmation_by_token(token)
        if confirmation is None:
            logger.warning("Confirmation token not found: %s", mask_token(token))
            raise ConfirmationNotFoundError("Confirmation not found.")
        return confirmation

    def resolve(self, token: str, now: datetime) -> Confirmation:
        """
        Find a confirmation that can still be acted on.

        Args:
            token: Token taken from the reminder link
            now: Current time

        Returns:
            The unconsumed, unexpired Confirmation

        Raises:
            ConfirmationNotFoundError: If the token is unknown
            ConfirmationExpiredError: If the confirmation is past its expiry
            ConfirmationAlreadyProcessedError: If a response was already recorded
        """
        confirmation = self.lookup(token)
        if self.is_expired(confirmation, now):
            logger.warning("Confirmation token expired: %s", mask_token(token))
            raise ConfirmationExpiredError("This confirmation link has expired.")
        if confirmation.is_confirmed:
            logger.warning("Confirmation already processed: %s", mask_token(token))
            raise ConfirmationAlreadyProcessedError("This confirmation has already been handled.")
        return confirmation
