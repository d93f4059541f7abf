"""Domain exceptions raised by the reminder and subscription services."""

from __future__ import annotations


class ReminderError(Exception):
    """Base class for every error raised by the reminder workflow."""

    code = "reminder_error"


class NotFoundError(ReminderError):
    code = "not_found"


class ConfirmationNotFoundError(NotFoundError):
    code = "confirmation_not_found"


class SubscriptionNotFoundError(NotFoundError):
    code = "subscription_not_found"


class CustomerNotFoundError(NotFoundError):
    code = "customer_not_found"


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"


class ConfirmationExpiredError(ReminderError):
    code = "expired"


class ConfirmationAlreadyProcessedError(ReminderError):
    code = "already_processed"


class InvalidActionError(ReminderError, ValueError):
    code = "invalid_action"


class InvalidFrequencyError(ReminderError, ValueError):
    code = "invalid_frequency"


class MissingParameterError(ReminderError, ValueError):
    code = "missing_parameter"


class InvalidTransitionError(ReminderError):
    """Raised when a subscription status change is not allowed."""

    code = "invalid_transition"


class SubscriptionNotActiveError(ReminderError):
    code = "subscription_not_active"


class NotificationDispatchError(ReminderError):
    """Transient failure while handing a reminder to the notification channel."""

    code = "dispatch_failed"


class DeliveryUncertainError(NotificationDispatchError):
    """The channel failed after the reminder may already have been accepted."""

    code = "delivery_uncertain"
