"""Domain models for the subscription reminder service."""

from .catalog import Customer, Product
from .confirmation import Confirmation
from .enums import CustomerAction, Frequency, SubscriptionStatus
from .subscription import ALLOWED_TRANSITIONS, Subscription, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Confirmation",
    "Customer",
    "CustomerAction",
    "Frequency",
    "Product",
    "Subscription",
    "SubscriptionStatus",
    "can_transition",
]
