"""Closed value sets persisted as lowercase text."""

from __future__ import annotations

from enum import Enum
from typing import Dict

from ..errors import InvalidActionError, InvalidFrequencyError


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: object) -> "Frequency":
        if isinstance(value, cls):
            return value
        member = _FREQUENCIES.get(value.strip().lower()) if isinstance(value, str) else None
        if member is None:
            raise InvalidFrequencyError(f"Unknown delivery frequency: {value!r}")
        return member


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: object) -> "SubscriptionStatus":
        if isinstance(value, cls):
            return value
        member = _STATUSES.get(value.strip().lower()) if isinstance(value, str) else None
        if member is None:
            # Storage holds only values written through this mapping.
            raise ValueError(f"Unknown subscription status: {value!r}")
        return member


class CustomerAction(str, Enum):
    CONTINUE = "continue"
    PAUSE = "pause"
    CANCEL = "cancel"

    @classmethod
    def parse(cls, value: object) -> "CustomerAction":
        if isinstance(value, cls):
            return value
        member = _ACTIONS.get(value.strip().lower()) if isinstance(value, str) else None
        if member is None:
            raise InvalidActionError(f"Unknown action: {value!r}")
        return member


_FREQUENCIES: Dict[str, Frequency] = {
    "weekly": Frequency.WEEKLY,
    "biweekly": Frequency.BIWEEKLY,
    "monthly": Frequency.MONTHLY,
}

_STATUSES: Dict[str, SubscriptionStatus] = {
    "active": SubscriptionStatus.ACTIVE,
    "paused": SubscriptionStatus.PAUSED,
    "cancelled": SubscriptionStatus.CANCELLED,
}

_ACTIONS: Dict[str, CustomerAction] = {
    "continue": CustomerAction.CONTINUE,
    "pause": CustomerAction.PAUSE,
    "cancel": CustomerAction.CANCEL,
}
