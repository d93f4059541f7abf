from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .enums import CustomerAction


@dataclass(slots=True)
class Confirmation:
    id: int
    subscription_id: int
    token: str
    scheduled_delivery_date: date
    is_confirmed: bool
    customer_response: Optional[CustomerAction]
    responded_at: Optional[datetime]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
