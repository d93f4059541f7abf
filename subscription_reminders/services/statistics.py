from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Dict, Optional

from ..core.clock import Clock, utc_now
from ..domain.models import CustomerAction, SubscriptionStatus
from ..domain.ports.persistence import PersistenceGateway


@dataclass(frozen=True, slots=True)
class ReminderStatistics:
    total_active_subscriptions: int
    reminders_sent_today: int
    pending_confirmations: int
    confirmed_count: int
    paused_count: int
    cancelled_count: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class ReminderStatisticsService:
    """Read-only rollup over subscriptions and confirmations for the admin dashboard."""

    def __init__(self, persistence: PersistenceGateway, *, clock: Clock = utc_now) -> None:
        self._persistence = persistence
        self._clock = clock

    def get_statistics(self, now: Optional[datetime] = None) -> ReminderStatistics:
        now = now or self._clock()
        # Naive values are UTC, matching how storage writes them.
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        day_start = datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
        day_end = day_start + timedelta(days=1)
        persistence = self._persistence
        return ReminderStatistics(
            total_active_subscriptions=persistence.count_subscriptions_by_status(SubscriptionStatus.ACTIVE),
            reminders_sent_today=persistence.count_confirmations_created_between(day_start, day_end),
            pending_confirmations=persistence.count_pending_confirmations(now),
            confirmed_count=persistence.count_confirmed_by_response(CustomerAction.CONTINUE),
            paused_count=persistence.count_confirmed_by_response(CustomerAction.PAUSE),
            cancelled_count=persistence.count_confirmed_by_response(CustomerAction.CANCEL),
        )
