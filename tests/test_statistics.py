from __future__ import annotations

import os
import time
from datetime import date, datetime, timezone

import pytest

from subscription_reminders.domain.models import SubscriptionStatus

from conftest import SWEEP_DAY


def test_statistics_roll_up_todays_reminders_and_responses(
    scheduler, processor, persistence, statistics_service, make_subscription
) -> None:
    reminded = [make_subscription(next_delivery_date=date(2024, 6, 4)) for _ in range(3)]
    for _ in range(8):
        make_subscription(next_delivery_date=date(2024, 6, 20))
    make_subscription(status=SubscriptionStatus.CANCELLED)
    assert scheduler.send_pending_reminders(SWEEP_DAY) == 3

    tokens = [persistence.find_confirmation(item.id, date(2024, 6, 4)).token for item in reminded]
    processor.process_confirmation(tokens[0], "continue")
    processor.process_confirmation(tokens[1], "continue")
    processor.process_confirmation(tokens[2], "pause", pause_until=date(2024, 7, 1))

    stats = statistics_service.get_statistics()

    assert stats.total_active_subscriptions == 10
    assert stats.reminders_sent_today == 3
    assert stats.pending_confirmations == 0
    assert stats.confirmed_count == 2
    assert stats.paused_count == 1
    assert stats.cancelled_count == 0


def test_pending_confirmations_exclude_expired(scheduler, statistics_service, make_subscription) -> None:
    make_subscription()
    make_subscription()
    scheduler.send_pending_reminders(SWEEP_DAY)

    assert statistics_service.get_statistics().pending_confirmations == 2
    later = datetime(2024, 6, 8, 9, 0, 1, tzinfo=timezone.utc)
    assert statistics_service.get_statistics(later).pending_confirmations == 0


def test_reminders_sent_today_uses_calendar_day(scheduler, statistics_service, make_subscription, clock) -> None:
    make_subscription()
    scheduler.send_pending_reminders(SWEEP_DAY)

    clock.advance(days=1)
    stats = statistics_service.get_statistics()

    assert stats.reminders_sent_today == 0
    assert stats.to_dict()["pending_confirmations"] == 1


def test_empty_store_reports_zeroes(statistics_service) -> None:
    assert set(statistics_service.get_statistics().to_dict().values()) == {0}


@pytest.fixture
def non_utc_host():
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "America/New_York"
    time.tzset()
    yield
    if previous is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = previous
    time.tzset()


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs POSIX timezone switching")
def test_naive_now_is_read_as_utc(scheduler, statistics_service, make_subscription, non_utc_host) -> None:
    make_subscription()
    scheduler.send_pending_reminders(SWEEP_DAY)

    late_evening = statistics_service.get_statistics(datetime(2024, 6, 1, 23, 30))
    next_morning = statistics_service.get_statistics(datetime(2024, 6, 2, 0, 30))

    assert late_evening == statistics_service.get_statistics(datetime(2024, 6, 1, 23, 30, tzinfo=timezone.utc))
    assert late_evening.reminders_sent_today == 1
    assert next_morning.reminders_sent_today == 0
    assert statistics_service.get_statistics(datetime(2024, 6, 8, 9, 0, 1)).pending_confirmations == 0
