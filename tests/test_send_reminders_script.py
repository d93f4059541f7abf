from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from scripts.send_reminders import main, parse_args
from subscription_reminders.core.config import Settings
from subscription_reminders.domain.models import Frequency
from subscription_reminders.infrastructure.persistence.sqlite import SQLitePersistence

from conftest import RecordingNotifier


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Settings:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "cron.db"))
    monkeypatch.delenv("REMINDER_LEAD_DAYS", raising=False)
    return Settings()


@pytest.fixture
def seeded(settings: Settings):
    store = SQLitePersistence(settings.database_path)
    customer = store.create_customer("jane@example.com", "Jane Doe")
    product = store.create_product("Coffee Beans", Decimal("9.90"))
    subscription = store.create_subscription(
        customer_id=customer.id,
        product_id=product.id,
        frequency=Frequency.MONTHLY,
        quantity=1,
        discount_percent=Decimal("10"),
        start_date=date(2024, 1, 1),
        next_delivery_date=date(2024, 6, 4),
    )
    store.close()
    return subscription


def test_parse_args() -> None:
    args = parse_args(["--date", "2024-06-01", "--purge-days", "30"])
    assert args.date == date(2024, 6, 1)
    assert args.purge_days == 30
    assert parse_args([]).date is None


def test_rejects_malformed_date() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--date", "01/06/2024"])


def test_sweep_for_given_day(settings, seeded, capsys) -> None:
    notifier = RecordingNotifier()

    assert main(["--date", "2024-06-01"], settings=settings, notifier=notifier) == 0

    assert capsys.readouterr().out.strip() == "Sent 1 reminder(s)."
    [sent] = notifier.sent
    assert sent.email == "jane@example.com"
    assert sent.next_delivery_date == date(2024, 6, 4)


def test_other_days_send_nothing_and_purge_reports(settings, seeded, capsys) -> None:
    notifier = RecordingNotifier()

    main(["--date", "2024-06-02", "--purge-days", "30"], settings=settings, notifier=notifier)

    output = capsys.readouterr().out.splitlines()
    assert output == ["Sent 0 reminder(s).", "Purged 0 expired confirmation(s)."]
    assert notifier.sent == []
