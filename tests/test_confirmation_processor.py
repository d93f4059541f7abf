"""Tests for applying customer responses to reminders."""

from __future__ import annotations

import threading
from datetime import date, timedelta
from decimal import Decimal

import pytest

from subscription_reminders.domain.errors import (
    ConfirmationAlreadyProcessedError,
    ConfirmationExpiredError,
    ConfirmationNotFoundError,
    InvalidActionError,
    InvalidTransitionError,
    MissingParameterError,
)
from subscription_reminders.domain.models import CustomerAction, Frequency, SubscriptionStatus

from conftest import SWEEP_DAY


@pytest.fixture
def reminded(scheduler, persistence, make_subscription):
    """An active subscription with a freshly sent reminder."""
    subscription = make_subscription(next_delivery_date=date(2024, 6, 4))
    scheduler.send_pending_reminders(SWEEP_DAY)
    confirmation = persistence.find_confirmation(subscription.id, date(2024, 6, 4))
    return subscription, confirmation


def test_continue_consumes_token_and_keeps_subscription(processor, persistence, reminded, clock) -> None:
    subscription, confirmation = reminded

    outcome = processor.process_confirmation(confirmation.token, "continue")

    assert outcome.action is CustomerAction.CONTINUE
    assert outcome.subscription_id == subscription.id
    assert outcome.pause_until is None
    stored = persistence.get_confirmation(confirmation.id)
    assert stored.is_confirmed
    assert stored.customer_response is CustomerAction.CONTINUE
    assert stored.responded_at == clock()
    assert persistence.get_subscription(subscription.id).status is SubscriptionStatus.ACTIVE


def test_pause_records_resume_date(processor, persistence, reminded) -> None:
    subscription, confirmation = reminded

    outcome = processor.process_confirmation(confirmation.token, "Pause", pause_until=date(2024, 7, 15))

    assert outcome.action is CustomerAction.PAUSE
    assert outcome.pause_until == date(2024, 7, 15)
    stored = persistence.get_subscription(subscription.id)
    assert stored.status is SubscriptionStatus.PAUSED
    assert stored.pause_until == date(2024, 7, 15)
    assert persistence.get_confirmation(confirmation.id).customer_response is CustomerAction.PAUSE


def test_cancel_is_applied(processor, persistence, reminded) -> None:
    subscription, confirmation = reminded

    processor.process_confirmation(confirmation.token, "cancel")

    assert persistence.get_subscription(subscription.id).status is SubscriptionStatus.CANCELLED
    assert persistence.get_confirmation(confirmation.id).customer_response is CustomerAction.CANCEL


def test_token_is_single_use(processor, reminded) -> None:
    _, confirmation = reminded
    processor.process_confirmation(confirmation.token, "continue")

    with pytest.raises(ConfirmationAlreadyProcessedError):
        processor.process_confirmation(confirmation.token, "cancel")


def test_expired_token_is_rejected_without_changes(processor, persistence, reminded, clock) -> None:
    subscription, confirmation = reminded
    clock.advance(days=7, seconds=1)

    with pytest.raises(ConfirmationExpiredError):
        processor.process_confirmation(confirmation.token, "cancel")

    assert not persistence.get_confirmation(confirmation.id).is_confirmed
    assert persistence.get_subscription(subscription.id).status is SubscriptionStatus.ACTIVE


def test_token_is_usable_until_the_expiry_instant(processor, reminded, clock) -> None:
    _, confirmation = reminded
    clock.advance(days=7)
    assert processor.process_confirmation(confirmation.token, "continue").action is CustomerAction.CONTINUE


def test_unknown_token_is_not_found(processor) -> None:
    with pytest.raises(ConfirmationNotFoundError):
        processor.process_confirmation("does-not-exist", "continue")


def test_pause_without_date_modifies_nothing(processor, persistence, reminded) -> None:
    subscription, confirmation = reminded

    with pytest.raises(MissingParameterError):
        processor.process_confirmation(confirmation.token, "pause")

    assert not persistence.get_confirmation(confirmation.id).is_confirmed
    stored = persistence.get_subscription(subscription.id)
    assert stored.status is SubscriptionStatus.ACTIVE
    assert stored.pause_until is None


def test_unknown_action_modifies_nothing(processor, persistence, reminded) -> None:
    _, confirmation = reminded

    with pytest.raises(InvalidActionError):
        processor.process_confirmation(confirmation.token, "skip")

    assert not persistence.get_confirmation(confirmation.id).is_confirmed


def test_cancelled_subscription_cannot_be_paused(
    processor, persistence, reminded, subscription_service
) -> None:
    subscription, confirmation = reminded
    subscription_service.cancel_subscription(subscription.id)

    with pytest.raises(InvalidTransitionError):
        processor.process_confirmation(confirmation.token, "pause", pause_until=date(2024, 7, 1))

    assert not persistence.get_confirmation(confirmation.id).is_confirmed
    assert persistence.get_subscription(subscription.id).status is SubscriptionStatus.CANCELLED
    with pytest.raises(InvalidTransitionError):
        subscription_service.resume_subscription(subscription.id)


def test_concurrent_status_change_rolls_back_consumption(
    processor, persistence, reminded, subscription_service, monkeypatch
) -> None:
    subscription, confirmation = reminded
    stale = persistence.get_subscription(subscription.id)
    subscription_service.cancel_subscription(subscription.id)
    # The processor reads the subscription before the cancellation lands.
    monkeypatch.setattr(persistence, "get_subscription", lambda subscription_id: stale)

    with pytest.raises(InvalidTransitionError):
        processor.process_confirmation(confirmation.token, "pause", pause_until=date(2024, 7, 1))

    monkeypatch.undo()
    assert not persistence.get_confirmation(confirmation.id).is_confirmed
    assert persistence.get_subscription(subscription.id).status is SubscriptionStatus.CANCELLED


def test_details_describe_the_pending_delivery(processor, reminded) -> None:
    subscription, confirmation = reminded

    details = processor.get_confirmation_details(confirmation.token)

    assert details.subscription_id == subscription.id
    assert details.product_name == "Organic Vegetable Box"
    assert details.product_image == "https://cdn.example.com/box.png"
    assert details.scheduled_delivery_date == date(2024, 6, 4)
    assert details.frequency is Frequency.WEEKLY
    assert details.quantity == 2
    assert details.total_amount == Decimal("25.00")
    assert details.state == "valid"


def test_details_report_processed_before_expired(processor, reminded, clock) -> None:
    _, confirmation = reminded
    processor.process_confirmation(confirmation.token, "continue")
    clock.advance(days=30)

    details = processor.get_confirmation_details(confirmation.token)

    assert details.is_expired and details.is_already_processed
    assert details.state == "processed"


def test_details_report_expiry(processor, reminded, clock) -> None:
    _, confirmation = reminded
    clock.advance(days=8)
    assert processor.get_confirmation_details(confirmation.token).state == "expired"


def test_details_for_unknown_token(processor) -> None:
    with pytest.raises(ConfirmationNotFoundError):
        processor.get_confirmation_details("missing")


def test_details_survive_a_deleted_product(processor, persistence, reminded) -> None:
    _, confirmation = reminded
    with persistence._conn:
        persistence._conn.execute("DELETE FROM products")

    details = processor.get_confirmation_details(confirmation.token)

    assert details.product_name == "Unknown product"
    assert details.total_amount == Decimal("0")


def test_expired_reminder_can_be_reissued_and_answered(processor, scheduler, persistence, reminded, clock) -> None:
    subscription, confirmation = reminded
    clock.advance(days=8)
    scheduler.send_manual_reminders([subscription.id])
    fresh = persistence.find_confirmation(subscription.id, date(2024, 6, 4))

    with pytest.raises(ConfirmationNotFoundError):
        processor.process_confirmation(confirmation.token, "continue")
    processor.process_confirmation(fresh.token, "continue")

    assert persistence.get_confirmation(fresh.id).responded_at == clock()
    assert fresh.expires_at - clock() == timedelta(days=7)


def test_simultaneous_answers_apply_exactly_one(processor, persistence, reminded) -> None:
    subscription, confirmation = reminded
    actions = ["pause", "cancel"] * 4
    barrier = threading.Barrier(len(actions))
    outcomes = [None] * len(actions)

    def answer(index: int) -> None:
        barrier.wait()
        try:
            processor.process_confirmation(confirmation.token, actions[index], pause_until=date(2024, 7, 1))
        except ConfirmationAlreadyProcessedError:
            outcomes[index] = "already_processed"
        except Exception as exc:
            outcomes[index] = repr(exc)
        else:
            outcomes[index] = "ok"

    threads = [threading.Thread(target=answer, args=(index,)) for index in range(len(actions))]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("already_processed") == len(actions) - 1
    winner = actions[outcomes.index("ok")]
    stored = persistence.get_confirmation(confirmation.id)
    assert stored.customer_response is CustomerAction.parse(winner)
    expected = SubscriptionStatus.PAUSED if winner == "pause" else SubscriptionStatus.CANCELLED
    assert persistence.get_subscription(subscription.id).status is expected


def test_answer_that_loses_after_loading_is_reported_as_processed(
    processor, persistence, reminded, clock, monkeypatch
) -> None:
    subscription, confirmation = reminded
    load_subscription = persistence.get_subscription

    def cancelled_meanwhile(subscription_id):
        monkeypatch.setattr(persistence, "get_subscription", load_subscription)
        competing = load_subscription(subscription_id)
        competing.cancel(clock())
        assert persistence.record_confirmation_response(
            confirmation.id,
            CustomerAction.CANCEL,
            clock(),
            subscription=competing,
            expected_status=SubscriptionStatus.ACTIVE,
        )
        return load_subscription(subscription_id)

    monkeypatch.setattr(persistence, "get_subscription", cancelled_meanwhile)

    with pytest.raises(ConfirmationAlreadyProcessedError):
        processor.process_confirmation(confirmation.token, "pause", pause_until=date(2024, 7, 1))

    assert persistence.get_confirmation(confirmation.id).customer_response is CustomerAction.CANCEL
    assert persistence.get_subscription(subscription.id).status is SubscriptionStatus.CANCELLED
