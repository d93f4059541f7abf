"""API router for delivery reminders and the confirmation landing page."""

from fastapi import APIRouter, Depends, Query

from ....core.dependencies import (
    get_confirmation_processor,
    get_reminder_scheduler,
    get_statistics_service,
)
from ....domain.errors import ReminderError
from ....domain.models import CustomerAction
from ....services.confirmation_processor import ConfirmationOutcome, ConfirmationProcessor
from ....services.reminder_scheduler import ReminderScheduler
from ....services.statistics import ReminderStatisticsService
from ..errors import to_http_exception
from ..schemas.reminder_schemas import (
    ConfirmationDetailsResponse,
    ManualReminderRequest,
    ManualReminderResponse,
    ProcessConfirmationRequest,
    ProcessConfirmationResponse,
    ReminderStatisticsResponse,
    SendRemindersResponse,
)

router = APIRouter(prefix="/api/subscription-reminders", tags=["Subscription Reminders"])


@router.post("/send", response_model=SendRemindersResponse)
def send_reminders(
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> SendRemindersResponse:
    """Run the reminder sweep for today."""
    sent_count = scheduler.send_pending_reminders()
    return SendRemindersResponse(
        success=True,
        sent_count=sent_count,
        message=f"Sent {sent_count} reminder email(s).",
    )


@router.post("/send-manual", response_model=ManualReminderResponse)
def send_manual_reminders(
    payload: ManualReminderRequest,
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> ManualReminderResponse:
    result = scheduler.send_manual_reminders(payload.subscription_ids)
    return ManualReminderResponse(
        success=result.success,
        success_count=result.success_count,
        failed_count=result.failed_count,
        errors=result.errors,
        message=result.message,
    )


@router.get("/confirm", response_model=ConfirmationDetailsResponse)
def get_confirmation_details(
    token: str = Query(..., min_length=1),
    processor: ConfirmationProcessor = Depends(get_confirmation_processor),
) -> ConfirmationDetailsResponse:
    """Describe the delivery behind a reminder link before the customer answers."""
    try:
        details = processor.get_confirmation_details(token)
    except ReminderError as exc:
        raise to_http_exception(exc) from exc
    return ConfirmationDetailsResponse(
        subscription_id=details.subscription_id,
        product_name=details.product_name,
        product_image=details.product_image,
        scheduled_delivery_date=details.scheduled_delivery_date,
        frequency=details.frequency.value if details.frequency else None,
        quantity=details.quantity,
        total_amount=details.total_amount,
        is_expired=details.is_expired,
        is_already_processed=details.is_already_processed,
        state=details.state,
    )


@router.post("/confirm", response_model=ProcessConfirmationResponse)
def process_confirmation(
    payload: ProcessConfirmationRequest,
    processor: ConfirmationProcessor = Depends(get_confirmation_processor),
) -> ProcessConfirmationResponse:
    try:
        outcome = processor.process_confirmation(payload.token, payload.action, payload.pause_until)
    except ReminderError as exc:
        raise to_http_exception(exc) from exc
    return ProcessConfirmationResponse(
        success=True,
        message=_action_message(outcome),
        action=outcome.action.value,
    )


@router.get("/statistics", response_model=ReminderStatisticsResponse)
def get_statistics(
    statistics_service: ReminderStatisticsService = Depends(get_statistics_service),
) -> ReminderStatisticsResponse:
    return ReminderStatisticsResponse(**statistics_service.get_statistics().to_dict())


def _action_message(outcome: ConfirmationOutcome) -> str:
    if outcome.action is CustomerAction.CONTINUE:
        return "Your subscription will continue as usual."
    if outcome.action is CustomerAction.PAUSE:
        return f"Your subscription is paused until {outcome.pause_until:%d/%m/%Y}."
    return "Your subscription has been cancelled."
