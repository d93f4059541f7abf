"""API router for subscription management."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....core.dependencies import get_subscription_service
from ....domain.errors import ReminderError
from ....domain.models import Frequency, Subscription
from ....services.subscription_service import SubscriptionService
from ..errors import to_http_exception
from ..schemas.subscription_schemas import (
    CreateSubscriptionRequest,
    PauseSubscriptionRequest,
    ReminderHistoryResponse,
    SubscriptionOptionResponse,
    SubscriptionResponse,
)

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])


@router.get("/options", response_model=List[SubscriptionOptionResponse])
def get_subscription_options(
    service: SubscriptionService = Depends(get_subscription_service),
) -> List[SubscriptionOptionResponse]:
    return [
        SubscriptionOptionResponse(
            frequency=option.frequency.value,
            label=option.label,
            discount_percent=option.discount_percent,
        )
        for option in service.subscription_options()
    ]


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: CreateSubscriptionRequest,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    try:
        subscription = service.create_subscription(
            customer_id=payload.customer_id,
            product_id=payload.product_id,
            frequency=Frequency.parse(payload.frequency),
            quantity=payload.quantity,
            discount_percent=payload.discount_percent,
            start_date=payload.start_date,
            payment_method_id=payload.payment_method_id,
            shipping_address_id=payload.shipping_address_id,
        )
    except ReminderError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _serialize_subscription(subscription)


@router.get("", response_model=List[SubscriptionResponse])
def list_subscriptions(
    customer_id: int = Query(...),
    service: SubscriptionService = Depends(get_subscription_service),
) -> List[SubscriptionResponse]:
    return [_serialize_subscription(item) for item in service.list_customer_subscriptions(customer_id)]


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
def get_subscription(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    try:
        return _serialize_subscription(service.get_subscription(subscription_id))
    except ReminderError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{subscription_id}/reminders", response_model=ReminderHistoryResponse)
def get_reminder_history(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
) -> ReminderHistoryResponse:
    try:
        sent, last_sent = service.reminder_history(subscription_id)
    except ReminderError as exc:
        raise to_http_exception(exc) from exc
    return ReminderHistoryResponse(
        subscription_id=subscription_id,
        reminders_sent=sent,
        last_reminder_sent=last_sent,
    )


@router.post("/{subscription_id}/pause", response_model=SubscriptionResponse)
def pause_subscription(
    subscription_id: int,
    payload: PauseSubscriptionRequest,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    try:
        return _serialize_subscription(service.pause_subscription(subscription_id, payload.pause_until))
    except ReminderError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{subscription_id}/resume", response_model=SubscriptionResponse)
def resume_subscription(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    try:
        return _serialize_subscription(service.resume_subscription(subscription_id))
    except ReminderError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
def cancel_subscription(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    try:
        return _serialize_subscription(service.cancel_subscription(subscription_id))
    except ReminderError as exc:
        raise to_http_exception(exc) from exc


def _serialize_subscription(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        id=subscription.id,
        customer_id=subscription.customer_id,
        product_id=subscription.product_id,
        frequency=subscription.frequency.value,
        quantity=subscription.quantity,
        discount_percent=subscription.discount_percent,
        status=subscription.status.value,
        start_date=subscription.start_date,
        next_delivery_date=subscription.next_delivery_date,
        pause_until=subscription.pause_until,
        created_at=subscription.created_at,
        updated_at=subscription.updated_at,
        is_active=subscription.is_active(),
    )
