"""Pydantic schemas for the reminder and confirmation endpoints."""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ConfirmationDetailsResponse(BaseModel):
    """View data for the confirmation landing page."""

    subscription_id: int
    product_name: str
    product_image: Optional[str]
    scheduled_delivery_date: date
    frequency: Optional[str]
    quantity: int
    total_amount: Decimal
    is_expired: bool
    is_already_processed: bool
    state: str


class ProcessConfirmationRequest(BaseModel):
    """Customer's answer to a reminder."""

    token: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    pause_until: Optional[date] = None


class ProcessConfirmationResponse(BaseModel):
    success: bool
    message: str
    action: str


class SendRemindersResponse(BaseModel):
    success: bool
    sent_count: int
    message: str


class ManualReminderRequest(BaseModel):
    subscription_ids: List[int] = Field(..., min_length=1)


class ManualReminderResponse(BaseModel):
    success: bool
    success_count: int
    failed_count: int
    errors: List[str]
    message: str


class ReminderStatisticsResponse(BaseModel):
    total_active_subscriptions: int
    reminders_sent_today: int
    pending_confirmations: int
    confirmed_count: int
    paused_count: int
    cancelled_count: int
