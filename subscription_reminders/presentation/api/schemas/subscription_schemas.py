"""Pydantic schemas for subscription API endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CreateSubscriptionRequest(BaseModel):
    """Request schema for creating a subscription."""

    customer_id: int
    product_id: int
    frequency: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    start_date: Optional[date] = None
    payment_method_id: Optional[str] = None
    shipping_address_id: Optional[str] = None


class PauseSubscriptionRequest(BaseModel):
    pause_until: Optional[date] = None


class SubscriptionResponse(BaseModel):
    """Response schema for subscription data."""

    id: int
    customer_id: int
    product_id: int
    frequency: str
    quantity: int
    discount_percent: Decimal
    status: str
    start_date: date
    next_delivery_date: date
    pause_until: Optional[date]
    created_at: datetime
    updated_at: datetime
    is_active: bool


class SubscriptionOptionResponse(BaseModel):
    frequency: str
    label: str
    discount_percent: Decimal


class ReminderHistoryResponse(BaseModel):
    subscription_id: int
    reminders_sent: int
    last_reminder_sent: Optional[datetime]
