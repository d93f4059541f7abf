"""Delivery date arithmetic.

Monthly steps keep the day of month when the target month has it and clamp
to that month's last day otherwise, so 2024-01-31 is followed by 2024-02-29
and 2023-01-31 by 2023-02-28. The following step starts from the clamped
date (2024-02-29 -> 2024-03-29).

A missing or unrecognised frequency is treated as monthly. Values coming
from requests or storage are parsed with ``Frequency.parse`` before they get
here, so the fallback only covers in-process callers and is logged.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Optional, Union

from .errors import InvalidFrequencyError
from .models.enums import Frequency

logger = logging.getLogger(__name__)

_FIXED_INTERVALS = {
    Frequency.WEEKLY: timedelta(days=7),
    Frequency.BIWEEKLY: timedelta(days=14),
}


def add_months(reference: date, months: int) -> date:
    month_index = reference.month - 1 + months
    year = reference.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(reference.day, last_day))


def next_delivery(reference: date, frequency: Optional[Union[Frequency, str]]) -> date:
    """Return the delivery date one interval after ``reference``."""
    resolved = _resolve_frequency(frequency)
    interval = _FIXED_INTERVALS.get(resolved)
    if interval is not None:
        return reference + interval
    return add_months(reference, 1)


def roll_forward(
    scheduled: date,
    frequency: Optional[Union[Frequency, str]],
    today: date,
) -> date:
    """Advance ``scheduled`` by whole intervals until it is not before ``today``."""
    current = scheduled
    while current < today:
        current = next_delivery(current, frequency)
    return current


def _resolve_frequency(frequency: Optional[Union[Frequency, str]]) -> Frequency:
    if frequency is None:
        logger.warning("Missing delivery frequency; defaulting to monthly.")
        return Frequency.MONTHLY
    try:
        return Frequency.parse(frequency)
    except InvalidFrequencyError:
        logger.warning("Unrecognised delivery frequency %r; defaulting to monthly.", frequency)
        return Frequency.MONTHLY
