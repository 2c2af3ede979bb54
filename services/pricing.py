"""Rental price computation.

Bookings cover the half-open range [start, end): the return day is neither
charged nor reserved. Amounts are integers in the smallest currency unit.
"""
import math
from datetime import date, timedelta

from services.errors import InvalidDateRange, InvalidInput

SECONDS_PER_DAY = 86_400
MAX_RENTAL_DAYS = 365


def rental_days(start, end) -> int:
    """Whole days between start and end, rounded up, never less than 1."""
    seconds = (end - start).total_seconds()
    return max(math.ceil(seconds / SECONDS_PER_DAY), 1)


def price(daily_rate: int, start, end) -> int:
    if not isinstance(daily_rate, int) or isinstance(daily_rate, bool) or daily_rate < 0:
        raise InvalidInput("daily_rate must be a non-negative integer")
    return rental_days(start, end) * daily_rate


def validate_range(start: date, end: date) -> None:
    if start is None or end is None:
        raise InvalidInput("start_date and end_date are required")
    if start >= end:
        raise InvalidDateRange()


def validate_rental(start: date, end: date, max_days: int = MAX_RENTAL_DAYS) -> None:
    """A bookable range: well ordered and no longer than max_days."""
    validate_range(start, end)
    if rental_days(start, end) > max_days:
        raise InvalidInput(f"Rentals are limited to {max_days} days")


def iter_days(start: date, end: date):
    day = start
    while day < end:
        yield day
        day += timedelta(days=1)


def quote(vehicle, start: date, end: date, max_days: int = MAX_RENTAL_DAYS) -> dict:
    validate_rental(start, end, max_days)
    return {
        "vehicle_id": vehicle.id,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "days": rental_days(start, end),
        "daily_rate": vehicle.daily_rate,
        "total_price": price(vehicle.daily_rate, start, end),
    }
