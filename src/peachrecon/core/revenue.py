# File: src/peachrecon/core/revenue.py
"""Revenue aggregation for one property-month."""

import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from peachrecon.models.booking import MidTermBooking, OwnerRezBooking
from peachrecon.utils.datetime import days_in_month, month_bounds

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Decimal | int | float | None) -> Decimal:
    """Quantize to cents, half-up. None counts as zero."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _dec(value: Decimal | int | float | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def booking_revenue(booking: OwnerRezBooking) -> Decimal:
    """Accommodation revenue, falling back to the booking total when unset or zero."""
    return _dec(booking.accommodation_revenue or booking.total_amount or 0)


def booking_nights(booking: OwnerRezBooking) -> int:
    """Nights stayed, rounded up; 0 when dates are missing or inverted."""
    if not booking.check_in or not booking.check_out:
        return 0
    nights = math.ceil((booking.check_out - booking.check_in).total_seconds() / 86400)
    return nights if nights > 0 else 0


def prorated_rent(mid_term: MidTermBooking, month: date) -> tuple[Decimal, int]:
    """Monthly rent scaled by the inclusive number of occupied days in `month`.

    Returns (amount, days_occupied). Tenancies outside the month yield zero.
    """
    month_start, month_end = month_bounds(month)
    effective_start = max(mid_term.start_date, month_start)
    effective_end = min(mid_term.end_date, month_end)
    days_occupied = (effective_end - effective_start).days + 1
    if days_occupied <= 0:
        return ZERO, 0
    amount = _dec(mid_term.monthly_rent) * days_occupied / days_in_month(month_start)
    return amount, days_occupied


@dataclass(frozen=True)
class RevenueSummary:
    """Aggregated revenue for a property-month (unrounded)."""

    short_term_revenue: Decimal
    mid_term_revenue: Decimal
    total_revenue: Decimal
    accommodation_revenue_total: Decimal
    cleaning_fees_total: Decimal
    pet_fees_total: Decimal
    total_nights: int


def aggregate_revenue(
    bookings: Iterable[OwnerRezBooking],
    mid_term_bookings: Iterable[MidTermBooking],
    month: date,
) -> RevenueSummary:
    """Sum revenue from deduplicated short-term bookings plus prorated mid-term rent.

    Cleaning and pet fees are pass-through and tracked apart from revenue.
    Bookings without positive revenue contribute no fees or nights.
    """
    bookings = list(bookings)

    accommodation_total = ZERO
    cleaning_total = ZERO
    pet_total = ZERO
    total_nights = 0

    for booking in bookings:
        revenue = booking_revenue(booking)
        if revenue <= 0:
            continue
        accommodation_total += revenue
        cleaning_total += _dec(booking.cleaning_fee)
        pet_total += _dec(booking.pet_fee)
        total_nights += booking_nights(booking)

    mid_term_revenue = ZERO
    for mid_term in mid_term_bookings:
        amount, _ = prorated_rent(mid_term, month)
        mid_term_revenue += amount

    short_term_revenue = sum((_dec(b.total_amount) for b in bookings), ZERO)

    return RevenueSummary(
        short_term_revenue=short_term_revenue,
        mid_term_revenue=mid_term_revenue,
        total_revenue=short_term_revenue + mid_term_revenue,
        accommodation_revenue_total=accommodation_total,
        cleaning_fees_total=cleaning_total,
        pet_fees_total=pet_total,
        total_nights=total_nights,
    )
