# File: src/peachrecon/core/fees.py
"""Management fee calculation: percentage of revenue vs. tiered order minimum."""

from dataclasses import dataclass
from decimal import Decimal

ZERO = Decimal("0")


@dataclass(frozen=True)
class MinimumFeeTier:
    """Order minimum for nightly rates up to and including `max_nightly_rate`.

    The last tier of a schedule uses `max_nightly_rate=None` (no upper bound).
    """

    max_nightly_rate: Decimal | None
    minimum_fee: Decimal
    inclusive: bool = True


DEFAULT_MINIMUM_FEE_TIERS: tuple[MinimumFeeTier, ...] = (
    MinimumFeeTier(max_nightly_rate=Decimal("200"), minimum_fee=Decimal("250"), inclusive=False),
    MinimumFeeTier(max_nightly_rate=Decimal("400"), minimum_fee=Decimal("400")),
    MinimumFeeTier(max_nightly_rate=None, minimum_fee=Decimal("750")),
)


@dataclass(frozen=True)
class FeeSchedule:
    """Billing configuration passed explicitly into the fee calculation."""

    default_percentage: Decimal = Decimal("15")
    minimum_fee_tiers: tuple[MinimumFeeTier, ...] = DEFAULT_MINIMUM_FEE_TIERS

    def percentage_for(self, configured: Decimal | int | float | None) -> Decimal:
        """Per-property percentage; unset or zero falls back to the default."""
        if not configured:
            return self.default_percentage
        return Decimal(str(configured)) if not isinstance(configured, Decimal) else configured

    def minimum_for(self, nightly_rate: Decimal) -> Decimal:
        for tier in self.minimum_fee_tiers:
            if tier.max_nightly_rate is None:
                return tier.minimum_fee
            if nightly_rate < tier.max_nightly_rate or (
                tier.inclusive and nightly_rate == tier.max_nightly_rate
            ):
                return tier.minimum_fee
        return ZERO


DEFAULT_FEE_SCHEDULE = FeeSchedule()


@dataclass(frozen=True)
class FeeInputs:
    accommodation_revenue_total: Decimal
    mid_term_revenue: Decimal
    total_nights: int
    management_fee_percentage: Decimal | None
    has_mid_term_occupancy: bool
    is_property_live: bool


@dataclass(frozen=True)
class FeeBreakdown:
    nightly_rate: Decimal
    percentage: Decimal
    fee_base: Decimal
    calculated_fee: Decimal
    order_minimum_fee: Decimal
    management_fee: Decimal


def nightly_rate(accommodation_revenue_total: Decimal, total_nights: int) -> Decimal:
    if total_nights <= 0:
        return ZERO
    return accommodation_revenue_total / total_nights


def order_minimum_fee(inputs: FeeInputs, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> Decimal:
    """Tiered minimum; zero with concurrent mid-term occupancy or when not yet live."""
    if inputs.has_mid_term_occupancy or not inputs.is_property_live:
        return ZERO
    return schedule.minimum_for(nightly_rate(inputs.accommodation_revenue_total, inputs.total_nights))


def calculate_management_fee(
    inputs: FeeInputs,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> FeeBreakdown:
    """management_fee = max(fee_base * percentage / 100, order_minimum_fee).

    fee_base is accommodation revenue plus prorated mid-term revenue. Pure and
    deterministic: identical inputs give identical output.
    """
    percentage = schedule.percentage_for(inputs.management_fee_percentage)
    fee_base = inputs.accommodation_revenue_total + inputs.mid_term_revenue
    calculated = fee_base * percentage / Decimal("100")
    minimum = order_minimum_fee(inputs, schedule)

    return FeeBreakdown(
        nightly_rate=nightly_rate(inputs.accommodation_revenue_total, inputs.total_nights),
        percentage=percentage,
        fee_base=fee_base,
        calculated_fee=calculated,
        order_minimum_fee=minimum,
        management_fee=max(calculated, minimum),
    )
