"""Stay quote domain logic - nightly prices, discounts, fees and VAT.

Calculation order (must not be reordered, amounts are never rounded here):
1. per-night resolution, summed into base_amount
2. discounts: stay-length tier + unit discount, both on base_amount
3. fees: 2% service fee on base_amount + literal cleaning fee
4. taxable = base + fees - discounts
5. taxes = 5% of taxable
6. total = base + fees + taxes - discounts

Rounding happens once, by the caller, via PriceBreakdown.rounded().
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from stayquote.domain.models import (
    PriceBreakdown,
    PriceBreakdownEntry,
    PricingRule,
    Unit,
    as_day,
)
from stayquote.domain.pricing_rules import resolve_nightly_price

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

WEEKLY_STAY_NIGHTS = 7
WEEKLY_STAY_DISCOUNT = Decimal("0.10")
SHORT_STAY_NIGHTS = 3
SHORT_STAY_DISCOUNT = Decimal("0.05")

SERVICE_FEE_RATE = Decimal("0.02")
VAT_RATE = Decimal("0.05")

CLEANING_FEE_KEY = "cleaning_fee"


class InvalidRangeError(Exception):
    """Raised when check_out is not after check_in."""

    def __init__(self, check_in: date | datetime, check_out: date | datetime) -> None:
        self.check_in = check_in
        self.check_out = check_out
        super().__init__(
            f"Invalid stay range: check_out {check_out} must be after check_in {check_in}"
        )


def _comparable(value: date | datetime, other: date | datetime) -> date | datetime:
    """Promote a plain date to midnight when compared against a datetime."""
    if isinstance(other, datetime) and not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=other.tzinfo)
    return value


def stay_length_discount_rate(nights: int) -> Decimal:
    """Mutually exclusive length tier: 10% for a week or more, 5% from 3 nights."""
    if nights >= WEEKLY_STAY_NIGHTS:
        return WEEKLY_STAY_DISCOUNT
    if nights >= SHORT_STAY_NIGHTS:
        return SHORT_STAY_DISCOUNT
    return ZERO


def cleaning_fee_from(features: Mapping[str, Any] | None) -> Decimal:
    """Best-effort literal cleaning fee from a unit's custom features.

    Returns zero on a missing key or any value that does not parse as a
    finite decimal in plain notation ("1e3" is rejected).
    """
    if not features or CLEANING_FEE_KEY not in features:
        return ZERO

    raw = features[CLEANING_FEE_KEY]
    if raw is None or isinstance(raw, (bool, dict, list)):
        return ZERO
    text = str(raw).strip()
    # plain number style only: no exponent notation
    if "e" in text.lower():
        return ZERO
    try:
        fee = Decimal(text)
    except (InvalidOperation, ValueError, TypeError):
        logger.debug(
            "cleaning fee ignored",
            extra={"extra_fields": {"cause": "not_numeric"}},
        )
        return ZERO
    if not fee.is_finite():
        return ZERO
    return fee


def calculate_discounts(unit: Unit, base_amount: Decimal, nights: int) -> Decimal:
    """Length tier plus unit discount, both against base_amount (not compounded)."""
    discount = base_amount * stay_length_discount_rate(nights)
    if unit.discount_percentage > 0:
        discount += base_amount * (unit.discount_percentage / Decimal(100))
    return discount


def calculate_fees(unit: Unit, base_amount: Decimal) -> Decimal:
    return base_amount * SERVICE_FEE_RATE + cleaning_fee_from(unit.custom_features)


def calculate_taxes(taxable_amount: Decimal) -> Decimal:
    return taxable_amount * VAT_RATE


def calculate_stay(
    unit: Unit,
    rules: Iterable[PricingRule],
    check_in: date | datetime,
    check_out: date | datetime,
) -> PriceBreakdown:
    """Price a stay night by night and aggregate it into a breakdown.

    Args:
        unit: The unit being priced.
        rules: The unit's pricing rules (overlaps allowed).
        check_in: First night (inclusive).
        check_out: Departure day (exclusive).

    Returns:
        PriceBreakdown with exact, unrounded amounts.

    Raises:
        InvalidRangeError: If check_out <= check_in.
    """
    if _comparable(check_out, check_in) <= _comparable(check_in, check_out):
        raise InvalidRangeError(check_in, check_out)

    rules = list(rules)
    breakdown: list[PriceBreakdownEntry] = []
    base_amount = ZERO

    # --- Pricing per night ---
    current = as_day(check_in)
    last = as_day(check_out)
    while current < last:
        nightly = resolve_nightly_price(unit, rules, current)
        breakdown.append(
            PriceBreakdownEntry(date=current, amount=nightly.amount, reason=nightly.reason)
        )
        base_amount += nightly.amount
        current += timedelta(days=1)

    nights = len(breakdown)

    discounts = calculate_discounts(unit, base_amount, nights)
    fees = calculate_fees(unit, base_amount)
    taxable_amount = base_amount + fees - discounts
    taxes = calculate_taxes(taxable_amount)
    total_amount = base_amount + fees + taxes - discounts

    logger.debug(
        "stay priced",
        extra={
            "extra_fields": {
                "unit_id": unit.id,
                "checkin": as_day(check_in).isoformat(),
                "checkout": last.isoformat(),
                "nights": nights,
                "base_amount": str(base_amount),
                "total_amount": str(total_amount),
            },
        },
    )

    return PriceBreakdown(
        base_amount=base_amount,
        discounts=discounts,
        fees=fees,
        taxes=taxes,
        total_amount=total_amount,
        nights=nights,
        breakdown=breakdown,
    )
