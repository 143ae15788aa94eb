"""Nightly price resolution from a unit's date-ranged pricing rules.

For one calendar date:
- applicable rules are those whose inclusive [start_date, end_date] contains it;
- among several applicable rules the highest price_amount wins, regardless of
  range width or recency (business rule, pending product confirmation);
- with no applicable rule the unit's base price applies, labelled "Weekend" on
  Friday/Saturday and "Standard rate" otherwise.

The reason label is descriptive only and never affects totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from stayquote.domain.models import PricingRule, Unit, as_day

SPECIAL_PRICE_REASON = "Special price"
WEEKEND_REASON = "Weekend"
STANDARD_REASON = "Standard rate"

# date.weekday(): Monday == 0
WEEKEND_DAYS = frozenset({4, 5})  # Friday, Saturday


@dataclass(frozen=True)
class NightlyPrice:
    amount: Decimal
    reason: str


def applicable_rules(rules: Iterable[PricingRule], day: date) -> list[PricingRule]:
    """Rules whose inclusive range contains *day*, in input order."""
    return [rule for rule in rules if rule.covers(day)]


def rule_reason(rule: PricingRule) -> str:
    if rule.description:
        return rule.description
    if rule.price_type:
        return rule.price_type
    return SPECIAL_PRICE_REASON


def resolve_nightly_price(
    unit: Unit,
    rules: Iterable[PricingRule],
    day: date | datetime,
) -> NightlyPrice:
    """Resolve the nightly amount and its reason for a single date."""
    day = as_day(day)
    candidates = applicable_rules(rules, day)

    if candidates:
        # max() keeps the first rule on exact ties
        winner = max(candidates, key=lambda rule: rule.price_amount)
        return NightlyPrice(amount=winner.price_amount, reason=rule_reason(winner))

    reason = WEEKEND_REASON if day.weekday() in WEEKEND_DAYS else STANDARD_REASON
    return NightlyPrice(amount=unit.base_price, reason=reason)
