"""Engine data model - units, pricing rules, bookings and price breakdowns.

All models are read-only snapshots fetched by the caller. The engine never
mutates them. Money is Decimal, dates are day-granularity.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
from datetime import date, datetime
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


# ── Enums ─────────────────────────────────────────────────


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CHECKED_IN = "CheckedIn"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# ── Helpers ───────────────────────────────────────────────


def as_day(value: date | datetime) -> date:
    """Truncate a datetime to its calendar date; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_custom_features(raw: Any) -> dict[str, Any]:
    """Parse the unit's custom-features bag into a string-keyed map.

    Lenient: blank, malformed or non-object JSON yields an empty map.
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return {str(k): v for k, v in raw.items()}
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.debug(
            "custom features ignored",
            extra={"extra_fields": {"cause": "malformed_json", "length": len(raw)}},
        )
        return {}
    if not isinstance(parsed, dict):
        logger.debug(
            "custom features ignored",
            extra={"extra_fields": {"cause": "not_an_object"}},
        )
        return {}
    return parsed


# ── Pydantic Schemas ─────────────────────────────────────


class Unit(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    base_price: Decimal = Field(ge=0)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    max_capacity: int = Field(default=1, ge=1)
    custom_features: dict[str, Any] = Field(default_factory=dict)

    @field_validator("custom_features", mode="before")
    @classmethod
    def _parse_features(cls, value: Any) -> dict[str, Any]:
        return parse_custom_features(value)


class PricingRule(BaseModel):
    """Date-ranged nightly price override; both ends inclusive."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    start_date: date
    end_date: date
    price_amount: Decimal
    price_type: str | None = None
    description: str | None = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _truncate(cls, value: Any) -> Any:
        return value.date() if isinstance(value, datetime) else value

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class Booking(BaseModel):
    """Existing reservation; check_in included, check_out excluded."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    unit_id: str
    check_in: date
    check_out: date
    status: BookingStatus = BookingStatus.CONFIRMED

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def _truncate(cls, value: Any) -> Any:
        return value.date() if isinstance(value, datetime) else value

    @property
    def blocks_inventory(self) -> bool:
        return self.status != BookingStatus.CANCELLED


class AvailabilityBlock(BaseModel):
    """Manual availability override for a unit (half-open range)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    start_date: date
    end_date: date
    status: str = "blocked"
    reason: str | None = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _truncate(cls, value: Any) -> Any:
        return value.date() if isinstance(value, datetime) else value

    @property
    def blocks_inventory(self) -> bool:
        return self.status.strip().lower() != "available"


class PriceBreakdownEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    amount: Decimal
    reason: str


class PriceBreakdown(BaseModel):
    """Exact stay price. Totals are unrounded until rounded() is called."""

    model_config = ConfigDict(frozen=True)

    base_amount: Decimal
    discounts: Decimal
    fees: Decimal
    taxes: Decimal
    total_amount: Decimal
    nights: int
    breakdown: list[PriceBreakdownEntry] = Field(default_factory=list)

    def rounded(self, places: int = 2) -> PriceBreakdown:
        """Return a copy with the money totals quantized once.

        Breakdown entries keep their exact amounts.
        """
        exponent = Decimal(1).scaleb(-places)

        def q(value: Decimal) -> Decimal:
            return value.quantize(exponent, rounding=ROUND_HALF_EVEN)

        return self.model_copy(
            update={
                "base_amount": q(self.base_amount),
                "discounts": q(self.discounts),
                "fees": q(self.fees),
                "taxes": q(self.taxes),
                "total_amount": q(self.total_amount),
            }
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
