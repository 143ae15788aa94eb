"""Shared pytest fixtures for stayquote tests."""
import sys
sys.dont_write_bytecode = True

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from stayquote.domain.models import Booking, BookingStatus, PricingRule, Unit  # noqa: E402


@pytest.fixture
def unit():
    """Plain unit: base 100, no discount, no custom features."""
    return Unit(id="unit-1", base_price=Decimal("100"), max_capacity=4)


@pytest.fixture
def make_rule():
    def _make(start, end, price, *, unit_id="unit-1", price_type=None, description=None):
        return PricingRule(
            unit_id=unit_id,
            start_date=start,
            end_date=end,
            price_amount=Decimal(str(price)),
            price_type=price_type,
            description=description,
        )

    return _make


@pytest.fixture
def make_booking():
    counter = iter(range(1, 1000))

    def _make(check_in, check_out, *, unit_id="unit-1", status=BookingStatus.CONFIRMED):
        return Booking(
            id=f"bk-{next(counter)}",
            unit_id=unit_id,
            check_in=check_in,
            check_out=check_out,
            status=status,
        )

    return _make

