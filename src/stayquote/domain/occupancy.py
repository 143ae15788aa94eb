"""Occupancy views over a unit's bookings - free/booked periods and rates.

Pure calculations. Cancelled bookings are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from stayquote.domain.availability import overlaps
from stayquote.domain.models import Booking


@dataclass(frozen=True)
class AvailabilityPeriod:
    start: date
    end: date
    is_available: bool


def _bookings_in_window(
    from_date: date, to_date: date, bookings: Iterable[Booking]
) -> list[Booking]:
    return sorted(
        (
            b
            for b in bookings
            if b.blocks_inventory and overlaps(from_date, to_date, b.check_in, b.check_out)
        ),
        key=lambda b: b.check_in,
    )


def availability_periods(
    from_date: date,
    to_date: date,
    bookings: Iterable[Booking],
) -> list[AvailabilityPeriod]:
    """Split [from_date, to_date) into consecutive free and booked periods.

    Booked periods are clipped to the window. Overlapping bookings are merged
    into a single booked period.
    """
    periods: list[AvailabilityPeriod] = []
    current = from_date

    for b in _bookings_in_window(from_date, to_date, bookings):
        start = max(b.check_in, from_date)
        end = min(b.check_out, to_date)
        if start > current:
            periods.append(AvailabilityPeriod(current, start, True))
        if end <= current:
            continue
        if periods and not periods[-1].is_available and periods[-1].end >= start:
            last = periods.pop()
            periods.append(AvailabilityPeriod(last.start, end, False))
        else:
            periods.append(AvailabilityPeriod(max(start, current), end, False))
        current = end

    if current < to_date:
        periods.append(AvailabilityPeriod(current, to_date, True))

    return periods


def occupancy_rate(
    from_date: date,
    to_date: date,
    bookings: Iterable[Booking],
) -> float:
    """Percentage of nights in [from_date, to_date) covered by bookings."""
    total_nights = (to_date - from_date).days
    if total_nights <= 0:
        return 0.0

    busy_nights = sum(
        (p.end - p.start).days
        for p in availability_periods(from_date, to_date, bookings)
        if not p.is_available
    )
    return round(busy_nights / total_nights * 100, 2)


def property_occupancy_rate(unit_rates: Iterable[float]) -> float:
    """Mean of per-unit occupancy rates; 0 for a property without units."""
    rates = list(unit_rates)
    if not rates:
        return 0.0
    return round(sum(rates) / len(rates), 2)
