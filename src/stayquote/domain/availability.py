"""Unit availability - half-open overlap detection against existing bookings.

Overlap formula:  (new_checkin < existing_checkout) AND (existing_checkin < new_checkout)
Strict inequality allows check-out day == check-in day (touching dates are OK).

Cancelled bookings never generate conflicts. Manual availability blocks with
any status other than "available" conflict the same way bookings do.

Pure functions: the caller fetches bookings and blocks beforehand.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable

from stayquote.domain.models import AvailabilityBlock, Booking, as_day

logger = logging.getLogger(__name__)


def overlaps(
    start: date,
    end: date,
    other_start: date,
    other_end: date,
) -> bool:
    """Half-open interval overlap test."""
    return start < other_end and other_start < end


def find_conflicting_bookings(
    check_in: date | datetime,
    check_out: date | datetime,
    bookings: Iterable[Booking],
) -> list[Booking]:
    """Return non-cancelled bookings overlapping [check_in, check_out).

    Status filtering happens before comparison. Result is ordered by check-in.
    """
    start, end = as_day(check_in), as_day(check_out)
    conflicts = [
        b
        for b in bookings
        if b.blocks_inventory and overlaps(start, end, b.check_in, b.check_out)
    ]
    return sorted(conflicts, key=lambda b: b.check_in)


def is_available(
    unit_id: str,
    check_in: date | datetime,
    check_out: date | datetime,
    active_bookings: Iterable[Booking],
    *,
    blocks: Iterable[AvailabilityBlock] | None = None,
) -> bool:
    """Check whether a unit is free for the half-open range [check_in, check_out).

    Args:
        unit_id: Unit identifier. Bookings/blocks of other units are ignored.
        check_in: Desired check-in (inclusive). check_in < check_out is assumed.
        check_out: Desired check-out (exclusive / departure day).
        active_bookings: The unit's bookings. Cancelled ones are filtered here
            even if the caller already did so.
        blocks: Optional manual availability overrides.

    Returns:
        True when nothing overlaps the requested range.
    """
    start, end = as_day(check_in), as_day(check_out)

    own_bookings = [b for b in active_bookings if b.unit_id == unit_id]
    conflicts = find_conflicting_bookings(start, end, own_bookings)
    if conflicts:
        first = conflicts[0]
        logger.info(
            "unit booking conflict",
            extra={
                "extra_fields": {
                    "unit_id": unit_id,
                    "requested_checkin": start.isoformat(),
                    "requested_checkout": end.isoformat(),
                    "conflicting_booking_id": first.id,
                    "existing_checkin": first.check_in.isoformat(),
                    "existing_checkout": first.check_out.isoformat(),
                    "conflict_count": len(conflicts),
                },
            },
        )
        return False

    for block in blocks or ():
        if block.unit_id != unit_id or not block.blocks_inventory:
            continue
        if overlaps(start, end, block.start_date, block.end_date):
            logger.info(
                "unit availability block conflict",
                extra={
                    "extra_fields": {
                        "unit_id": unit_id,
                        "requested_checkin": start.isoformat(),
                        "requested_checkout": end.isoformat(),
                        "block_start": block.start_date.isoformat(),
                        "block_end": block.end_date.isoformat(),
                        "block_status": block.status,
                    },
                },
            )
            return False

    return True
