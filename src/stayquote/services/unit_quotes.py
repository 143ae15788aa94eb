"""Unit quote service - composes availability and stay pricing for callers.

Rules:
- Data is fetched through a UnitDataSource before any engine call.
- Availability is checked first; a price is only computed for a free unit.
- Amounts are exact until the single output rounding (settings.rounding_places).
- Batch quotes run in a thread pool; engine calls share no mutable state.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Protocol, runtime_checkable

from stayquote.domain.availability import is_available
from stayquote.domain.models import (
    AvailabilityBlock,
    Booking,
    PriceBreakdown,
    PricingRule,
    Unit,
    as_day,
)
from stayquote.domain.quote import calculate_stay
from stayquote.infra.settings import EngineSettings, load_settings
from stayquote.observability.correlation import bind_context, correlation_scope
from stayquote.observability.logging import configure_logging, get_logger

logger = get_logger(__name__)


# ── Exceptions ───────────────────────────────────────────


class UnitNotFoundError(Exception):
    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Unit '{unit_id}' not found")


# ── Data source contract ─────────────────────────────────


class UnitDataSource(Protocol):
    """Read-side collaborator that fetches engine inputs."""

    def get_unit(self, unit_id: str) -> Unit | None:
        ...

    def get_pricing_rules(self, unit_id: str) -> list[PricingRule]:
        ...

    def get_active_bookings(self, unit_id: str) -> list[Booking]:
        """Non-cancelled bookings; cancelled ones are filtered again anyway."""
        ...


@runtime_checkable
class AvailabilityBlockSource(Protocol):
    """Optional capability: manual availability overrides per unit."""

    def get_availability_blocks(self, unit_id: str) -> list[AvailabilityBlock]:
        ...


class InMemoryUnitDataSource:
    """Dict-backed UnitDataSource for tests and batch jobs."""

    def __init__(
        self,
        units: Iterable[Unit] = (),
        rules: Iterable[PricingRule] = (),
        bookings: Iterable[Booking] = (),
        blocks: Iterable[AvailabilityBlock] = (),
    ) -> None:
        self._units = {u.id: u for u in units}
        self._rules = list(rules)
        self._bookings = list(bookings)
        self._blocks = list(blocks)

    def get_unit(self, unit_id: str) -> Unit | None:
        return self._units.get(unit_id)

    def get_pricing_rules(self, unit_id: str) -> list[PricingRule]:
        return [r for r in self._rules if r.unit_id == unit_id]

    def get_active_bookings(self, unit_id: str) -> list[Booking]:
        return [b for b in self._bookings if b.unit_id == unit_id and b.blocks_inventory]

    def get_availability_blocks(self, unit_id: str) -> list[AvailabilityBlock]:
        return [b for b in self._blocks if b.unit_id == unit_id]


# ── Results ──────────────────────────────────────────────


@dataclass(frozen=True)
class UnitQuote:
    unit_id: str
    check_in: date
    check_out: date
    is_available: bool
    currency: str
    price: PriceBreakdown | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "is_available": self.is_available,
            "currency": self.currency,
            "price": self.price.to_dict() if self.price is not None else None,
        }


# ── Service ──────────────────────────────────────────────


class UnitQuoteService:
    """Caller-facing entry points over a UnitDataSource."""

    def __init__(
        self,
        source: UnitDataSource,
        settings: EngineSettings | None = None,
    ) -> None:
        self._source = source
        self._settings = settings or load_settings()
        configure_logging(self._settings)

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def _get_unit(self, unit_id: str) -> Unit:
        unit = self._source.get_unit(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)
        return unit

    def _get_blocks(self, unit_id: str) -> list[AvailabilityBlock]:
        if isinstance(self._source, AvailabilityBlockSource):
            return list(self._source.get_availability_blocks(unit_id))
        return []

    def is_available(
        self,
        unit_id: str,
        check_in: date | datetime,
        check_out: date | datetime,
    ) -> bool:
        return is_available(
            unit_id,
            check_in,
            check_out,
            self._source.get_active_bookings(unit_id),
            blocks=self._get_blocks(unit_id),
        )

    def calculate_stay(
        self,
        unit: Unit,
        rules: Iterable[PricingRule],
        check_in: date | datetime,
        check_out: date | datetime,
    ) -> PriceBreakdown:
        """Exact (unrounded) price breakdown; see domain.quote.calculate_stay."""
        return calculate_stay(unit, rules, check_in, check_out)

    def quote_unit(
        self,
        unit_id: str,
        check_in: date | datetime,
        check_out: date | datetime,
    ) -> UnitQuote:
        """Availability plus, when free, the rounded stay price.

        Raises:
            UnitNotFoundError: The data source has no such unit.
            InvalidRangeError: check_out <= check_in (only reached when available).
        """
        with correlation_scope():
            unit = self._get_unit(unit_id)
            available = self.is_available(unit_id, check_in, check_out)

            price = None
            if available:
                rules = self._source.get_pricing_rules(unit_id)
                price = self.calculate_stay(unit, rules, check_in, check_out).rounded(
                    self._settings.rounding_places
                )

            logger.info(
                "unit quoted",
                extra={
                    "extra_fields": {
                        "unit_id": unit_id,
                        "checkin": as_day(check_in).isoformat(),
                        "checkout": as_day(check_out).isoformat(),
                        "is_available": available,
                        "nights": price.nights if price else None,
                        "total_amount": str(price.total_amount) if price else None,
                        "currency": self._settings.currency,
                    },
                },
            )

        return UnitQuote(
            unit_id=unit_id,
            check_in=as_day(check_in),
            check_out=as_day(check_out),
            is_available=available,
            currency=self._settings.currency,
            price=price,
        )

    def check_units_availability(
        self,
        unit_ids: Iterable[str],
        check_in: date | datetime,
        check_out: date | datetime,
    ) -> dict[str, bool]:
        return {uid: self.is_available(uid, check_in, check_out) for uid in unit_ids}

    def available_units(
        self,
        unit_ids: Iterable[str],
        check_in: date | datetime,
        check_out: date | datetime,
        guest_count: int,
    ) -> list[str]:
        """Ids of units that are free and can host *guest_count* guests.

        Unknown unit ids are skipped.
        """
        result: list[str] = []
        for uid in unit_ids:
            unit = self._source.get_unit(uid)
            if unit is None or unit.max_capacity < guest_count:
                continue
            if self.is_available(uid, check_in, check_out):
                result.append(uid)
        return result

    def quote_units(
        self,
        unit_ids: Iterable[str],
        check_in: date | datetime,
        check_out: date | datetime,
    ) -> dict[str, UnitQuote]:
        """Quote many units concurrently. Order of the result follows unit_ids."""
        ids = list(dict.fromkeys(unit_ids))
        if not ids:
            return {}

        with correlation_scope():
            workers = min(self._settings.quote_workers, len(ids))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {
                    uid: pool.submit(
                        bind_context(self.quote_unit), uid, check_in, check_out
                    )
                    for uid in ids
                }
                return {uid: fut.result() for uid, fut in futures.items()}
