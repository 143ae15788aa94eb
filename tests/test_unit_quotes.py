"""Tests for the unit quote service over an in-memory data source."""

import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from stayquote.domain.models import AvailabilityBlock, BookingStatus, Unit
from stayquote.domain.quote import InvalidRangeError
from stayquote.infra.settings import EngineSettings
from stayquote.services.unit_quotes import (
    AvailabilityBlockSource,
    InMemoryUnitDataSource,
    UnitNotFoundError,
    UnitQuoteService,
)


@pytest.fixture
def source(unit, make_rule, make_booking):
    big = Unit(id="unit-2", base_price=Decimal("250"), max_capacity=8)
    odd = Unit(id="unit-3", base_price=Decimal("33.333"), max_capacity=2)
    return InMemoryUnitDataSource(
        units=[unit, big, odd],
        rules=[make_rule(date(2025, 1, 10), date(2025, 1, 12), 150)],
        bookings=[
            make_booking(date(2025, 1, 1), date(2025, 1, 5)),
            make_booking(date(2025, 1, 6), date(2025, 1, 9), unit_id="unit-2"),
            make_booking(date(2025, 1, 1), date(2025, 1, 20), unit_id="unit-3", status=BookingStatus.CANCELLED),
        ],
        blocks=[
            AvailabilityBlock(unit_id="unit-2", start_date=date(2025, 2, 1), end_date=date(2025, 2, 3)),
        ],
    )


@pytest.fixture
def service(source):
    return UnitQuoteService(source, settings=EngineSettings())


class TestInMemoryUnitDataSource:
    def test_active_bookings_exclude_cancelled(self, source):
        assert source.get_active_bookings("unit-3") == []
        assert len(source.get_active_bookings("unit-1")) == 1

    def test_rules_scoped_to_unit(self, source):
        assert len(source.get_pricing_rules("unit-1")) == 1
        assert source.get_pricing_rules("unit-2") == []


class TestIsAvailable:
    def test_back_to_back(self, service):
        assert service.is_available("unit-1", date(2025, 1, 5), date(2025, 1, 10)) is True

    def test_overlap(self, service):
        assert service.is_available("unit-1", date(2025, 1, 4), date(2025, 1, 6)) is False

    def test_block_from_source_applies(self, service):
        assert service.is_available("unit-2", date(2025, 2, 2), date(2025, 2, 5)) is False

    def test_source_without_blocks_is_supported(self, unit):
        class MinimalSource:
            def get_unit(self, unit_id):
                return unit

            def get_pricing_rules(self, unit_id):
                return []

            def get_active_bookings(self, unit_id):
                return []

        service = UnitQuoteService(MinimalSource(), settings=EngineSettings())

        assert service.is_available("unit-1", date(2025, 1, 5), date(2025, 1, 6)) is True
        assert not isinstance(MinimalSource(), AvailabilityBlockSource)

    def test_in_memory_source_provides_blocks(self, source):
        assert isinstance(source, AvailabilityBlockSource)


class TestQuoteUnit:
    def test_mixed_date_and_datetime_range(self, service):
        quote = service.quote_unit("unit-1", date(2025, 1, 6), datetime(2025, 1, 8, 11, 0))

        assert quote.is_available is True
        assert quote.price.nights == 2
        assert quote.price.total_amount == Decimal("214.20")

    def test_available_unit_gets_rounded_price(self, service):
        quote = service.quote_unit("unit-1", date(2025, 1, 9), date(2025, 1, 13))

        assert quote.is_available is True
        assert quote.currency == "YER"
        assert quote.price.base_amount == Decimal("550.00")
        assert quote.price.nights == 4
        # 550 - 27.5 + 11 = 533.5 taxable -> 26.675 VAT
        assert quote.price.taxes == Decimal("26.68")
        assert quote.price.total_amount == Decimal("560.18")

    def test_unavailable_unit_has_no_price(self, service):
        quote = service.quote_unit("unit-1", date(2025, 1, 3), date(2025, 1, 7))

        assert quote.is_available is False
        assert quote.price is None
        assert quote.to_dict()["price"] is None

    def test_rounding_places_from_settings(self, source):
        service = UnitQuoteService(source, settings=EngineSettings(rounding_places=3))

        quote = service.quote_unit("unit-3", date(2025, 1, 6), date(2025, 1, 7))

        assert quote.price.total_amount == Decimal("35.700")

    def test_unknown_unit_raises(self, service):
        with pytest.raises(UnitNotFoundError) as exc_info:
            service.quote_unit("nope", date(2025, 1, 5), date(2025, 1, 6))

        assert exc_info.value.unit_id == "nope"

    def test_invalid_range_raises(self, service):
        with pytest.raises(InvalidRangeError):
            service.quote_unit("unit-2", date(2025, 3, 5), date(2025, 3, 5))

    def test_to_dict(self, service):
        data = service.quote_unit("unit-1", date(2025, 1, 6), date(2025, 1, 8)).to_dict()

        assert data["unit_id"] == "unit-1"
        assert data["check_in"] == "2025-01-06"
        assert data["price"]["total_amount"] == "214.20"


class TestCalculateStay:
    def test_returns_exact_unrounded_breakdown(self, service, source):
        unit = source.get_unit("unit-3")

        price = service.calculate_stay(unit, [], date(2025, 1, 6), date(2025, 1, 7))

        assert price.total_amount == Decimal("35.699643")
        assert sum(e.amount for e in price.breakdown) == price.base_amount


class TestBatchOperations:
    def test_check_units_availability(self, service):
        result = service.check_units_availability(
            ["unit-1", "unit-2", "unit-3"], date(2025, 1, 4), date(2025, 1, 7)
        )

        assert result == {"unit-1": False, "unit-2": False, "unit-3": True}

    def test_available_units_respects_capacity(self, service):
        ids = ["unit-1", "unit-2", "unit-3", "missing"]

        assert service.available_units(ids, date(2025, 1, 10), date(2025, 1, 12), 3) == [
            "unit-1",
            "unit-2",
        ]
        assert service.available_units(ids, date(2025, 1, 10), date(2025, 1, 12), 5) == ["unit-2"]

    def test_quote_units_matches_sequential_quotes(self, service):
        ids = ["unit-1", "unit-2", "unit-3"]

        batch = service.quote_units(ids, date(2025, 1, 9), date(2025, 1, 13))

        assert list(batch) == ids
        for uid in ids:
            assert batch[uid] == service.quote_unit(uid, date(2025, 1, 9), date(2025, 1, 13))

    def test_quote_units_empty(self, service):
        assert service.quote_units([], date(2025, 1, 9), date(2025, 1, 13)) == {}


class TestServiceLogging:
    def test_log_level_from_settings_is_applied(self, source):
        service_logger = logging.getLogger("stayquote.services.unit_quotes")

        UnitQuoteService(source, settings=EngineSettings(log_level="DEBUG"))
        try:
            assert service_logger.level == logging.DEBUG
        finally:
            UnitQuoteService(source, settings=EngineSettings())

        assert service_logger.level == logging.INFO
