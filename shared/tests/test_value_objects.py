"""Tests for Money and DateRange."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from shared.domain.value_objects import DateRange, Money


class TestMoney:
    def test_amount_is_converted_to_decimal(self):
        assert Money("10.5").amount == Decimal("10.5")
        assert Money(10).currency == "PHP"

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            Money("-1")

    def test_unsupported_currency(self):
        with pytest.raises(ValueError):
            Money("1", "EUR")

    def test_down_payment_rounds_half_up_to_cents(self):
        assert (Money("1234.5") * Decimal("0.2")).rounded().amount == Decimal("246.90")
        assert (Money("0.125") * 1).rounded().amount == Decimal("0.13")

    def test_cents(self):
        assert Money("500.25").cents == 50025

    def test_mixing_currencies(self):
        with pytest.raises(ValueError):
            Money("1", "PHP") + Money("1", "USD")


class TestDateRange:
    def test_same_day_rental_is_one_day(self):
        assert len(DateRange(date(2026, 3, 1), date(2026, 3, 1))) == 1

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            DateRange(date(2026, 3, 2), date(2026, 3, 1))

    def test_overlap_is_inclusive(self):
        first = DateRange.from_iso("2026-03-01", "2026-03-03")

        assert first.overlaps_with(DateRange.from_iso("2026-03-03", "2026-03-05"))
        assert not first.overlaps_with(DateRange.from_iso("2026-03-04", "2026-03-05"))

    def test_str(self):
        assert str(DateRange.from_iso("2026-03-01", "2026-03-03")) == "2026-03-01 to 2026-03-03"
