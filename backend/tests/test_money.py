"""
test_money.py — Unit tests for the shared money helpers.

Tests cover:
  - Decimal coercion (floats via their repr) and half-up rounding
  - VAT split for inclusive and exclusive amounts
  - Proportional allocation and last-line remainder absorption
  - Currency formatting for symbol-before, symbol-after and zero-decimal codes
"""

from decimal import Decimal

import pytest

from makercalc.services.money import (
    allocate_proportionally,
    format_currency,
    quantize_money,
    remainder_index,
    gross_from_net,
    net_from_gross,
    safe_ratio,
    settle_remainder,
    split_vat,
    to_decimal,
)


class TestRounding:

    def test_float_goes_through_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value,expected", [
        ("2.345", "2.35"),
        ("2.344", "2.34"),
        ("-2.345", "-2.35"),
        (1, "1.00"),
    ])
    def test_half_up(self, value, expected):
        assert quantize_money(value) == Decimal(expected)

    def test_safe_ratio_zero_denominator(self):
        assert safe_ratio(Decimal("5"), Decimal("0")) == Decimal("0")


class TestVatSplit:

    def test_inclusive(self):
        net, gross = split_vat(Decimal("120"), Decimal("20"), True)
        assert gross == Decimal("120")
        assert net == Decimal("100")

    def test_exclusive(self):
        net, gross = split_vat(Decimal("100"), Decimal("20"), False)
        assert net == Decimal("100")
        assert gross == Decimal("120")

    def test_zero_rate(self):
        assert split_vat(50, 0, True) == (Decimal("50"), Decimal("50"))


class TestVatRoundTrip:

    _RATES = [0, 7, 17, 19, "8.5", 25]
    _AMOUNTS = ["33.33", "0.01", "19.99", "1234.56", "0.99"]

    @pytest.mark.parametrize("rate", _RATES)
    @pytest.mark.parametrize("amount", _AMOUNTS)
    def test_net_to_gross_and_back(self, amount, rate):
        net = Decimal(amount)
        gross = quantize_money(gross_from_net(net, rate))
        back = quantize_money(net_from_gross(gross, rate))
        assert abs(back - net) <= Decimal("0.01")

    @pytest.mark.parametrize("rate", _RATES)
    @pytest.mark.parametrize("amount", _AMOUNTS)
    def test_gross_to_net_and_back(self, amount, rate):
        gross = Decimal(amount)
        net, _ = split_vat(gross, rate, True)
        _, regross = split_vat(quantize_money(net), rate, False)
        assert abs(quantize_money(regross) - gross) <= Decimal("0.01")

    def test_awkward_amount_at_17(self):
        net, gross = split_vat(Decimal("33.33"), 17, False)
        assert quantize_money(gross) == Decimal("39.00")
        assert quantize_money(net_from_gross(quantize_money(gross), 17)) == Decimal("33.33")


class TestAllocation:

    def test_even_split_remainder_on_last(self):
        shares = allocate_proportionally(Decimal("10"), [10, 10, 10])
        assert shares == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]

    def test_shares_sum_to_total(self):
        weights = [Decimal("19.99"), Decimal("7.01"), Decimal("33.33"), Decimal("0.67")]
        shares = allocate_proportionally(Decimal("12.34"), weights)
        assert sum(shares) == Decimal("12.34")

    def test_trailing_zero_weight_skipped(self):
        shares = allocate_proportionally(Decimal("10"), [30, 30, 30, 0])
        assert shares[-1] == Decimal("0.00")
        assert shares[2] == Decimal("3.34")
        assert sum(shares) == Decimal("10.00")

    def test_all_zero_weights(self):
        assert allocate_proportionally(Decimal("5"), [0, 0]) == [Decimal("0.00"), Decimal("0.00")]

    def test_caps_keep_absorber_within_its_line(self):
        weights = [Decimal("0.01")] * 10
        shares = allocate_proportionally(Decimal("0.04"), weights, caps=weights)
        assert sum(shares) == Decimal("0.04")
        assert all(Decimal("0") <= s <= Decimal("0.01") for s in shares)
        assert shares == [Decimal("0.00")] * 6 + [Decimal("0.01")] * 4

    def test_settle_shortfall_taken_from_earlier_lines(self):
        shares = settle_remainder([Decimal("0.03"), Decimal("0")], Decimal("0.02"), 1)
        assert shares == [Decimal("0.02"), Decimal("0.00")]

    def test_remainder_index(self):
        assert remainder_index([1, 2, 0, 0]) == 1
        assert remainder_index([]) == -1


class TestFormatCurrency:

    @pytest.mark.parametrize("amount,code,expected", [
        (Decimal("1234.5"), "USD", "$1,234.50"),
        (Decimal("1234.5"), "EUR", "1.234,50 €"),
        (Decimal("1234.5"), "JPY", "¥1,235"),
        (Decimal("1234567.891"), "GBP", "£1,234,567.89"),
        (Decimal("-5"), "USD", "-$5.00"),
        (Decimal("0"), "USD", "$0.00"),
        (Decimal("99.9"), "NIS", "₪99.90"),
        (Decimal("1000"), "XYZ", "XYZ 1,000.00"),
    ])
    def test_formats(self, amount, code, expected):
        assert format_currency(amount, code) == expected
