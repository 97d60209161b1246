"""Tests for exact currency amounts."""

from decimal import Decimal
from fractions import Fraction

import pytest

from p2p_lending.exceptions import InvalidAmountError, InvalidFormatError, NegativeResultError
from p2p_lending.money import BTC, Amount, CurrencyUnit, format_amount, sum_amounts


class TestParse:
    """Tests for Amount.parse."""

    def test_parse_whole_and_fractional(self) -> None:
        assert Amount.parse("1").units == 100_000_000
        assert Amount.parse("0.53").units == 53_000_000
        assert Amount.parse("1.06000000").units == 106_000_000

    def test_parse_smallest_unit(self) -> None:
        assert Amount.parse("0.00000001") == Amount.minor()

    def test_parse_strips_whitespace(self) -> None:
        assert Amount.parse("  0.5 ") == Amount(50_000_000)

    def test_parse_too_many_fractional_digits(self) -> None:
        with pytest.raises(InvalidFormatError):
            Amount.parse("0.000000001")

    @pytest.mark.parametrize("text", ["", "abc", "1.2.3", "NaN", "Infinity", "1,5"])
    def test_parse_not_a_number(self, text: str) -> None:
        with pytest.raises(InvalidFormatError):
            Amount.parse(text)

    @pytest.mark.parametrize("text", ["1_000", "0.5_3", "1_0.00000001"])
    def test_parse_rejects_digit_separators(self, text: str) -> None:
        with pytest.raises(InvalidFormatError):
            Amount.parse(text)

    def test_parse_rejects_non_string(self) -> None:
        with pytest.raises(InvalidFormatError):
            Amount.parse(1.5)  # type: ignore[arg-type]

    def test_parse_negative_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            Amount.parse("-0.1")

    def test_parse_negative_delta_allowed(self) -> None:
        assert Amount.parse("-0.1", allow_negative=True).units == -10_000_000

    def test_invalid_format_is_invalid_amount(self) -> None:
        # Callers catching InvalidAmountError also see malformed input
        with pytest.raises(InvalidAmountError):
            Amount.parse("abc")

    def test_parse_other_unit(self) -> None:
        usd = CurrencyUnit("USD", 2)
        amount = Amount.parse("12.34", usd)
        assert amount.units == 1234
        assert str(amount) == "12.34"
        with pytest.raises(InvalidFormatError):
            Amount.parse("12.345", usd)


class TestConstruction:
    """Tests for direct construction and coercion."""

    def test_float_units_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            Amount(1.5)  # type: ignore[arg-type]

    def test_bool_units_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            Amount(True)

    def test_from_decimal(self) -> None:
        assert Amount.from_decimal(Decimal("0.25")).units == 25_000_000

    def test_from_decimal_sub_minor_unit(self) -> None:
        with pytest.raises(InvalidFormatError):
            Amount.from_decimal(Decimal("0.123456789"))

    def test_from_decimal_trailing_zeros_ok(self) -> None:
        assert Amount.from_decimal(Decimal("1.0000000000")).units == 100_000_000

    def test_coerce_accepts_boundary_types(self) -> None:
        expected = Amount(150_000_000)
        assert Amount.coerce("1.5") == expected
        assert Amount.coerce(Decimal("1.5")) == expected
        assert Amount.coerce(expected) is expected
        assert Amount.coerce(2) == Amount(200_000_000)

    def test_coerce_rejects_float(self) -> None:
        with pytest.raises(InvalidAmountError):
            Amount.coerce(1.5)  # type: ignore[arg-type]

    def test_coerce_rejects_other_unit(self) -> None:
        with pytest.raises(InvalidAmountError):
            Amount.coerce(Amount(1, CurrencyUnit("USD", 2)))

    def test_coerce_rejects_negative_amount(self) -> None:
        with pytest.raises(InvalidAmountError):
            Amount.coerce(Amount(-1))

    def test_zero_and_minor(self) -> None:
        assert Amount.zero().is_zero()
        assert Amount.minor().units == 1
        assert Amount.minor().unit == BTC


class TestArithmetic:
    """Tests for add, subtract and rate multiplication."""

    def test_add(self) -> None:
        assert Amount.parse("0.1").add(Amount.parse("0.2")) == Amount.parse("0.3")

    def test_repeated_addition_has_no_drift(self) -> None:
        total = Amount.zero()
        for _ in range(10):
            total = total.add(Amount.parse("0.1"))
        assert total == Amount.parse("1")

    def test_subtract(self) -> None:
        assert Amount.parse("1.06").subtract(Amount.parse("0.53")) == Amount.parse("0.53")

    def test_subtract_to_zero(self) -> None:
        assert Amount.parse("0.5").subtract(Amount.parse("0.5")).is_zero()

    def test_subtract_negative_result(self) -> None:
        with pytest.raises(NegativeResultError):
            Amount.parse("0.5").subtract(Amount.parse("0.50000001"))

    def test_subtract_negative_delta_allowed(self) -> None:
        delta = Amount.parse("0.5").subtract(Amount.parse("0.6"), allow_negative=True)
        assert delta.units == -10_000_000
        assert delta.is_negative()
        assert str(delta) == "-0.10000000"

    def test_mixed_units_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            Amount(1).add(Amount(1, CurrencyUnit("USD", 2)))

    def test_multiply_by_rate(self) -> None:
        interest = Amount.parse("1").multiply_by_rate(Decimal("12"), Fraction(6, 12))
        assert interest == Amount.parse("0.06")

    def test_multiply_by_rate_rounds_half_up(self) -> None:
        # 5 sat * 10% = 0.5 sat -> 1 sat
        assert Amount(5).multiply_by_rate(10) == Amount(1)
        # 4 sat * 10% = 0.4 sat -> 0 sat
        assert Amount(4).multiply_by_rate(10) == Amount(0)

    def test_multiply_by_rate_negative_delta_rounds_away_from_zero(self) -> None:
        assert Amount(-5).multiply_by_rate(10) == Amount(-1)

    def test_multiply_by_rate_accepts_string_fraction(self) -> None:
        assert Amount(300).multiply_by_rate("100", "1/3") == Amount(100)

    def test_multiply_by_rate_rejects_float(self) -> None:
        with pytest.raises(InvalidAmountError):
            Amount(100).multiply_by_rate(1.5)  # type: ignore[arg-type]

    def test_operations_are_pure(self) -> None:
        a = Amount.parse("1")
        b = Amount.parse("0.25")
        a.add(b)
        a.subtract(b)
        a.multiply_by_rate(10)
        assert a == Amount.parse("1")
        assert b == Amount.parse("0.25")


class TestComparison:
    """Tests for compare and ordering."""

    def test_compare(self) -> None:
        small, large = Amount.parse("0.1"), Amount.parse("0.2")
        assert small.compare(large) == -1
        assert large.compare(small) == 1
        assert small.compare(Amount.parse("0.10")) == 0

    def test_rich_comparison(self) -> None:
        small, large = Amount.parse("0.1"), Amount.parse("0.2")
        assert small < large
        assert small <= large
        assert large > small
        assert large >= small
        assert small == Amount.parse("0.1")

    def test_is_zero(self) -> None:
        assert Amount.parse("0").is_zero()
        assert not Amount.minor().is_zero()

    def test_hashable(self) -> None:
        assert len({Amount.parse("0.1"), Amount.parse("0.10")}) == 1


class TestBoundaryRepresentation:
    """Tests for decimal and string output."""

    def test_to_decimal(self) -> None:
        assert Amount.parse("1.06").to_decimal() == Decimal("1.06")

    def test_str_has_full_precision(self) -> None:
        assert str(Amount.parse("1.06")) == "1.06000000"
        assert str(Amount.zero()) == "0.00000000"

    def test_format_amount(self) -> None:
        assert format_amount(Amount.parse("0.53")) == "0.53000000 BTC"

    def test_sum_amounts(self) -> None:
        amounts = [Amount.parse("0.1"), Amount.parse("0.2"), Amount.parse("0.3")]
        assert sum_amounts(amounts) == Amount.parse("0.6")
        assert sum_amounts([]) == Amount.zero()
