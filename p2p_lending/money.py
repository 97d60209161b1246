"""Exact currency amounts held as integer counts of minor units.

An :class:`Amount` never touches binary floating point. Values enter as
decimal strings, ``Decimal`` or whole-unit integers, are stored as an
integer number of minor units (satoshis for BTC), and leave as ``Decimal``
or a fixed-precision string. Rate multiplication is carried out with
``fractions.Fraction`` and rounded once, half-up, to the minor unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Iterable

from p2p_lending.exceptions import (
    InvalidAmountError,
    InvalidFormatError,
    NegativeResultError,
)


@dataclass(frozen=True)
class CurrencyUnit:
    """A currency and the number of decimal places of its minor unit."""

    code: str
    decimal_places: int

    @property
    def scale(self) -> int:
        """Minor units per whole unit (``10 ** decimal_places``)."""
        return 10**self.decimal_places

    @property
    def quantum(self) -> Decimal:
        """The minor unit expressed as a decimal (``0.00000001`` for BTC)."""
        return Decimal(1).scaleb(-self.decimal_places)


BTC = CurrencyUnit("BTC", 8)


def _round_half_up(value: Fraction) -> int:
    """Round to the nearest integer, ties away from zero."""
    magnitude = abs(value)
    rounded = int(magnitude + Fraction(1, 2))
    return rounded if value >= 0 else -rounded


def _to_fraction(value: Decimal | int | str | Fraction, what: str) -> Fraction:
    if isinstance(value, float):
        raise InvalidAmountError(f"{what} must not be a float, got {value!r}")
    try:
        return Fraction(value)
    except (ValueError, TypeError) as e:
        raise InvalidFormatError(f"Invalid {what}: {value!r}") from e


@dataclass(frozen=True)
class Amount:
    """An exact, immutable money value.

    Parameters
    ----------
    units : int
        Count of minor units. Negative only for signed deltas.
    unit : CurrencyUnit
        Currency the amount is denominated in (default BTC).
    """

    units: int
    unit: CurrencyUnit = BTC

    def __post_init__(self) -> None:
        if isinstance(self.units, bool) or not isinstance(self.units, int):
            raise InvalidAmountError(
                f"Amount must be built from an integer count of minor units, got {self.units!r}"
            )

    # Construction

    @classmethod
    def zero(cls, unit: CurrencyUnit = BTC) -> Amount:
        return cls(0, unit)

    @classmethod
    def minor(cls, unit: CurrencyUnit = BTC) -> Amount:
        """The smallest representable positive amount."""
        return cls(1, unit)

    @classmethod
    def parse(
        cls,
        text: str,
        unit: CurrencyUnit = BTC,
        allow_negative: bool = False,
    ) -> Amount:
        """Parse a decimal string such as ``"0.53"`` or ``"1.06000000"``.

        Raises
        ------
        InvalidFormatError
            If ``text`` is not a finite decimal number or carries more
            fractional digits than ``unit`` supports.
        InvalidAmountError
            If the value is negative and ``allow_negative`` is false.
        """
        if not isinstance(text, str):
            raise InvalidFormatError(f"Expected a decimal string, got {type(text).__name__}")
        if "_" in text:
            raise InvalidFormatError(f"Digit separators are not allowed: {text!r}")
        try:
            value = Decimal(text.strip())
        except InvalidOperation as e:
            raise InvalidFormatError(f"Not a valid decimal number: {text!r}") from e
        if not value.is_finite():
            raise InvalidFormatError(f"Not a finite decimal number: {text!r}")
        exponent = value.as_tuple().exponent
        if isinstance(exponent, int) and -exponent > unit.decimal_places:
            raise InvalidFormatError(
                f"{text!r} has more than {unit.decimal_places} fractional digits"
            )
        return cls.from_decimal(value, unit, allow_negative=allow_negative)

    @classmethod
    def from_decimal(
        cls,
        value: Decimal,
        unit: CurrencyUnit = BTC,
        allow_negative: bool = False,
    ) -> Amount:
        """Build an amount from a ``Decimal`` that is an exact multiple of the minor unit."""
        if not isinstance(value, Decimal):
            raise InvalidAmountError(f"Expected Decimal, got {type(value).__name__}")
        if not value.is_finite():
            raise InvalidFormatError(f"Not a finite decimal number: {value!r}")
        scaled = Fraction(value) * unit.scale
        if scaled.denominator != 1:
            raise InvalidFormatError(
                f"{value} is not a whole number of {unit.code} minor units"
            )
        units = int(scaled)
        if units < 0 and not allow_negative:
            raise InvalidAmountError(f"Amount must not be negative, got {value}")
        return cls(units, unit)

    @classmethod
    def coerce(
        cls,
        value: Amount | Decimal | str | int,
        unit: CurrencyUnit = BTC,
    ) -> Amount:
        """Accept the boundary representations of a non-negative amount.

        Integers are whole currency units. Floats are rejected.
        """
        if isinstance(value, Amount):
            if value.unit != unit:
                raise InvalidAmountError(
                    f"Expected an amount in {unit.code}, got {value.unit.code}"
                )
            if value.is_negative():
                raise InvalidAmountError(f"Amount must not be negative, got {value}")
            return value
        if isinstance(value, str):
            return cls.parse(value, unit)
        if isinstance(value, Decimal):
            return cls.from_decimal(value, unit)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls.from_decimal(Decimal(value), unit)
        raise InvalidAmountError(
            f"Unsupported amount type {type(value).__name__}; use a decimal string or Decimal"
        )

    # Arithmetic

    def _check_unit(self, other: Amount) -> None:
        if not isinstance(other, Amount):
            raise InvalidAmountError(f"Expected Amount, got {type(other).__name__}")
        if other.unit != self.unit:
            raise InvalidAmountError(
                f"Cannot combine {self.unit.code} with {other.unit.code}"
            )

    def add(self, other: Amount) -> Amount:
        self._check_unit(other)
        return Amount(self.units + other.units, self.unit)

    def subtract(self, other: Amount, allow_negative: bool = False) -> Amount:
        """Return ``self - other``.

        Raises
        ------
        NegativeResultError
            If the result is negative and ``allow_negative`` is false.
        """
        self._check_unit(other)
        result = self.units - other.units
        if result < 0 and not allow_negative:
            raise NegativeResultError(f"{self} - {other} would be negative")
        return Amount(result, self.unit)

    def multiply_by_rate(
        self,
        percent: Decimal | int | str | Fraction,
        period_fraction: Decimal | int | str | Fraction = 1,
    ) -> Amount:
        """Return ``self * percent / 100 * period_fraction`` rounded half-up to the minor unit."""
        rate = _to_fraction(percent, "rate") / 100
        period = _to_fraction(period_fraction, "period fraction")
        return Amount(_round_half_up(self.units * rate * period), self.unit)

    def negate(self) -> Amount:
        return Amount(-self.units, self.unit)

    # Comparison

    def compare(self, other: Amount) -> int:
        """Return -1, 0 or 1 as ``self`` is less than, equal to or greater than ``other``."""
        self._check_unit(other)
        return (self.units > other.units) - (self.units < other.units)

    def __lt__(self, other: Amount) -> bool:
        return self.compare(other) < 0

    def __le__(self, other: Amount) -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: Amount) -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: Amount) -> bool:
        return self.compare(other) >= 0

    def is_zero(self) -> bool:
        return self.units == 0

    def is_positive(self) -> bool:
        return self.units > 0

    def is_negative(self) -> bool:
        return self.units < 0

    # Boundary representations

    def to_decimal(self) -> Decimal:
        return Decimal(self.units).scaleb(-self.unit.decimal_places)

    def __str__(self) -> str:
        return format(self.to_decimal(), "f")


def sum_amounts(amounts: Iterable[Amount], unit: CurrencyUnit = BTC) -> Amount:
    """Sum amounts of one currency, starting from zero."""
    total = Amount.zero(unit)
    for amount in amounts:
        total = total.add(amount)
    return total


def format_amount(amount: Amount) -> str:
    """Format for display, e.g. ``"1.06000000 BTC"``."""
    return f"{amount} {amount.unit.code}"
