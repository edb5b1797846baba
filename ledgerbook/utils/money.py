"""
Fixed-precision monetary amounts.

An Amount is an integer count of 10^-scale units: Amount(123456, 2) is
1234.56 and Amount(1, 6) is 0.000001. All arithmetic is integer arithmetic,
so sums of posted lines never drift. Decimal strings are the only boundary
representation; floats are refused.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from functools import total_ordering
from typing import Iterable, Union

from ledgerbook.exceptions import InvalidAmount

# Entry amounts and balances
MONEY_SCALE = 2
# Exchange rates
RATE_SCALE = 6

# Amounts are stored as signed 64-bit counts of minor units
MAX_UNITS = 2 ** 63 - 1
MIN_UNITS = -(2 ** 63)
_MAX_DIGITS = len(str(MAX_UNITS))

_AMOUNT_PATTERN = re.compile(r"^([+-]?)([0-9]+)?(?:\.([0-9]+))?$")


@total_ordering
@dataclass(frozen=True)
class Amount:
    units: int
    scale: int = MONEY_SCALE

    @classmethod
    def zero(cls, scale: int = MONEY_SCALE) -> "Amount":
        return cls(0, scale)

    @classmethod
    def from_string(cls, text: str, scale: int = MONEY_SCALE) -> "Amount":
        """
        Parse a decimal string such as "1000", "-12.5" or "0.10".

        Fractional digits beyond ``scale`` are accepted only when they are
        zeros ("1.500" at scale 2); anything that would need rounding is
        rejected rather than silently rounded.

        Raises:
            InvalidAmount: for empty, malformed or over-precise input
        """
        if not isinstance(text, str):
            raise InvalidAmount(f"Expected a decimal string, got {type(text).__name__}",
                                details={"value": repr(text)})
        match = _AMOUNT_PATTERN.match(text.strip())
        if not match or (match.group(2) is None and match.group(3) is None):
            raise InvalidAmount(f"'{text}' is not a valid decimal amount", details={"value": text})

        sign, whole, fraction = match.group(1), (match.group(2) or "").lstrip("0") or "0", match.group(3) or ""
        if len(whole) > _MAX_DIGITS:
            raise InvalidAmount(f"'{text}' is outside the supported range",
                                details={"value": text, "max_units": MAX_UNITS})
        if len(fraction) > scale:
            if fraction[scale:].strip("0"):
                raise InvalidAmount(
                    f"'{text}' has more than {scale} decimal places",
                    details={"value": text, "max_decimal_places": scale},
                )
            fraction = fraction[:scale]

        units = int(whole) * 10 ** scale + int(fraction.ljust(scale, "0") or "0")
        return cls(-units if sign == "-" else units, scale).check_range(text)

    @classmethod
    def coerce(cls, value: Union["Amount", str, int, Decimal], scale: int = MONEY_SCALE) -> "Amount":
        """Build an Amount from another Amount, a decimal string, an int or a Decimal."""
        if isinstance(value, Amount):
            return value.rescale(scale)
        if isinstance(value, str):
            return cls.from_string(value, scale)
        if isinstance(value, bool) or isinstance(value, float):
            raise InvalidAmount(f"{type(value).__name__} values are not accepted as amounts",
                                details={"value": repr(value)})
        if isinstance(value, int):
            return cls(value * 10 ** scale, scale).check_range(value)
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise InvalidAmount(f"'{value}' is not a finite amount", details={"value": str(value)})
            return cls.from_string(format(value, "f"), scale)
        raise InvalidAmount(f"Cannot convert {type(value).__name__} to an amount", details={"value": repr(value)})

    def check_range(self, value=None) -> "Amount":
        """
        Return self if it fits a signed 64-bit column.

        Raises:
            InvalidAmount: naming ``value`` (the amount itself by default)
        """
        if not MIN_UNITS <= self.units <= MAX_UNITS:
            shown = self.to_fixed_string() if value is None else str(value)
            raise InvalidAmount(f"'{shown}' is outside the supported range",
                                details={"value": shown, "max_units": MAX_UNITS})
        return self

    def _check_scale(self, other: "Amount") -> None:
        if not isinstance(other, Amount):
            raise TypeError(f"Expected Amount, got {type(other).__name__}")
        if other.scale != self.scale:
            raise ValueError(f"Cannot combine amounts of scale {self.scale} and {other.scale}")

    def add(self, other: "Amount") -> "Amount":
        self._check_scale(other)
        return Amount(self.units + other.units, self.scale)

    def subtract(self, other: "Amount") -> "Amount":
        self._check_scale(other)
        return Amount(self.units - other.units, self.scale)

    __add__ = add
    __sub__ = subtract

    def __neg__(self) -> "Amount":
        return Amount(-self.units, self.scale)

    def __abs__(self) -> "Amount":
        return Amount(abs(self.units), self.scale)

    def __lt__(self, other: "Amount") -> bool:
        self._check_scale(other)
        return self.units < other.units

    def is_zero(self) -> bool:
        return self.units == 0

    def is_negative(self) -> bool:
        return self.units < 0

    def is_positive(self) -> bool:
        return self.units > 0

    def rescale(self, scale: int) -> "Amount":
        """Change the scale without losing precision; refuses conversions that would round."""
        if scale == self.scale:
            return self
        if scale > self.scale:
            return Amount(self.units * 10 ** (scale - self.scale), scale)
        factor = 10 ** (self.scale - scale)
        if self.units % factor:
            raise ValueError(f"{self} cannot be represented with {scale} decimal places")
        return Amount(self.units // factor, scale)

    def within(self, other: "Amount", tolerance: "Amount") -> bool:
        """True when the two amounts differ by at most ``tolerance``."""
        return abs(self - other) <= tolerance.rescale(self.scale)

    def to_decimal(self) -> Decimal:
        return Decimal(self.units).scaleb(-self.scale)

    def to_fixed_string(self, scale: int = None) -> str:
        """
        Format with exactly ``scale`` decimal places (the amount's own scale by default).

        Formatting with fewer places than the amount carries rounds half away
        from zero; it is for display only and never feeds back into arithmetic.
        """
        scale = self.scale if scale is None else scale
        units = abs(self.units)
        if scale >= self.scale:
            units *= 10 ** (scale - self.scale)
        else:
            factor = 10 ** (self.scale - scale)
            units, remainder = divmod(units, factor)
            if remainder * 2 >= factor:
                units += 1
        sign = "-" if self.units < 0 and units else ""
        whole, fraction = divmod(units, 10 ** scale)
        if scale == 0:
            return f"{sign}{whole}"
        return f"{sign}{whole}.{fraction:0{scale}d}"

    def __str__(self) -> str:
        return self.to_fixed_string()

    def __repr__(self) -> str:
        return f"Amount('{self.to_fixed_string()}')"


# Largest imbalance tolerated when comparing against figures computed with floats upstream
LEGACY_TOLERANCE = Amount(1, MONEY_SCALE)


def sum_amounts(amounts: Iterable[Amount], scale: int = MONEY_SCALE) -> Amount:
    total = Amount.zero(scale)
    for amount in amounts:
        total = total + amount
    return total
