"""Signed 80.48 fixed-point numbers (`I80F48`).

Values are immutable and backed by a plain Python int holding the value scaled
by ``2**48``. The representable range is the signed 128-bit range of the
settlement layer; leaving it raises `FixedPointOverflowError`.

Rounding is explicit:
- ``*`` and ``/`` truncate toward zero on the scaled result,
- ``floor()`` / ``ceil()`` round toward -inf / +inf,
- decimal conversion (``from_str`` / ``from_decimal``) truncates toward zero.

No float ever enters a scaled value except through ``from_decimal(float)``,
which goes through the float's shortest repr first (config convenience).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from fractions import Fraction
from typing import Union

from .errors import FixedPointOverflowError

FRACTIONS: int = 48
MULTIPLIER: int = 1 << FRACTIONS
MAX_DATA: int = (1 << 127) - 1
MIN_DATA: int = -(1 << 127)

# Enough digits to print any 128-bit scaled value exactly.
_DECIMAL_PREC: int = 100

Number = Union["I80F48", int]


def _trunc_div(num: int, den: int) -> int:
    """Integer division truncated toward zero (``den != 0``)."""
    q = abs(num) // abs(den)
    return q if (num >= 0) == (den > 0) else -q


@dataclass(frozen=True, order=True, repr=False)
class I80F48:
    """Signed fixed-point number with 80 integer and 48 fractional bits."""

    data: int

    def __post_init__(self) -> None:
        if not isinstance(self.data, int) or isinstance(self.data, bool):
            raise TypeError("I80F48.data must be an int")
        if not (MIN_DATA <= self.data <= MAX_DATA):
            raise FixedPointOverflowError(f"I80F48 out of range: data={self.data}")

    # -- Construction ----------------------------------------------------------

    @classmethod
    def from_int(cls, n: int) -> I80F48:
        if not isinstance(n, int) or isinstance(n, bool):
            raise TypeError(f"expected int, got {type(n).__name__}")
        return cls(n << FRACTIONS)

    @classmethod
    def from_fraction(cls, value: Fraction) -> I80F48:
        scaled = value * MULTIPLIER
        return cls(_trunc_div(scaled.numerator, scaled.denominator))

    @classmethod
    def from_str(cls, text: str) -> I80F48:
        """Parse a decimal literal such as ``"-12.5"`` or ``"1e-6"``."""
        return cls.from_fraction(Fraction(text.strip()))

    @classmethod
    def from_decimal(cls, value: int | str | float | Decimal | Fraction | I80F48) -> I80F48:
        if isinstance(value, I80F48):
            return value
        if isinstance(value, bool):
            raise TypeError("bool is not a number")
        if isinstance(value, int):
            return cls.from_int(value)
        if isinstance(value, str):
            return cls.from_str(value)
        if isinstance(value, float):
            return cls.from_str(repr(value))
        if isinstance(value, Decimal):
            return cls.from_fraction(Fraction(value))
        if isinstance(value, Fraction):
            return cls.from_fraction(value)
        raise TypeError(f"cannot convert {type(value).__name__} to I80F48")

    # -- Conversion ------------------------------------------------------------

    def to_fraction(self) -> Fraction:
        return Fraction(self.data, MULTIPLIER)

    def to_decimal(self) -> Decimal:
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PREC
            return Decimal(self.data) / Decimal(MULTIPLIER)

    def to_float(self) -> float:
        """Lossy conversion for display only."""
        return self.data / MULTIPLIER

    def to_fixed(self, places: int = 4) -> str:
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PREC
            quantum = Decimal(1).scaleb(-places)
            return str(self.to_decimal().quantize(quantum, rounding=ROUND_HALF_UP))

    def __str__(self) -> str:
        if not self.data:
            return "0"
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PREC
            return format(self.to_decimal().normalize(), "f")

    def __repr__(self) -> str:
        return f"I80F48({self})"

    # -- Rounding / sign -------------------------------------------------------

    def floor(self) -> I80F48:
        return I80F48((self.data >> FRACTIONS) << FRACTIONS)

    def ceil(self) -> I80F48:
        return I80F48(-((-self.data >> FRACTIONS) << FRACTIONS))

    def is_pos(self) -> bool:
        return self.data > 0

    def is_neg(self) -> bool:
        return self.data < 0

    def is_zero(self) -> bool:
        return self.data == 0

    # -- Arithmetic ------------------------------------------------------------

    @staticmethod
    def _coerce(other: object) -> I80F48 | None:
        if isinstance(other, I80F48):
            return other
        if isinstance(other, int) and not isinstance(other, bool):
            return I80F48.from_int(other)
        return None

    def __add__(self, other: Number) -> I80F48:
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return I80F48(self.data + o.data)

    __radd__ = __add__

    def __sub__(self, other: Number) -> I80F48:
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return I80F48(self.data - o.data)

    def __rsub__(self, other: Number) -> I80F48:
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return I80F48(o.data - self.data)

    def __mul__(self, other: Number) -> I80F48:
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return I80F48(_trunc_div(self.data * o.data, MULTIPLIER))

    __rmul__ = __mul__

    def __truediv__(self, other: Number) -> I80F48:
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        if o.data == 0:
            raise ZeroDivisionError("I80F48 division by zero")
        return I80F48(_trunc_div(self.data << FRACTIONS, o.data))

    def __rtruediv__(self, other: Number) -> I80F48:
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return o / self

    def __neg__(self) -> I80F48:
        return I80F48(-self.data)

    def __abs__(self) -> I80F48:
        return self if self.data >= 0 else I80F48(-self.data)


ZERO_I80F48 = I80F48(0)
ONE_I80F48 = I80F48.from_int(1)
HUNDRED_I80F48 = I80F48.from_int(100)


def pow10(exp: int) -> I80F48:
    """``10**exp`` for any integer exponent (negative exponents truncate)."""
    if exp >= 0:
        return I80F48.from_int(10**exp)
    return ONE_I80F48 / I80F48.from_int(10 ** (-exp))
