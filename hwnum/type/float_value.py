# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Arbitrary-width floating-point value."""

from dataclasses import dataclass
from fractions import Fraction
from typing import Self

from myhdl import intbv

from .errors import InfeasibleConversionError, WidthMismatchError
from .fixed_type import FixedFormat, FixedPointValue
from .float_type import FloatFormat, parts_to_float_binary
from .rounding import RoundingMode
from .utils import bits_of, div_sticky, fits_unsigned, format_bits

# extra quotient bits below the target precision: guard, round, and a spare
_DIVIDE_GUARD_BITS = 3


@dataclass(frozen=True, eq=False)
class FloatingPointValue:
    """Immutable floating-point bit pattern with its format.

    Equality, ordering and hashing use the decoded numeric value, so values
    of different formats compare equal when they represent the same real
    number, and NaN is unordered.

    Attributes:
        payload: Full binary bit pattern, `|s|e..e|m..m|`.
        fmt: Floating-point format specification.

    """

    payload: int
    fmt: FloatFormat

    def __post_init__(self) -> None:
        if not fits_unsigned(self.payload, self.fmt.total_bits):
            raise WidthMismatchError(f"payload {self.payload:#x} does not fit in {self.fmt.total_bits} bits of {self.fmt}")

    # --- Format conversion ---

    @classmethod
    def from_parts(
        cls,
        sign: bool,
        exponent: int,
        mantissa: int,
        fmt: FloatFormat,
        *,
        rounding: RoundingMode = RoundingMode.HALF_TO_EVEN,
        is_inf: bool = False,
        is_nan: bool = False,
    ) -> Self:
        """Construct a value from decomposed parts.

        The represented value is (-1)^sign * 2^exponent * mantissa.

        Args:
            sign: False=positive, True=negative.
            exponent: Unbiased exponent of the mantissa LSB.
            mantissa: Non-negative integer mantissa of any width.
            fmt: Target floating-point format.
            rounding: Rounding mode for mantissa truncation.
            is_inf: Encode a signed infinity.
            is_nan: Encode NaN.

        Returns:
            FloatingPointValue with the target format.

        """
        payload = parts_to_float_binary(sign, exponent, mantissa, fmt, rounding=rounding, is_inf=is_inf, is_nan=is_nan)
        return cls(payload, fmt)

    @classmethod
    def from_other(
        cls,
        other: "FloatingPointValue",
        fmt: FloatFormat,
        rounding: RoundingMode = RoundingMode.HALF_TO_EVEN,
    ) -> Self:
        """Convert a value of another format, rounding once.

        Args:
            other: Source value.
            fmt: Target floating-point format.
            rounding: Rounding mode for mantissa truncation.

        Returns:
            FloatingPointValue with the target format.

        """
        if other.fmt == fmt:
            return other

        sign, exponent, mantissa = other.to_parts()
        return cls.from_parts(
            sign,
            exponent,
            mantissa,
            fmt,
            rounding=rounding,
            is_inf=other.is_infinity,
            is_nan=other.is_nan,
        )

    # --- Raw field extraction ---

    @property
    def sign_field(self) -> int:
        """Extract the sign bit (0: positive, 1: negative)."""
        return self.payload >> self.fmt.unsigned_bits

    @property
    def exponent_field(self) -> int:
        """Extract the raw exponent field (biased encoding)."""
        return (self.payload & self.fmt.exponent_mask) >> self.fmt.mantissa_bits

    @property
    def mantissa_field(self) -> int:
        """Extract the raw mantissa field."""
        return self.payload & self.fmt.mantissa_mask

    @property
    def unsigned_field(self) -> int:
        """Extract the unsigned magnitude (exponent + mantissa)."""
        return self.payload & self.fmt.unsigned_mask

    # --- Bit-vector views ---

    @property
    def value(self) -> intbv:
        """Whole bit pattern."""
        return bits_of(self.payload, self.fmt.total_bits)

    @property
    def sign(self) -> intbv:
        """Sign bit as a 1-bit vector."""
        return self.value[self.fmt.total_bits : self.fmt.unsigned_bits]

    @property
    def exponent(self) -> intbv:
        """Biased exponent field."""
        return self.value[self.fmt.unsigned_bits : self.fmt.mantissa_bits]

    @property
    def mantissa(self) -> intbv:
        """Stored mantissa field, J-bit included for explicit formats."""
        return self.value[self.fmt.mantissa_bits :]

    # --- Semantic views ---

    @property
    def sign_bool(self) -> bool:
        """Compute the sign."""
        return self.sign_field != 0

    @property
    def adjusted_exponent(self) -> int:
        """Biased exponent value, treating subnormals as exponent 1."""
        return self.exponent_field or 1

    @property
    def unbiased_exponent(self) -> int:
        """Compute the actual (unbiased) exponent value."""
        return self.adjusted_exponent - self.fmt.exponent_bias

    @property
    def full_mantissa(self) -> int:
        """Unsigned significand with the leading bit restored."""
        if self.fmt.explicit_jbit:
            return self.mantissa_field
        # Normalized: 1.mantissa, Subnormal: 0.mantissa
        is_normalized = self.exponent_field != 0
        return (is_normalized << self.fmt.mantissa_bits) | self.mantissa_field

    # --- Special-value predicates ---

    @property
    def is_nan(self) -> bool:
        """Check if the value is NaN."""
        if not self.fmt.has_infinity:
            return self.unsigned_field == self.fmt.exponent_mask | self.fmt.mantissa_mask
        return self.unsigned_field > self.fmt.exponent_mask

    @property
    def is_infinity(self) -> bool:
        """Check if the value is infinite."""
        return self.fmt.has_infinity and self.unsigned_field == self.fmt.exponent_mask

    @property
    def is_special(self) -> bool:
        """Check if the value is NaN or Inf."""
        return self.is_nan or self.is_infinity

    @property
    def is_finite(self) -> bool:
        """Check if the value is finite."""
        return not self.is_special

    @property
    def is_zero(self) -> bool:
        """Check if the value decodes to zero, including flushed subnormals."""
        if self.is_special:
            return False
        if self.fmt.subnormal_as_zero and self.exponent_field == 0:
            return True
        return self.full_mantissa == 0

    @property
    def is_subnormal(self) -> bool:
        """Check if the value is a (non-flushed) subnormal."""
        return self.exponent_field == 0 and not self.is_zero

    @property
    def is_normal(self) -> bool:
        """Check if the value is finite, nonzero and not subnormal."""
        return self.exponent_field != 0 and self.is_finite and not self.is_zero

    @property
    def is_legal_value(self) -> bool:
        """Check the J-bit rules of explicit formats; implicit patterns are always legal."""
        if not self.fmt.explicit_jbit or self.is_special:
            return True
        if self.exponent_field == 0:
            return self.mantissa_field < self.fmt.hidden_bit
        return self.mantissa_field != 0

    @property
    def is_canonical(self) -> bool:
        """Check whether this is the unique encoding of its value."""
        if not self.fmt.explicit_jbit:
            return True
        has_jbit = self.mantissa_field >= self.fmt.hidden_bit
        if self.is_special or self.exponent_field == 0:
            return not has_jbit
        return has_jbit

    # --- Decoding ---

    def to_parts(self) -> tuple[bool, int, int]:
        """Decompose a finite value into `(sign, exponent, mantissa)`.

        The represented value is (-1)^sign * 2^exponent * mantissa. Flushed
        subnormals decode with a zero mantissa. Special values return the
        raw fields and must be checked separately.

        """
        exponent = self.unbiased_exponent - self.fmt.precision_bits
        if self.is_zero:
            return self.sign_bool, exponent, 0
        return self.sign_bool, exponent, self.full_mantissa

    def to_fraction(self) -> Fraction:
        """Decode the exact rational value."""
        if self.is_special:
            raise InfeasibleConversionError(f"{self} has no rational value")
        sign, exponent, mantissa = self.to_parts()
        value = Fraction(mantissa) * Fraction(2) ** exponent
        return -value if sign else value

    def to_double(self) -> float:
        """Decode to the nearest host double.

        Magnitudes beyond the double range decode to a signed infinity.

        """
        if self.is_nan:
            return float("nan")
        if self.is_infinity:
            return float("-inf") if self.sign_bool else float("inf")

        sign, exponent, mantissa = self.to_parts()
        try:
            # int / int true division is correctly rounded, subnormals included
            magnitude = float(mantissa << exponent) if exponent >= 0 else mantissa / (1 << -exponent)
        except OverflowError:
            magnitude = float("inf")
        return -magnitude if sign else magnitude

    def to_fixed_point_value(self) -> FixedPointValue:
        """Convert exactly to a signed fixed-point value spanning the whole format.

        The fixed-point format has `max_exponent + 1` integer bits and
        `bias - 1 + precision` fraction bits, enough for every finite value.

        Raises:
            InfeasibleConversionError: For NaN and Infinity.

        """
        if self.is_special:
            raise InfeasibleConversionError(f"{self} has no fixed-point representation")

        fixed_fmt = FixedFormat(
            signed=True,
            integer_bits=self.fmt.max_exponent + 1,
            fraction_bits=self.fmt.exponent_bias - 1 + self.fmt.precision_bits,
        )

        sign, exponent, mantissa = self.to_parts()
        raw = mantissa << (exponent + fixed_fmt.fraction_bits)
        return FixedPointValue(-raw if sign else raw, fixed_fmt)

    # --- Explicit J-bit helpers ---

    def canonicalize(self) -> Self:
        """Return the canonical encoding of this value in the same format."""
        if self.is_canonical:
            return self
        sign, exponent, mantissa = self.to_parts()
        return self.from_parts(sign, exponent, mantissa, self.fmt, is_inf=self.is_infinity, is_nan=self.is_nan)

    def to_implicit(self) -> Self:
        """Convert an explicit J-bit value to the implicit format of equal precision."""
        return self.from_other(self, self.fmt.implicit_format)

    # --- Sign transforms ---

    def negate(self) -> Self:
        """Flip the sign bit."""
        return self.__class__(self.payload ^ self.fmt.sign_mask, self.fmt)

    def abs(self) -> Self:
        """Clear the sign bit."""
        return self.__class__(self.payload & self.fmt.unsigned_mask, self.fmt)

    def __neg__(self) -> Self:
        return self.negate()

    def __abs__(self) -> Self:
        return self.abs()

    # --- Constants in this format ---

    def _nan(self) -> Self:
        return self.from_parts(False, 0, 0, self.fmt, is_nan=True)

    def _inf(self, sign: bool) -> Self:
        if not self.fmt.has_infinity:
            return self._nan()
        return self.from_parts(sign, 0, 0, self.fmt, is_inf=True)

    def _zero(self, sign: bool) -> Self:
        return self.from_parts(sign, 0, 0, self.fmt)

    # --- ULP ---

    def _ulp_fraction(self) -> Fraction:
        # exact step between neighbouring finite values, never flushed
        return Fraction(2) ** (self.unbiased_exponent - self.fmt.precision_bits)

    def ulp(self) -> Self:
        """Return the positive value of one unit in the last place at this exponent.

        Formats with `subnormal_as_zero` flush a subnormal ULP to zero; use
        `within_rounding` for tolerance checks.

        """
        if self.is_nan:
            return self._nan()
        if self.is_infinity:
            return self._inf(False)
        return self.from_parts(False, self.unbiased_exponent - self.fmt.precision_bits, 1, self.fmt)

    def within_rounding(self, other: "FloatingPointValue") -> bool:
        """Check whether `other` lies within one ULP of this value."""
        if self.is_nan or other.is_nan:
            return self.is_nan and other.is_nan
        if self.is_infinity or other.is_infinity:
            return self == other
        return abs(self.to_fraction() - other.to_fraction()) <= self._ulp_fraction()

    # --- Arithmetic ---

    def _check_operand(self, other: "FloatingPointValue") -> None:
        if other.fmt != self.fmt:
            raise WidthMismatchError(f"operand formats differ: {self.fmt} vs {other.fmt}")

    def add(self, other: "FloatingPointValue", rounding: RoundingMode = RoundingMode.HALF_TO_EVEN) -> Self:
        """Add exactly, then round once into this format."""
        self._check_operand(other)

        if self.is_nan or other.is_nan:
            return self._nan()

        if self.is_infinity or other.is_infinity:
            if self.is_infinity and other.is_infinity and self.sign_bool != other.sign_bool:
                return self._nan()
            return self._inf(self.sign_bool if self.is_infinity else other.sign_bool)

        a_sign, a_exp, a_man = self.to_parts()
        b_sign, b_exp, b_man = other.to_parts()

        # align both operands to the smaller LSB exponent
        exponent = min(a_exp, b_exp)
        a_int = a_man << (a_exp - exponent)
        b_int = b_man << (b_exp - exponent)
        total = (-a_int if a_sign else a_int) + (-b_int if b_sign else b_int)

        if total == 0:
            # (-0) + (-0) = -0, exact cancellation is +0 except when rounding down
            if a_man == 0 and b_man == 0 and a_sign == b_sign:
                return self._zero(a_sign)
            return self._zero(rounding == RoundingMode.FULL_DOWN)

        return self.from_parts(total < 0, exponent, abs(total), self.fmt, rounding=rounding)

    def subtract(self, other: "FloatingPointValue", rounding: RoundingMode = RoundingMode.HALF_TO_EVEN) -> Self:
        """Subtract exactly, then round once into this format."""
        self._check_operand(other)
        return self.add(other.negate(), rounding)

    def multiply(self, other: "FloatingPointValue", rounding: RoundingMode = RoundingMode.HALF_TO_EVEN) -> Self:
        """Multiply exactly, then round once into this format."""
        self._check_operand(other)

        if self.is_nan or other.is_nan:
            return self._nan()

        sign = self.sign_bool != other.sign_bool

        if self.is_infinity or other.is_infinity:
            # inf * 0 is invalid
            if self.is_zero or other.is_zero:
                return self._nan()
            return self._inf(sign)

        _, a_exp, a_man = self.to_parts()
        _, b_exp, b_man = other.to_parts()

        return self.from_parts(sign, a_exp + b_exp, a_man * b_man, self.fmt, rounding=rounding)

    def divide(self, other: "FloatingPointValue", rounding: RoundingMode = RoundingMode.HALF_TO_EVEN) -> Self:
        """Divide with a sticky quotient, then round once into this format."""
        self._check_operand(other)

        if self.is_nan or other.is_nan:
            return self._nan()

        sign = self.sign_bool != other.sign_bool

        if self.is_infinity:
            return self._nan() if other.is_infinity else self._inf(sign)
        if other.is_infinity:
            return self._zero(sign)
        if other.is_zero:
            return self._nan() if self.is_zero else self._inf(sign)
        if self.is_zero:
            return self._zero(sign)

        _, a_exp, a_man = self.to_parts()
        _, b_exp, b_man = other.to_parts()

        # quotient keeps at least precision + guard bits, the sticky bit sits below them
        extra_bits = self.fmt.precision_bits + _DIVIDE_GUARD_BITS + b_man.bit_length()
        quotient = div_sticky(a_man, b_man, extra_bits)

        return self.from_parts(sign, a_exp - b_exp - extra_bits - 1, quotient, self.fmt, rounding=rounding)

    def __add__(self, other: "FloatingPointValue") -> Self:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "FloatingPointValue") -> Self:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, other: "FloatingPointValue") -> Self:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.multiply(other)

    def __truediv__(self, other: "FloatingPointValue") -> Self:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.divide(other)

    # --- Comparison ---

    def _order_key(self) -> Fraction | float:
        if self.is_infinity:
            return float("-inf") if self.sign_bool else float("inf")
        return self.to_fraction()

    def compare_to(self, other: "FloatingPointValue") -> int | None:
        """Three-way numeric comparison.

        Returns:
            -1, 0 or 1; None when either operand is NaN (unordered).

        """
        if self.is_nan or other.is_nan:
            return None
        a = self._order_key()
        b = other._order_key()
        return (a > b) - (a < b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.compare_to(other) == 0

    def __ne__(self, other: object) -> bool:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        # NaN != NaN holds, like IEEE
        return self.compare_to(other) != 0

    def __lt__(self, other: "FloatingPointValue") -> bool:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.compare_to(other) == -1

    def __le__(self, other: "FloatingPointValue") -> bool:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.compare_to(other) in (-1, 0)

    def __gt__(self, other: "FloatingPointValue") -> bool:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.compare_to(other) == 1

    def __ge__(self, other: "FloatingPointValue") -> bool:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        return self.compare_to(other) in (1, 0)

    def __hash__(self) -> int:
        if self.is_nan:
            return hash((self.fmt, self.payload))
        return hash(self._order_key())

    # --- Text forms ---

    def to_string(self, integer: bool = False) -> str:
        """Spaced binary form, or `(sign exponent mantissa)` as integers."""
        if integer:
            return f"({self.sign_field} {self.exponent_field} {self.mantissa_field})"
        return f"{format_bits(self.sign)} {format_bits(self.exponent)} {format_bits(self.mantissa)}"

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.fmt}: '{self.to_string()}')"
