# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Fixed-point (Q m.n) format and value definition."""

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Self

from myhdl import intbv

from .errors import InfeasibleConversionError, WidthMismatchError
from .rounding import RoundingMode, round_offset_complement
from .utils import bits_of, fits_signed, fits_unsigned, format_bits


@dataclass(frozen=True)
class FixedFormat:
    """Fixed-point format definition.

    Attributes:
        signed: Two's-complement payload with an extra sign bit.
        integer_bits: Number of integer bits, excluding the sign bit.
        fraction_bits: Number of fraction bits.

    """

    signed: bool
    integer_bits: int
    fraction_bits: int

    def __post_init__(self) -> None:
        if self.integer_bits < 0 or self.fraction_bits < 0:
            raise ValueError(f"negative width: integer_bits {self.integer_bits}, fraction_bits {self.fraction_bits}")
        if self.total_bits == 0:
            raise ValueError("fixed-point format must have at least one bit")

    @property
    def total_bits(self) -> int:
        """Get total number of bits."""
        # signed:   |s|iiii|ffff|
        # unsigned:   |iiii|ffff|
        return self.signed + self.integer_bits + self.fraction_bits

    @property
    def max_value(self) -> int:
        """Get maximum payload."""
        return (1 << (self.integer_bits + self.fraction_bits)) - 1

    @property
    def min_value(self) -> int:
        """Get minimum payload."""
        return -(1 << (self.integer_bits + self.fraction_bits)) if self.signed else 0

    @property
    def frac_scale(self) -> int:
        """Get fraction scale."""
        return 1 << self.fraction_bits

    def fits(self, payload: int) -> bool:
        """Check whether a payload is representable."""
        if self.signed:
            return fits_signed(payload, self.total_bits)
        return fits_unsigned(payload, self.total_bits)

    def __str__(self) -> str:
        return f"{'S' if self.signed else 'U'}Q{self.integer_bits}.{self.fraction_bits}"


@dataclass(frozen=True, eq=False)
class FixedPointValue:
    """Fixed-point value.

    The represented value is `payload / 2^fraction_bits`. Arithmetic grows
    the result format so that no operation overflows.

    Attributes:
        payload: Integer holding the scaled value (negative for signed values below zero).
        fmt: Fixed-point format specification.

    """

    payload: int
    fmt: FixedFormat

    def __post_init__(self) -> None:
        if not self.fmt.fits(self.payload):
            raise WidthMismatchError(f"payload {self.payload} does not fit in {self.fmt}")

    # --- Construction ---

    @classmethod
    def of_logic_value(cls, raw: intbv, fmt: FixedFormat) -> Self:
        """Interpret a raw bit vector as a fixed-point value."""
        if len(raw) != fmt.total_bits:
            raise WidthMismatchError(f"raw width {len(raw)} does not match {fmt} ({fmt.total_bits} bits)")
        payload = int(raw.signed()) if fmt.signed else int(raw)
        return cls(payload, fmt)

    @classmethod
    def of_int(cls, payload: int, fmt: FixedFormat) -> Self:
        """Build from the scaled integer payload."""
        return cls(payload, fmt)

    @classmethod
    def of_double(
        cls,
        value: float,
        fmt: FixedFormat,
        rounding: RoundingMode = RoundingMode.FULL_TO_ZERO,
    ) -> Self:
        """Convert a host double.

        Args:
            value: Source value.
            fmt: Target fixed-point format.
            rounding: Rounding mode for dropped fraction bits.

        Raises:
            InfeasibleConversionError: For non-finite input, negative input to
                an unsigned format, or a result that does not fit.

        """
        if not math.isfinite(value):
            raise InfeasibleConversionError(f"cannot convert {value} to {fmt}")
        if value < 0 and not fmt.signed:
            raise InfeasibleConversionError(f"cannot convert negative {value} to unsigned {fmt}")

        payload = cls._scale_ratio(*value.as_integer_ratio(), fmt.fraction_bits, rounding)

        if not fmt.fits(payload):
            raise InfeasibleConversionError(f"{value} does not fit in {fmt}")
        return cls(payload, fmt)

    @staticmethod
    def _scale_ratio(numerator: int, denominator: int, fraction_bits: int, rounding: RoundingMode) -> int:
        # denominator is a power of two for binary floats
        drop_shift = denominator.bit_length() - 1 - fraction_bits
        if drop_shift <= 0:
            return numerator << -drop_shift
        return (numerator >> drop_shift) + round_offset_complement(numerator, drop_shift, rounding)

    @staticmethod
    def can_store(value: float, signed: bool, integer_bits: int, fraction_bits: int) -> bool:
        """Check whether `of_double` (truncating) would succeed for this format."""
        if not math.isfinite(value) or (value < 0 and not signed):
            return False
        fmt = FixedFormat(signed, integer_bits, fraction_bits)
        payload = FixedPointValue._scale_ratio(*value.as_integer_ratio(), fraction_bits, RoundingMode.FULL_TO_ZERO)
        return fmt.fits(payload)

    # --- Views ---

    @property
    def signed(self) -> bool:
        return self.fmt.signed

    @property
    def integer_bits(self) -> int:
        return self.fmt.integer_bits

    @property
    def fraction_bits(self) -> int:
        return self.fmt.fraction_bits

    @property
    def value(self) -> intbv:
        """Raw bit pattern, two's complement when signed."""
        return bits_of(self.payload, self.fmt.total_bits)

    def to_fraction(self) -> Fraction:
        """Decode the exact rational value."""
        return Fraction(self.payload, self.fmt.frac_scale)

    def to_double(self) -> float:
        """Decode to the nearest host double."""
        return self.payload / self.fmt.frac_scale

    # --- Width changes ---

    def expand_width(self, signed: bool, integer_bits: int, fraction_bits: int) -> Self:
        """Widen to a larger format without changing the represented value.

        Raises:
            WidthMismatchError: If the target cannot hold every source value.

        """
        if (
            integer_bits < self.fmt.integer_bits
            or fraction_bits < self.fmt.fraction_bits
            or (self.fmt.signed and not signed)
        ):
            raise WidthMismatchError(f"cannot expand {self.fmt} to {FixedFormat(signed, integer_bits, fraction_bits)}")

        new_fmt = FixedFormat(signed, integer_bits, fraction_bits)
        return self.__class__(self.payload << (fraction_bits - self.fmt.fraction_bits), new_fmt)

    def round_fraction(self, fraction_bits: int, rounding: RoundingMode = RoundingMode.FULL_DOWN) -> Self:
        """Adjust fractional precision to `fraction_bits`, keeping the integer width.

        Raises:
            InfeasibleConversionError: If rounding carries out of the integer part.

        """
        new_fmt = FixedFormat(self.fmt.signed, self.fmt.integer_bits, fraction_bits)

        if fraction_bits < self.fmt.fraction_bits:
            drop_width = self.fmt.fraction_bits - fraction_bits
            payload = (self.payload >> drop_width) + round_offset_complement(self.payload, drop_width, rounding)

            if not new_fmt.fits(payload):
                raise InfeasibleConversionError(f"rounding {self} to {new_fmt} overflows")
            return self.__class__(payload, new_fmt)

        if fraction_bits > self.fmt.fraction_bits:
            return self.expand_width(self.fmt.signed, self.fmt.integer_bits, fraction_bits)

        return self

    def _aligned(self, other: "FixedPointValue", fraction_bits: int) -> tuple[int, int]:
        a = self.payload << (fraction_bits - self.fmt.fraction_bits)
        b = other.payload << (fraction_bits - other.fmt.fraction_bits)
        return a, b

    # --- Arithmetic ---

    def __add__(self, other: "FixedPointValue") -> Self:
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        fmt = FixedFormat(
            signed=self.fmt.signed or other.fmt.signed,
            integer_bits=max(self.fmt.integer_bits, other.fmt.integer_bits) + 1,
            fraction_bits=max(self.fmt.fraction_bits, other.fmt.fraction_bits),
        )
        a, b = self._aligned(other, fmt.fraction_bits)
        return self.__class__(a + b, fmt)

    def __sub__(self, other: "FixedPointValue") -> Self:
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        fmt = FixedFormat(
            signed=True,
            integer_bits=max(self.fmt.integer_bits, other.fmt.integer_bits) + 1,
            fraction_bits=max(self.fmt.fraction_bits, other.fmt.fraction_bits),
        )
        a, b = self._aligned(other, fmt.fraction_bits)
        return self.__class__(a - b, fmt)

    def __mul__(self, other: "FixedPointValue") -> Self:
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        signed = self.fmt.signed or other.fmt.signed
        fmt = FixedFormat(
            signed=signed,
            integer_bits=self.fmt.integer_bits + other.fmt.integer_bits + signed,
            fraction_bits=self.fmt.fraction_bits + other.fmt.fraction_bits,
        )
        return self.__class__(self.payload * other.payload, fmt)

    def __truediv__(self, other: "FixedPointValue") -> Self:
        """Divide, truncating the quotient magnitude; a zero divisor yields 0."""
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        signed = self.fmt.signed or other.fmt.signed
        a_int = self.fmt.integer_bits + signed
        b_int = other.fmt.integer_bits + signed
        fmt = FixedFormat(
            signed=signed,
            integer_bits=a_int + other.fmt.fraction_bits,
            fraction_bits=self.fmt.fraction_bits + b_int,
        )

        if other.payload == 0:
            return self.__class__(0, fmt)

        # |a| / |b| * 2^n = (|pa| * 2^(nb + n)) / (|pb| * 2^na)
        dividend = abs(self.payload) << (other.fmt.fraction_bits + fmt.fraction_bits)
        divisor = abs(other.payload) << self.fmt.fraction_bits
        quotient = dividend // divisor

        negative = (self.payload < 0) != (other.payload < 0)
        return self.__class__(-quotient if negative else quotient, fmt)

    # --- Comparison ---

    def compare_to(self, other: "FixedPointValue") -> int:
        """Three-way comparison of represented values, aligned to a common format."""
        a, b = self._aligned(other, max(self.fmt.fraction_bits, other.fmt.fraction_bits))
        return (a > b) - (a < b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        return self.compare_to(other) == 0

    def __lt__(self, other: "FixedPointValue") -> bool:
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        return self.compare_to(other) < 0

    def __le__(self, other: "FixedPointValue") -> bool:
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        return self.compare_to(other) <= 0

    def __gt__(self, other: "FixedPointValue") -> bool:
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        return self.compare_to(other) > 0

    def __ge__(self, other: "FixedPointValue") -> bool:
        if not isinstance(other, FixedPointValue):
            return NotImplemented
        return self.compare_to(other) >= 0

    def __hash__(self) -> int:
        return hash(self.to_fraction())

    # --- Text forms ---

    def __str__(self) -> str:
        bits = format_bits(self.value)
        split = len(bits) - self.fmt.fraction_bits
        return f"{bits[:split]}.{bits[split:]}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.fmt}: {self.to_double()})"
