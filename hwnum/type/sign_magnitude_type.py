# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Sign-magnitude integer format and value definition."""

import logging
import random
from dataclasses import dataclass
from typing import Self

from myhdl import concat, intbv

from hwnum.config import RandomRangeConfig

from .errors import InfeasibleRangeError, WidthMismatchError
from .utils import bit_mask, bits_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignMagnitudeFormat:
    """Sign-magnitude format definition.

    Attributes:
        magnitude_bits: Number of bits of the unsigned magnitude.

    """

    magnitude_bits: int

    def __post_init__(self) -> None:
        if self.magnitude_bits < 1:
            raise ValueError(f"magnitude_bits ({self.magnitude_bits}) < 1")

    @property
    def total_bits(self) -> int:
        """Get total number of bits."""
        # |s|mmmm|
        return 1 + self.magnitude_bits

    @property
    def max_magnitude(self) -> int:
        """Get maximum magnitude."""
        return bit_mask(self.magnitude_bits)


@dataclass(frozen=True, eq=False)
class SignMagnitudeValue:
    """Sign-magnitude integer, `(-1)^sign * magnitude`.

    Both zero encodings compare equal.

    Attributes:
        sign: True for negative.
        magnitude: Unsigned magnitude.
        fmt: Sign-magnitude format specification.

    """

    sign: bool
    magnitude: int
    fmt: SignMagnitudeFormat

    def __post_init__(self) -> None:
        if not 0 <= self.magnitude <= self.fmt.max_magnitude:
            raise WidthMismatchError(f"magnitude {self.magnitude} does not fit in {self.fmt.magnitude_bits} bits")

    # --- Construction ---

    @classmethod
    def populate(cls, sign: intbv, magnitude: intbv, fmt: SignMagnitudeFormat) -> Self:
        """Assemble from sized sign and magnitude bit vectors."""
        if len(sign) != 1 or len(magnitude) != fmt.magnitude_bits:
            raise WidthMismatchError(
                f"sign/magnitude widths ({len(sign)}, {len(magnitude)}) do not match (1, {fmt.magnitude_bits})"
            )
        return cls(bool(sign), int(magnitude), fmt)

    @classmethod
    def of_logic_value(cls, raw: intbv, fmt: SignMagnitudeFormat) -> Self:
        """Split a raw `|s|mmmm|` vector."""
        if len(raw) != fmt.total_bits:
            raise WidthMismatchError(f"raw width {len(raw)} does not match {fmt.total_bits}")
        return cls(bool(raw[fmt.magnitude_bits]), int(raw[fmt.magnitude_bits :]), fmt)

    @classmethod
    def of_int(cls, value: int, fmt: SignMagnitudeFormat) -> Self:
        """Encode a signed integer; zero is encoded positive."""
        if abs(value) > fmt.max_magnitude:
            raise WidthMismatchError(f"{value} does not fit in {fmt.magnitude_bits} magnitude bits")
        return cls(value < 0, abs(value), fmt)

    @classmethod
    def random(
        cls,
        rng: random.Random,
        fmt: SignMagnitudeFormat,
        *,
        gt: "SignMagnitudeValue | None" = None,
        gte: "SignMagnitudeValue | None" = None,
        lt: "SignMagnitudeValue | None" = None,
        lte: "SignMagnitudeValue | None" = None,
    ) -> Self:
        """Draw a uniformly distributed value within optional bounds.

        Args:
            rng: Caller-owned random generator.
            fmt: Target format.
            gt: Exclusive lower bound.
            gte: Inclusive lower bound.
            lt: Exclusive upper bound.
            lte: Inclusive upper bound.

        Raises:
            InfeasibleRangeError: If no representable integer satisfies the bounds.

        """
        config = RandomRangeConfig(gt=gt, gte=gte, lt=lt, lte=lte)
        config.validate()

        low = -fmt.max_magnitude
        high = fmt.max_magnitude

        lower, lower_inclusive = config.lower
        if lower is not None:
            low = max(low, lower.to_int() + (not lower_inclusive))

        upper, upper_inclusive = config.upper
        if upper is not None:
            high = min(high, upper.to_int() - (not upper_inclusive))

        if low > high:
            logger.debug("empty sign-magnitude range [%d, %d] for %s", low, high, fmt)
            raise InfeasibleRangeError(f"no {fmt.magnitude_bits}-bit sign-magnitude value in [{low}, {high}]")

        return cls.of_int(rng.randint(low, high), fmt)

    # --- Views ---

    @property
    def value(self) -> intbv:
        """Raw `|s|mmmm|` bit pattern."""
        return concat(bits_of(int(self.sign), 1), bits_of(self.magnitude, self.fmt.magnitude_bits))

    def to_int(self) -> int:
        """Signed integer value."""
        return -self.magnitude if self.sign else self.magnitude

    def __int__(self) -> int:
        return self.to_int()

    # --- Sign transforms ---

    def negate(self) -> Self:
        """Flip the sign bit."""
        return self.__class__(not self.sign, self.magnitude, self.fmt)

    def abs(self) -> Self:
        """Clear the sign bit."""
        return self.__class__(False, self.magnitude, self.fmt)

    def __neg__(self) -> Self:
        return self.negate()

    def __abs__(self) -> Self:
        return self.abs()

    # --- Arithmetic ---

    def __add__(self, other: "SignMagnitudeValue") -> Self:
        if not isinstance(other, SignMagnitudeValue):
            return NotImplemented
        fmt = SignMagnitudeFormat(max(self.fmt.magnitude_bits, other.fmt.magnitude_bits) + 1)
        return self.of_int(self.to_int() + other.to_int(), fmt)

    def __sub__(self, other: "SignMagnitudeValue") -> Self:
        if not isinstance(other, SignMagnitudeValue):
            return NotImplemented
        return self + other.negate()

    def __mul__(self, other: "SignMagnitudeValue") -> Self:
        if not isinstance(other, SignMagnitudeValue):
            return NotImplemented
        fmt = SignMagnitudeFormat(self.fmt.magnitude_bits + other.fmt.magnitude_bits)
        return self.of_int(self.to_int() * other.to_int(), fmt)

    # --- Comparison ---

    def compare_to(self, other: "SignMagnitudeValue") -> int:
        """Three-way comparison of the signed integer values."""
        a = self.to_int()
        b = other.to_int()
        return (a > b) - (a < b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignMagnitudeValue):
            return NotImplemented
        return self.compare_to(other) == 0

    def __lt__(self, other: "SignMagnitudeValue") -> bool:
        if not isinstance(other, SignMagnitudeValue):
            return NotImplemented
        return self.compare_to(other) < 0

    def __le__(self, other: "SignMagnitudeValue") -> bool:
        if not isinstance(other, SignMagnitudeValue):
            return NotImplemented
        return self.compare_to(other) <= 0

    def __gt__(self, other: "SignMagnitudeValue") -> bool:
        if not isinstance(other, SignMagnitudeValue):
            return NotImplemented
        return self.compare_to(other) > 0

    def __ge__(self, other: "SignMagnitudeValue") -> bool:
        if not isinstance(other, SignMagnitudeValue):
            return NotImplemented
        return self.compare_to(other) >= 0

    def __hash__(self) -> int:
        return hash(self.to_int())

    def __str__(self) -> str:
        return f"{'-' if self.sign else '+'}{self.magnitude}"
