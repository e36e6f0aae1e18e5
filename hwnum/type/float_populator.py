# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Validated construction of floating-point values."""

import logging
import math
import random
from collections.abc import Callable
from dataclasses import dataclass

from myhdl import concat, intbv
from torch import Tensor

from hwnum.config import RandomRangeConfig

from .errors import InfeasibleRangeError, InfinityNotSupportedError, WidthMismatchError
from .fixed_type import FixedPointValue
from .float_type import FloatFormat, FloatingPointConstants, insert_jbit, parts_to_float_binary
from .float_value import FloatingPointValue
from .rounding import RoundingMode
from .tensor import from_native_tensor
from .utils import bits_of, fits_unsigned, parse_bits

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FloatingPointPopulator:
    """Builder of `FloatingPointValue` instances for one format.

    Every public constructor validates its inputs against `fmt`, so callers
    never assemble an inconsistent bit pattern.

    Attributes:
        fmt: Floating-point format of the produced values.

    """

    fmt: FloatFormat

    # --- Bit assembly ---

    def populate(self, sign: intbv, exponent: intbv, mantissa: intbv) -> FloatingPointValue:
        """Assemble a value from its three sized bit vectors.

        Raises:
            WidthMismatchError: If a field width disagrees with the format.

        """
        expected = (1, self.fmt.exponent_bits, self.fmt.mantissa_bits)
        actual = (len(sign), len(exponent), len(mantissa))
        if actual != expected:
            raise WidthMismatchError(f"field widths {actual} do not match {self.fmt} {expected}")
        return FloatingPointValue(int(concat(sign, exponent, mantissa)), self.fmt)

    def of_logic_value(self, raw: intbv) -> FloatingPointValue:
        """Interpret a full-width raw bit vector."""
        if len(raw) != self.fmt.total_bits:
            raise WidthMismatchError(f"raw width {len(raw)} does not match {self.fmt} ({self.fmt.total_bits} bits)")
        return FloatingPointValue(int(raw), self.fmt)

    def of_ints(self, exponent: int, mantissa: int, sign: bool = False) -> FloatingPointValue:
        """Assemble a value from integer field values."""
        if not fits_unsigned(exponent, self.fmt.exponent_bits):
            raise WidthMismatchError(f"exponent {exponent} does not fit in {self.fmt.exponent_bits} bits")
        if not fits_unsigned(mantissa, self.fmt.mantissa_bits):
            raise WidthMismatchError(f"mantissa {mantissa} does not fit in {self.fmt.mantissa_bits} bits")
        return self.populate(
            bits_of(int(sign), 1),
            bits_of(exponent, self.fmt.exponent_bits),
            bits_of(mantissa, self.fmt.mantissa_bits),
        )

    # --- Literal parsing ---

    def of_binary_strings(self, sign: str, exponent: str, mantissa: str) -> FloatingPointValue:
        """Assemble a value from three binary literals."""
        return self.populate(parse_bits(sign), parse_bits(exponent), parse_bits(mantissa))

    def of_spaced_binary_string(self, text: str) -> FloatingPointValue:
        """Parse the `"<sign> <exponent> <mantissa>"` diagnostic form."""
        fields = text.split()
        if len(fields) != 3:
            raise ValueError(f"expected 3 space-separated fields, got {text!r}")
        return self.of_binary_strings(*fields)

    def of_string(self, text: str, radix: int = 2) -> FloatingPointValue:
        """Parse a whole bit pattern written in `radix`.

        Binary text with whitespace is read as the spaced form.

        """
        if radix == 2 and len(text.split()) == 3:
            return self.of_spaced_binary_string(text)

        digits = "".join(text.split()).replace("_", "")
        payload = int(digits, radix)
        if not fits_unsigned(payload, self.fmt.total_bits):
            raise WidthMismatchError(f"{text!r} does not fit in {self.fmt.total_bits} bits")
        return FloatingPointValue(payload, self.fmt)

    # --- Named constants ---

    def of_constant(self, constant: FloatingPointConstants) -> FloatingPointValue:
        """Return the canonical encoding of a named constant.

        Raises:
            InfinityNotSupportedError: For infinities of formats without them.

        """
        # field values of the implicit view, J-bit inserted below
        implicit = self.fmt.implicit_format
        one = implicit.exponent_bias << implicit.mantissa_bits

        sign = False
        match constant:
            case FloatingPointConstants.POSITIVE_ZERO:
                unsigned_field = implicit.zero_unsigned
            case FloatingPointConstants.NEGATIVE_ZERO:
                sign, unsigned_field = True, implicit.zero_unsigned
            case FloatingPointConstants.ONE:
                unsigned_field = one
            case FloatingPointConstants.NAN:
                return FloatingPointValue.from_parts(False, 0, 0, self.fmt, is_nan=True)
            case FloatingPointConstants.POSITIVE_INFINITY | FloatingPointConstants.NEGATIVE_INFINITY:
                if not self.fmt.has_infinity:
                    raise InfinityNotSupportedError(f"{self.fmt} has no Infinity encoding")
                sign = constant == FloatingPointConstants.NEGATIVE_INFINITY
                return FloatingPointValue.from_parts(sign, 0, 0, self.fmt, is_inf=True)
            case FloatingPointConstants.SMALLEST_POSITIVE_SUBNORMAL:
                unsigned_field = 1
            case FloatingPointConstants.LARGEST_POSITIVE_SUBNORMAL:
                unsigned_field = implicit.mantissa_mask
            case FloatingPointConstants.SMALLEST_POSITIVE_NORMAL:
                unsigned_field = implicit.hidden_bit
            case FloatingPointConstants.LARGEST_NORMAL:
                unsigned_field = implicit.max_unsigned
            case FloatingPointConstants.LARGEST_LESS_THAN_ONE:
                unsigned_field = one - 1
            case FloatingPointConstants.SMALLEST_LARGER_THAN_ONE:
                unsigned_field = one + 1
            case _:
                raise ValueError(f"Unsupported constant: {constant}")

        payload = (int(sign) << self.fmt.unsigned_bits) | insert_jbit(unsigned_field, self.fmt)
        return FloatingPointValue(payload, self.fmt)

    @property
    def positive_zero(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstants.POSITIVE_ZERO)

    @property
    def negative_zero(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstants.NEGATIVE_ZERO)

    @property
    def one(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstants.ONE)

    @property
    def nan(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstants.NAN)

    @property
    def positive_infinity(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstants.POSITIVE_INFINITY)

    @property
    def negative_infinity(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstants.NEGATIVE_INFINITY)

    # --- Conversions ---

    def of_double(self, value: float, rounding: RoundingMode = RoundingMode.HALF_TO_EVEN) -> FloatingPointValue:
        """Round a host double into this format.

        Out-of-range magnitudes become signed Infinity, or the largest finite
        magnitude when `rounding` points towards zero. Formats without
        Infinity saturate to their largest finite magnitude.

        """
        if math.isnan(value):
            return self.nan

        sign = math.copysign(1.0, value) < 0
        if math.isinf(value):
            return FloatingPointValue.from_parts(sign, 0, 0, self.fmt, is_inf=True)

        mantissa, denominator = abs(value).as_integer_ratio()
        exponent = 1 - denominator.bit_length()
        return FloatingPointValue.from_parts(sign, exponent, mantissa, self.fmt, rounding=rounding)

    def of_double_unrounded(self, value: float) -> FloatingPointValue:
        """Convert a host double by truncating the extra significand bits.

        No Guard/Round/Sticky increment is applied; overflow still becomes
        Infinity. Comparing against `of_double` isolates rounding behaviour.

        """
        if math.isnan(value) or math.isinf(value):
            return self.of_double(value)

        sign = math.copysign(1.0, value) < 0
        mantissa, denominator = abs(value).as_integer_ratio()
        payload = parts_to_float_binary(
            sign,
            1 - denominator.bit_length(),
            mantissa,
            self.fmt,
            rounding=RoundingMode.FULL_TO_ZERO,
            overflow_to_inf=True,
        )
        return FloatingPointValue(payload, self.fmt)

    def of_floating_point_value(
        self,
        other: FloatingPointValue,
        canonicalize_explicit: bool = False,
        rounding: RoundingMode = RoundingMode.HALF_TO_EVEN,
    ) -> FloatingPointValue:
        """Convert a value of any format into this one.

        A value already in this format is returned bit-for-bit, unless
        `canonicalize_explicit` asks for the canonical J-bit encoding.

        """
        if other.fmt == self.fmt:
            return other.canonicalize() if canonicalize_explicit else other
        return FloatingPointValue.from_other(other, self.fmt, rounding)

    def of_fixed_point_value(
        self,
        value: FixedPointValue,
        rounding: RoundingMode = RoundingMode.HALF_TO_EVEN,
    ) -> FloatingPointValue:
        """Round a fixed-point value into this format."""
        return FloatingPointValue.from_parts(
            value.payload < 0,
            -value.fraction_bits,
            abs(value.payload),
            self.fmt,
            rounding=rounding,
        )

    def of_tensor(self, value: Tensor, rounding: RoundingMode = RoundingMode.HALF_TO_EVEN) -> list[FloatingPointValue]:
        """Decode a native torch float tensor and convert every element into this format."""
        return [self.of_floating_point_value(v, rounding=rounding) for v in from_native_tensor(value)]

    # --- Constrained random generation ---

    def random(
        self,
        rng: random.Random,
        *,
        gt: FloatingPointValue | None = None,
        gte: FloatingPointValue | None = None,
        lt: FloatingPointValue | None = None,
        lte: FloatingPointValue | None = None,
        gen_normal: bool = True,
        gen_subnormal: bool = True,
    ) -> FloatingPointValue:
        """Draw a uniformly distributed encoding within optional bounds.

        With both categories enabled, zeros and infinities are candidates
        too; disabling one category restricts the result to finite normals or
        to subnormals. Bounds may be of any format.

        Args:
            rng: Caller-owned random generator.
            gt: Exclusive lower bound.
            gte: Inclusive lower bound.
            lt: Exclusive upper bound.
            lte: Inclusive upper bound.
            gen_normal: Allow normal results.
            gen_subnormal: Allow subnormal results.

        Returns:
            A value of this format; the only candidate when there is one.

        Raises:
            InfeasibleRangeError: If no candidate satisfies the constraints.

        """
        config = RandomRangeConfig(gt, gte, lt, lte, gen_normal, gen_subnormal)
        config.validate()

        for bound in (gt, gte, lt, lte):
            if bound is not None and bound.is_nan:
                raise ValueError("random bounds must not be NaN")

        if self.fmt.explicit_jbit:
            # sample in the implicit view, every implicit value has one canonical explicit twin
            implicit = FloatingPointPopulator(self.fmt.implicit_format).random(
                rng,
                gt=gt,
                gte=gte,
                lt=lt,
                lte=lte,
                gen_normal=gen_normal,
                gen_subnormal=gen_subnormal,
            )
            return self.of_floating_point_value(implicit)

        low, high = self._ordinal_bounds(config)

        # clip every candidate segment to [low, high]
        segments = []
        for start, stop in self._candidate_segments(config):
            start, stop = max(start, low), min(stop, high)
            if start <= stop:
                segments.append((start, stop))

        total = sum(stop - start + 1 for start, stop in segments)
        if total == 0:
            logger.debug("no candidate of %s in ordinal range [%d, %d]", self.fmt, low, high)
            raise InfeasibleRangeError(f"no {self.fmt} value satisfies {config}")

        index = 0 if total == 1 else rng.randrange(total)
        for start, stop in segments:
            size = stop - start + 1
            if index < size:
                break
            index -= size

        return self._value_at(start + index)

    # ordinals enumerate the non-NaN encodings in numeric order:
    # -top .. -1 are negative, 0 is zero, 1 .. top are positive

    @property
    def _top_ordinal(self) -> int:
        if self.fmt.has_infinity:
            return self.fmt.inf_unsigned
        return self.fmt.max_unsigned

    def _value_at(self, ordinal: int) -> FloatingPointValue:
        sign = ordinal < 0
        return FloatingPointValue((int(sign) << self.fmt.unsigned_bits) | abs(ordinal), self.fmt)

    def _first_ordinal(self, predicate: Callable[[FloatingPointValue], bool]) -> int:
        """Binary search for the first ordinal satisfying a monotone predicate."""
        low = -self._top_ordinal
        high = self._top_ordinal + 1
        while low < high:
            mid = (low + high) // 2
            if predicate(self._value_at(mid)):
                high = mid
            else:
                low = mid + 1
        return low

    def _ordinal_bounds(self, config: RandomRangeConfig) -> tuple[int, int]:
        low = -self._top_ordinal
        high = self._top_ordinal

        lower, lower_inclusive = config.lower
        if lower is not None:
            if lower_inclusive:
                low = self._first_ordinal(lambda v: v >= lower)
            else:
                low = self._first_ordinal(lambda v: v > lower)

        upper, upper_inclusive = config.upper
        if upper is not None:
            if upper_inclusive:
                high = self._first_ordinal(lambda v: v > upper) - 1
            else:
                high = self._first_ordinal(lambda v: v >= upper) - 1

        return low, high

    def _candidate_segments(self, config: RandomRangeConfig) -> list[tuple[int, int]]:
        first_normal = self.fmt.hidden_bit
        last_normal = self.fmt.max_unsigned

        segments = []
        if config.gen_normal:
            segments += [(-last_normal, -first_normal), (first_normal, last_normal)]
        if config.gen_subnormal and not self.fmt.subnormal_as_zero:
            segments += [(1 - first_normal, -1), (1, first_normal - 1)]
        if config.is_unconstrained_category:
            segments.append((0, 0))
            if self.fmt.has_infinity:
                top = self._top_ordinal
                segments += [(-top, -top), (top, top)]
        return segments
