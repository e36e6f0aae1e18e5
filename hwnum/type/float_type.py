# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Floating-point format definitions, presets and the shared bit-pattern encoder."""

import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum, auto

import torch

from .dtype import get_storage_integer_dtype
from .errors import InfinityNotSupportedError
from .rounding import RoundingMode, overflows_to_infinity, round_offset_true_form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FloatFormat:
    """Floating-point format definition.

    Attributes:
        exponent_bits: Number of bits in the exponent field.
        mantissa_bits: Number of bits in the mantissa field. Excludes the
            hidden bit, unless `explicit_jbit` stores it as the field MSB.
        value_dtype: PyTorch dtype sharing this bit layout, if any. Not part
            of equality, so a custom format with a preset's layout is that preset.
        explicit_jbit: Store the leading significand bit in the mantissa field.
        subnormal_as_zero: Decode subnormal patterns as signed zero and flush
            subnormal results of conversions and arithmetic.
        has_infinity: Reserve the all-ones exponent for Inf/NaN. When False
            (OCP E4M3) the all-ones exponent is a regular binade and only the
            all-ones pattern is NaN.

    """

    exponent_bits: int
    mantissa_bits: int
    value_dtype: torch.dtype | None = field(default=None, compare=False)
    explicit_jbit: bool = False
    subnormal_as_zero: bool = False
    has_infinity: bool = True

    def __post_init__(self) -> None:
        if self.exponent_bits < 2:
            raise ValueError(f"exponent_bits ({self.exponent_bits}) < 2")
        if self.mantissa_bits < 1 + self.explicit_jbit:
            raise ValueError(f"mantissa_bits ({self.mantissa_bits}) too small, explicit_jbit: {self.explicit_jbit}")
        if self.explicit_jbit and not self.has_infinity:
            raise ValueError("explicit_jbit formats must reserve an Infinity encoding")

    @property
    def total_bits(self) -> int:
        """Get total number of bits."""
        return 1 + self.exponent_bits + self.mantissa_bits

    @property
    def unsigned_bits(self) -> int:
        """Get number of unsigned bits."""
        return self.exponent_bits + self.mantissa_bits

    @property
    def precision_bits(self) -> int:
        """Get number of significand bits below the binary point."""
        return self.mantissa_bits - self.explicit_jbit

    @property
    def sign_mask(self) -> int:
        """Get sign field mask."""
        # IEEE 754: |s|_____|__________|
        return 1 << self.unsigned_bits

    @property
    def exponent_mask(self) -> int:
        """Get exponent field mask."""
        # IEEE 754: |_|eeeee|__________|
        return ((1 << self.exponent_bits) - 1) << self.mantissa_bits

    @property
    def mantissa_mask(self) -> int:
        """Get mantissa field mask."""
        # IEEE 754: |_|_____|tttttttttt|
        return (1 << self.mantissa_bits) - 1

    @property
    def unsigned_mask(self) -> int:
        """Get unsigned field mask."""
        # IEEE 754: |_|eeeee|tttttttttt|
        return (1 << self.unsigned_bits) - 1

    @property
    def hidden_bit(self) -> int:
        """Get leading significand bit in integer significand form."""
        # implicit: |_|____1|__________|
        # explicit: |_|_____|1_________|
        return 1 << self.precision_bits

    @property
    def exponent_bias(self) -> int:
        """Get exponent bias."""
        # IEEE 754: 2^(k-1)-1, |01111|
        return (1 << (self.exponent_bits - 1)) - 1

    @property
    def max_biased_exp(self) -> int:
        """Get biased exponent of maximum value."""
        # IEEE 754: 2^(k)-2, |11110|
        # OCP E4M3: 2^(k)-1, |1111|
        if self.has_infinity:
            return self.exponent_bias * 2
        return self.exponent_bias * 2 + 1

    @property
    def max_exponent(self) -> int:
        """Get unbiased exponent of the largest normal value."""
        return self.max_biased_exp - self.exponent_bias

    @property
    def max_unsigned(self) -> int:
        """Get unsigned field of maximum value."""
        # IEEE 754: |_|11110|1111111111|
        # OCP E4M3: |_|1111|110|
        if self.has_infinity:
            return (self.max_biased_exp << self.mantissa_bits) | self.mantissa_mask
        return self.exponent_mask | (self.mantissa_mask - 1)

    @property
    def inf_unsigned(self) -> int:
        """Get unsigned field of inf."""
        # IEEE 754: |_|11111|0000000000|
        # OCP E4M3: no inf
        if not self.has_infinity:
            raise InfinityNotSupportedError(f"{self} has no Infinity encoding")
        return self.exponent_mask

    @property
    def nan_unsigned(self) -> int:
        """Get unsigned field of the canonical NaN."""
        # IEEE 754: |_|11111|0000000001|
        # OCP E4M3: |_|1111|111|
        if self.has_infinity:
            return self.exponent_mask | 1
        return self.exponent_mask | self.mantissa_mask

    @property
    def zero_unsigned(self) -> int:
        """Get unsigned field of zero."""
        # IEEE 754: |_|00000|0000000000|
        return 0

    @property
    def implicit_format(self) -> "FloatFormat":
        """Get the implicit-J-bit format with the same precision."""
        if not self.explicit_jbit:
            return self
        return replace(self, mantissa_bits=self.mantissa_bits - 1, explicit_jbit=False, value_dtype=None)

    # --- Dtype helpers ---

    @property
    def storage_dtype(self) -> torch.dtype:
        """Get storage integer dtype for this format."""
        return get_storage_integer_dtype(self.total_bits)

    def __str__(self) -> str:
        flags = "".join(
            [
                "j" if self.explicit_jbit else "",
                "z" if self.subnormal_as_zero else "",
                "fn" if not self.has_infinity else "",
            ]
        )
        return f"E{self.exponent_bits}M{self.mantissa_bits}{flags}"


# IEEE 754 binary64
FLOAT64 = FloatFormat(exponent_bits=11, mantissa_bits=52, value_dtype=torch.float64)
# IEEE 754 binary32
FLOAT32 = FloatFormat(exponent_bits=8, mantissa_bits=23, value_dtype=torch.float32)
# Google Brain Float16
BFLOAT16 = FloatFormat(exponent_bits=8, mantissa_bits=7, value_dtype=torch.bfloat16)
# IEEE 754 binary16
FLOAT16 = FloatFormat(exponent_bits=5, mantissa_bits=10, value_dtype=torch.float16)
# NVIDIA TensorFloat-32, no native tensor layout
TFLOAT32 = FloatFormat(exponent_bits=8, mantissa_bits=10)
# NVIDIA FP8 with 5-bit exponent
FP8_E5M2 = FloatFormat(exponent_bits=5, mantissa_bits=2, value_dtype=torch.float8_e5m2)
# NVIDIA FP8 with 4-bit exponent, no inf, NaN only at all-ones
FP8_E4M3 = FloatFormat(exponent_bits=4, mantissa_bits=3, value_dtype=torch.float8_e4m3fn, has_infinity=False)

_DTYPE_TO_FLOAT_FORMAT = {
    torch.float64: FLOAT64,
    torch.float32: FLOAT32,
    torch.bfloat16: BFLOAT16,
    torch.float16: FLOAT16,
    torch.float8_e5m2: FP8_E5M2,
    torch.float8_e4m3fn: FP8_E4M3,
}


def format_of_dtype(dtype: torch.dtype) -> FloatFormat:
    """Return the preset sharing the bit layout of a torch floating-point dtype."""
    if dtype not in _DTYPE_TO_FLOAT_FORMAT:
        raise ValueError(f"Unsupported dtype: {dtype}, expected one of {list(_DTYPE_TO_FLOAT_FORMAT)}")
    return _DTYPE_TO_FLOAT_FORMAT[dtype]


class FloatingPointConstants(StrEnum):
    """Named values every format can produce.

    Attributes:
        POSITIVE_ZERO: `0 00..0 00..0`.
        NEGATIVE_ZERO: `1 00..0 00..0`.
        ONE: `0 01..1 00..0`.
        NAN: Canonical quiet NaN.
        POSITIVE_INFINITY: `0 11..1 00..0`.
        NEGATIVE_INFINITY: `1 11..1 00..0`.
        SMALLEST_POSITIVE_SUBNORMAL: `0 00..0 00..1`.
        LARGEST_POSITIVE_SUBNORMAL: `0 00..0 11..1`.
        SMALLEST_POSITIVE_NORMAL: `0 00..1 00..0`.
        LARGEST_NORMAL: Largest finite value.
        LARGEST_LESS_THAN_ONE: Predecessor of one.
        SMALLEST_LARGER_THAN_ONE: Successor of one.

    """

    POSITIVE_ZERO = auto()
    NEGATIVE_ZERO = auto()
    ONE = auto()
    NAN = auto()
    POSITIVE_INFINITY = auto()
    NEGATIVE_INFINITY = auto()
    SMALLEST_POSITIVE_SUBNORMAL = auto()
    LARGEST_POSITIVE_SUBNORMAL = auto()
    SMALLEST_POSITIVE_NORMAL = auto()
    LARGEST_NORMAL = auto()
    LARGEST_LESS_THAN_ONE = auto()
    SMALLEST_LARGER_THAN_ONE = auto()


# --- Internal implementation ---


def insert_jbit(unsigned_field: int, fmt: FloatFormat) -> int:
    """Re-pack an unsigned field of `fmt.implicit_format` with an explicit J-bit."""
    if not fmt.explicit_jbit:
        return unsigned_field

    implicit = fmt.implicit_format
    exp_field = unsigned_field >> implicit.mantissa_bits
    mantissa_field = unsigned_field & implicit.mantissa_mask

    # zero/subnormal: J=0, normal: J=1, inf/nan: J=0
    is_normal = 0 < exp_field < (1 << fmt.exponent_bits) - 1
    mantissa_field |= is_normal << implicit.mantissa_bits

    return (exp_field << fmt.mantissa_bits) | mantissa_field


def parts_to_float_binary(
    sign: bool,
    exponent: int,
    mantissa: int,
    fmt: FloatFormat,
    *,
    rounding: RoundingMode = RoundingMode.HALF_TO_EVEN,
    is_inf: bool = False,
    is_nan: bool = False,
    overflow_to_inf: bool | None = None,
) -> int:
    """Construct a floating-point binary bit pattern from decomposed parts.

    The represented value is (-1)^sign * 2^exponent * mantissa, with an
    arbitrary-precision mantissa. The result is rounded once into `fmt`.

    Args:
        sign: False=positive, True=negative.
        exponent: Unbiased exponent of the mantissa LSB.
        mantissa: Non-negative integer mantissa.
        fmt: Target floating-point format.
        rounding: Rounding mode for mantissa truncation.
        is_inf: Encode a signed infinity instead of the parts.
        is_nan: Encode the canonical NaN instead of the parts.
        overflow_to_inf: Override the overflow policy. By default it follows
            `rounding`; formats without Infinity always saturate.

    Returns:
        Binary payload in `fmt` integer layout.

    """
    if mantissa < 0:
        raise ValueError(f"mantissa ({mantissa}) < 0, pass the sign separately")

    sign_field = int(sign) << fmt.unsigned_bits

    # --- 1. Special values ---

    if is_nan:
        return sign_field | fmt.nan_unsigned

    if is_inf:
        if fmt.has_infinity:
            return sign_field | fmt.inf_unsigned
        logger.debug("saturating infinity to the largest finite value of %s", fmt)
        return sign_field | fmt.max_unsigned

    if mantissa == 0:
        return sign_field | fmt.zero_unsigned

    # --- 2. Align mantissa to target format window ---

    # encoding happens in the implicit view, J-bit is re-inserted at the end
    implicit = fmt.implicit_format

    msb_position = mantissa.bit_length() - 1
    biased_exp = exponent + msb_position + implicit.exponent_bias

    # normal case (biased_exp >= 1): as `01.xxxx * 2^(E-bias)`
    # subnormal case (biased_exp < 1): as `00.xxxx * 2^(1-bias)`

    rshift = msb_position - implicit.mantissa_bits + max(1 - biased_exp, 0)

    round_offset = round_offset_true_form(mantissa, sign, rshift, rounding)

    if rshift >= 0:
        mantissa >>= rshift
    else:
        mantissa <<= -rshift

    # --- 3. Assemble exponent and mantissa fields ---

    exp_field = max(biased_exp, 0)
    mantissa_field = mantissa & implicit.mantissa_mask

    unsigned_field = (exp_field << implicit.mantissa_bits) | mantissa_field

    # --- 4. Apply rounding carry to packed unsigned field ---

    # normal case w/i carry: `(E, [01].1111)` -> `(E+1, [01].0000)`
    # subnormal case w/i carry: `(0, [00].1111)` -> `(1, [01].0000)`
    # normal case overflow: `(110, [01].1111)` -> `(111, [01].0000)`, handled below

    unsigned_field += round_offset

    # --- 5. Overflow and flush-to-zero ---

    if unsigned_field > implicit.max_unsigned:
        if overflow_to_inf is None:
            overflow_to_inf = overflows_to_infinity(rounding, sign)

        if fmt.has_infinity and overflow_to_inf:
            unsigned_field = implicit.inf_unsigned
        else:
            logger.debug("saturating overflow to the largest finite value of %s", fmt)
            unsigned_field = implicit.max_unsigned

    if fmt.subnormal_as_zero and unsigned_field < implicit.hidden_bit:
        unsigned_field = implicit.zero_unsigned

    return sign_field | insert_jbit(unsigned_field, fmt)
