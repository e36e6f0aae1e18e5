# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Integer and bit-vector manipulation utils."""

import myhdl
from myhdl import intbv


def bit_mask(width: int) -> int:
    """Return an all-ones mask of `width` bits."""
    if width < 0:
        raise ValueError(f"width ({width}) < 0")
    return (1 << width) - 1


def to_signed(value: int, width: int) -> int:
    """Interpret the low `width` bits of `value` as a two's-complement integer."""
    value &= bit_mask(width)
    # |1xxxx| -> |1xxxx| - 2^N
    if width > 0 and value >> (width - 1):
        value -= 1 << width
    return value


def to_unsigned(value: int, width: int) -> int:
    """Wrap a (possibly negative) integer into its `width`-bit two's-complement pattern."""
    return value & bit_mask(width)


def fits_signed(value: int, width: int) -> bool:
    """Check whether `value` lies in the signed `width`-bit range."""
    if width <= 0:
        return value == 0
    return -(1 << (width - 1)) <= value < (1 << (width - 1))


def fits_unsigned(value: int, width: int) -> bool:
    """Check whether `value` lies in the unsigned `width`-bit range."""
    return 0 <= value < (1 << width)


def div_sticky(dividend: int, divisor: int, extra_bits: int) -> int:
    """Compute `dividend / divisor` scaled by 2^extra_bits, with a sticky LSB.

    The returned quotient has one extra least-significant bit, set when the
    division is inexact, so that a later rounding step sees the discarded
    remainder.

    Args:
        dividend: Non-negative dividend.
        divisor: Positive divisor.
        extra_bits: Quotient fraction bits to produce before the sticky bit.

    Returns:
        `floor(dividend * 2^extra_bits / divisor) * 2 + (remainder != 0)`.

    """
    quotient, remainder = divmod(dividend << extra_bits, divisor)
    return (quotient << 1) | (remainder != 0)


# --- Sized bit vectors ---


def bits_of(value: int, width: int) -> intbv:
    """Wrap the low `width` bits of `value` (two's complement if negative) in a sized `intbv`."""
    return intbv(value & bit_mask(width))[width:]


def parse_bits(text: str) -> intbv:
    """Parse an MSB-first binary literal into a sized `intbv`; `_` separators are ignored."""
    digits = text.replace("_", "")
    if not digits or any(c not in "01" for c in digits):
        raise ValueError(f"Invalid binary string: {text!r}")
    return intbv(int(digits, 2))[len(digits):]


def format_bits(bits: intbv) -> str:
    """MSB-first binary string of a sized `intbv`."""
    return myhdl.bin(int(bits), len(bits))
