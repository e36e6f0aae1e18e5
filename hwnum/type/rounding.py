# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Rounding utils."""

from enum import StrEnum, auto
from typing import NamedTuple


class RoundingMode(StrEnum):
    """Rounding modes.

    Attributes:
        FULL_DOWN: Round towards -inf (Floor).
        FULL_CEIL: Round towards +inf (Ceil).
        FULL_TO_ZERO: Round towards zero (Truncate).
        FULL_TO_INF: Round away from zero.
        HALF_DOWN: Round to nearest, ties to -inf.
        HALF_CEIL: Round to nearest, ties to +inf.
        HALF_TO_ZERO: Round to nearest, ties to zero.
        HALF_TO_INF: Round to nearest, ties away from zero.
        HALF_TO_EVEN: Round to nearest, ties to even.
        HALF_TO_ODD: Round to nearest, ties to odd.

    """

    FULL_DOWN = auto()
    FULL_CEIL = auto()
    FULL_TO_ZERO = auto()
    FULL_TO_INF = auto()
    HALF_DOWN = auto()
    HALF_CEIL = auto()
    HALF_TO_ZERO = auto()
    HALF_TO_INF = auto()
    HALF_TO_EVEN = auto()
    HALF_TO_ODD = auto()


class GuardBits(NamedTuple):
    """Bits produced by dropping the low part of a significand.

    Attributes:
        kept: Remaining integer after the right shift.
        guard: First dropped bit (weight 1/2 ULP).
        round: Second dropped bit (weight 1/4 ULP).
        sticky: OR of every dropped bit below `round`.

    """

    kept: int
    guard: bool
    round: bool
    sticky: bool

    @property
    def lsb(self) -> bool:
        """LSB of the kept part."""
        return (self.kept & 1) != 0

    @property
    def inexact(self) -> bool:
        """Whether any dropped bit is set."""
        return self.guard or self.round or self.sticky


def split_guard_bits(magnitude: int, drop_shift: int) -> GuardBits:
    """Split a non-negative integer into kept bits and Guard/Round/Sticky.

    Args:
        magnitude: Non-negative integer significand.
        drop_shift: Number of low bits to drop. Values <= 0 drop nothing.

    Returns:
        The kept integer and the three rounding bits.

    """
    if magnitude < 0:
        raise ValueError(f"magnitude ({magnitude}) < 0")
    if drop_shift <= 0:
        return GuardBits(magnitude << -drop_shift, False, False, False)

    # |kkkk|g|r|ssss|
    kept = magnitude >> drop_shift
    guard = (magnitude >> (drop_shift - 1)) & 1 != 0
    round_ = drop_shift >= 2 and (magnitude >> (drop_shift - 2)) & 1 != 0
    sticky = drop_shift >= 3 and magnitude & ((1 << (drop_shift - 2)) - 1) != 0
    return GuardBits(kept, guard, round_, sticky)


def round_offset_true_form(
    magnitude: int,
    sign: bool,
    drop_shift: int,
    mode: RoundingMode,
) -> int:
    """Compute the rounding increment for a sign-magnitude significand.

    The increment applies to `magnitude >> drop_shift`.

    Args:
        magnitude: Non-negative significand.
        sign: True for negative values.
        drop_shift: Number of low bits being dropped.
        mode: Rounding mode.

    Returns:
        1 if the kept magnitude must be incremented, 0 otherwise.

    """
    bits = split_guard_bits(magnitude, drop_shift)

    has_drop = bits.inexact
    has_guard = bits.guard
    has_below = bits.round or bits.sticky

    # truth table for HALF_* (magnitude view, G = guard, B = round|sticky)
    #
    # | value | S | G | B | down | ceil | zero | inf |  even  |   odd  |
    # | >+a.5 | 0 | 1 | 1 |  +1  |  +1  |  +1  | +1  |   +1   |   +1   |
    # |  +a.5 | 0 | 1 | 0 |  +0  |  +1  |  +0  | +1  | +lsb/e | +lsb/o |
    # |  -a.5 | 1 | 1 | 0 |  +1  |  +0  |  +0  | +1  | +lsb/e | +lsb/o |
    # | <-a.5 | 1 | 1 | 1 |  +1  |  +1  |  +1  | +1  |   +1   |   +1   |

    match mode:
        case RoundingMode.FULL_DOWN:  # round towards -inf
            offset = has_drop and sign

        case RoundingMode.FULL_CEIL:  # round towards +inf
            offset = has_drop and not sign

        case RoundingMode.FULL_TO_ZERO:  # round towards zero
            offset = False

        case RoundingMode.FULL_TO_INF:  # round away from zero
            offset = has_drop

        case RoundingMode.HALF_DOWN:  # round to nearest, ties to -inf
            offset = has_guard and (has_below or sign)

        case RoundingMode.HALF_CEIL:  # round to nearest, ties to +inf
            offset = has_guard and (has_below or not sign)

        case RoundingMode.HALF_TO_ZERO:  # round to nearest, ties to zero
            offset = has_guard and has_below

        case RoundingMode.HALF_TO_INF:  # round to nearest, ties away from zero
            offset = has_guard

        case RoundingMode.HALF_TO_EVEN:  # round to nearest, ties to even
            offset = has_guard and (has_below or bits.lsb)

        case RoundingMode.HALF_TO_ODD:  # round to nearest, ties to odd
            offset = has_guard and (has_below or not bits.lsb)

        case _:
            raise ValueError(f"Unsupported rounding mode: {mode}")

    return int(offset)


def round_offset_complement(
    complement: int,
    drop_shift: int,
    mode: RoundingMode,
) -> int:
    """Compute the rounding increment for a two's-complement fixed-point value.

    The increment applies to `complement >> drop_shift`, which already rounds
    towards -inf.

    Args:
        complement: Signed integer (Python ints behave as infinite two's complement).
        drop_shift: Number of low bits being dropped.
        mode: Rounding mode.

    Returns:
        1 if the floored result must be incremented, 0 otherwise.

    """
    if drop_shift <= 0:
        return 0

    lsb_mask = 1 << drop_shift  # LSB of integer part (?x.????)
    drop_mask = lsb_mask - 1  # All drop part (??.xxxx)
    guard_mask = lsb_mask >> 1  # Guard bit, (??.x???)

    sign = complement < 0
    lsb_is_odd = (complement & lsb_mask) != 0
    has_drop = (complement & drop_mask) != 0
    has_guard = (complement & guard_mask) != 0
    has_below = (complement & (guard_mask - 1)) != 0

    # truth table for FULL_* (floor view, F = has_drop)
    #
    # | value | floor | S | F | down | ceil | zero | inf |
    # | >+a.0 |  +a   | 0 | 1 |  +0  |  +1  |  +0  | +1  |
    # | <-a.0 |  -a-1 | 1 | 1 |  +0  |  +1  |  +1  | +0  |

    match mode:
        case RoundingMode.FULL_DOWN:  # round towards -inf
            offset = False

        case RoundingMode.FULL_CEIL:  # round towards +inf
            offset = has_drop

        case RoundingMode.FULL_TO_ZERO:  # round towards zero
            offset = has_drop and sign

        case RoundingMode.FULL_TO_INF:  # round away from zero
            offset = has_drop and not sign

        case RoundingMode.HALF_DOWN:  # round to nearest, ties to -inf
            offset = has_guard and has_below

        case RoundingMode.HALF_CEIL:  # round to nearest, ties to +inf
            offset = has_guard

        case RoundingMode.HALF_TO_ZERO:  # round to nearest, ties to zero
            offset = has_guard and (has_below or sign)

        case RoundingMode.HALF_TO_INF:  # round to nearest, ties away from zero
            offset = has_guard and (has_below or not sign)

        case RoundingMode.HALF_TO_EVEN:  # round to nearest, ties to even
            offset = has_guard and (has_below or lsb_is_odd)

        case RoundingMode.HALF_TO_ODD:  # round to nearest, ties to odd
            offset = has_guard and (has_below or not lsb_is_odd)

        case _:
            raise ValueError(f"Unsupported rounding mode: {mode}")

    return int(offset)


def overflows_to_infinity(mode: RoundingMode, sign: bool) -> bool:
    """Decide whether a magnitude overflow becomes Infinity or saturates.

    Round-to-nearest and away-from-zero modes overflow to Infinity; a mode
    that rounds towards zero for this sign keeps the largest finite magnitude.

    """
    match mode:
        case RoundingMode.FULL_TO_ZERO:
            return False
        case RoundingMode.FULL_DOWN:
            return sign
        case RoundingMode.FULL_CEIL:
            return not sign
        case _:
            return True
