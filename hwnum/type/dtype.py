# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Helpers for mapping bit patterns to torch integer dtypes."""

import torch

from .utils import to_signed, to_unsigned


def get_storage_integer_dtype(bit_width: int) -> torch.dtype:
    """Return the smallest signed dtype that stores `bit_width` bits."""
    if 0 < bit_width <= 8:
        return torch.int8
    if 8 < bit_width <= 16:
        return torch.int16
    if 16 < bit_width <= 32:
        return torch.int32
    if 32 < bit_width <= 64:
        return torch.int64
    raise ValueError(f"Unsupported bit width: {bit_width}")


def pattern_to_storage(pattern: int, bit_width: int) -> int:
    """Map an unsigned `bit_width`-bit pattern to the value its storage dtype holds."""
    # storage dtypes are signed, so a set MSB of a full-width pattern reads negative
    storage_bits = torch.iinfo(get_storage_integer_dtype(bit_width)).bits
    return to_signed(pattern, storage_bits)


def storage_to_pattern(stored: int, bit_width: int) -> int:
    """Inverse of `pattern_to_storage`."""
    return to_unsigned(stored, bit_width)
