# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Bridge between scalar values and torch tensors of bit patterns."""

from collections.abc import Sequence

import torch
from torch import Tensor

from .dtype import pattern_to_storage, storage_to_pattern
from .errors import WidthMismatchError
from .float_type import FloatFormat, format_of_dtype
from .float_value import FloatingPointValue


def pack_values(values: Sequence[FloatingPointValue]) -> Tensor:
    """Pack values of one format into a 1-D tensor of their bit patterns.

    Args:
        values: Non-empty sequence of values sharing a format.

    Returns:
        Tensor in the format's storage integer dtype.

    """
    if not values:
        raise ValueError("cannot pack an empty sequence")

    fmt = values[0].fmt
    if any(v.fmt != fmt for v in values):
        raise WidthMismatchError(f"all packed values must share the format {fmt}")

    data = [pattern_to_storage(v.payload, fmt.total_bits) for v in values]
    return torch.tensor(data, dtype=fmt.storage_dtype)


def unpack_values(payload: Tensor, fmt: FloatFormat) -> list[FloatingPointValue]:
    """Inverse of `pack_values`, flattening any tensor shape."""
    if payload.dtype != fmt.storage_dtype:
        raise ValueError(f"payload dtype {payload.dtype} does not match storage dtype {fmt.storage_dtype} of {fmt}")
    return [FloatingPointValue(storage_to_pattern(x, fmt.total_bits), fmt) for x in payload.flatten().tolist()]


def to_native_tensor(values: Sequence[FloatingPointValue]) -> Tensor:
    """Pack values into a tensor of the format's native torch float dtype."""
    fmt = values[0].fmt if values else None
    if fmt is None or fmt.value_dtype is None:
        raise ValueError(f"format {fmt} has no native torch dtype")
    return pack_values(values).view(fmt.value_dtype)


def from_native_tensor(value: Tensor) -> list[FloatingPointValue]:
    """Reinterpret the elements of a native torch float tensor as values."""
    fmt = format_of_dtype(value.dtype)
    return unpack_values(value.contiguous().view(fmt.storage_dtype), fmt)
