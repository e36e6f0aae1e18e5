# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Value types, formats, and rounding helpers."""

from .dtype import get_storage_integer_dtype
from .errors import (
    HwNumError,
    InfeasibleConversionError,
    InfeasibleRangeError,
    InfinityNotSupportedError,
    WidthMismatchError,
)
from .fixed_type import FixedFormat, FixedPointValue
from .float_populator import FloatingPointPopulator
from .float_type import (
    BFLOAT16,
    FLOAT16,
    FLOAT32,
    FLOAT64,
    FP8_E4M3,
    FP8_E5M2,
    TFLOAT32,
    FloatFormat,
    FloatingPointConstants,
    format_of_dtype,
)
from .float_value import FloatingPointValue
from .rounding import RoundingMode
from .sign_magnitude_type import SignMagnitudeFormat, SignMagnitudeValue
from .tensor import from_native_tensor, pack_values, to_native_tensor, unpack_values
from .utils import bits_of, format_bits, parse_bits

__all__ = [
    # bits
    "bits_of",
    "parse_bits",
    "format_bits",
    # dtype
    "get_storage_integer_dtype",
    # errors
    "HwNumError",
    "WidthMismatchError",
    "InfinityNotSupportedError",
    "InfeasibleConversionError",
    "InfeasibleRangeError",
    # data format
    "FloatFormat",
    "FixedFormat",
    "SignMagnitudeFormat",
    "FLOAT64",
    "FLOAT32",
    "BFLOAT16",
    "FLOAT16",
    "TFLOAT32",
    "FP8_E5M2",
    "FP8_E4M3",
    "FloatingPointConstants",
    "format_of_dtype",
    # values
    "FloatingPointValue",
    "FloatingPointPopulator",
    "FixedPointValue",
    "SignMagnitudeValue",
    # rounding
    "RoundingMode",
    # tensor bridge
    "pack_values",
    "unpack_values",
    "to_native_tensor",
    "from_native_tensor",
]
