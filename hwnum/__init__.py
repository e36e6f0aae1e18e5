# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""hwnum package for bit-exact hardware number formats."""

from .config import RandomRangeConfig
from .type import (
    BFLOAT16,
    FLOAT16,
    FLOAT32,
    FLOAT64,
    FP8_E4M3,
    FP8_E5M2,
    TFLOAT32,
    FixedFormat,
    FixedPointValue,
    FloatFormat,
    FloatingPointConstants,
    FloatingPointPopulator,
    FloatingPointValue,
    HwNumError,
    InfeasibleConversionError,
    InfeasibleRangeError,
    InfinityNotSupportedError,
    RoundingMode,
    SignMagnitudeFormat,
    SignMagnitudeValue,
    WidthMismatchError,
    bits_of,
    format_bits,
    parse_bits,
)

__all__ = [
    # sampling config
    "RandomRangeConfig",
    # bits
    "bits_of",
    "parse_bits",
    "format_bits",
    # errors
    "HwNumError",
    "WidthMismatchError",
    "InfinityNotSupportedError",
    "InfeasibleConversionError",
    "InfeasibleRangeError",
    # rounding
    "RoundingMode",
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
    # values
    "FloatingPointValue",
    "FloatingPointPopulator",
    "FixedPointValue",
    "SignMagnitudeValue",
]
