# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Exception types raised by value construction, conversion and sampling.

All errors derive from `ValueError`, so callers that only guard against bad
arguments keep catching them.
"""


class HwNumError(ValueError):
    """Base class of all hwnum domain errors."""


class WidthMismatchError(HwNumError):
    """A bit vector or literal does not match the declared field width."""


class InfinityNotSupportedError(HwNumError):
    """Infinity was requested from a format that has no Infinity encoding."""


class InfeasibleConversionError(HwNumError):
    """A value has no exact representation in the requested target."""


class InfeasibleRangeError(HwNumError):
    """Random-generation bounds admit no value of the requested category."""
