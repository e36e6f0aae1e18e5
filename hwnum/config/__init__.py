# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Configuration types for value generation."""

from .sampling import RandomRangeConfig

__all__ = (
    # sampling
    "RandomRangeConfig",
)
