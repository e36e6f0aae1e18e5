# Copyright (c) 2024 The hwnum Authors
# SPDX-License-Identifier: MIT

"""Bound configuration for constrained random value generation."""

from typing import Any, NamedTuple


class RandomRangeConfig(NamedTuple):
    """Configuration for constrained random generation.

    Bounds are values of the type being generated; at most one lower and one
    upper bound may be given.

    Attributes:
        gt: Exclusive lower bound.
        gte: Inclusive lower bound.
        lt: Exclusive upper bound.
        lte: Inclusive upper bound.
        gen_normal: Allow normal results (floating point only).
        gen_subnormal: Allow subnormal results (floating point only).

    """

    gt: Any = None
    gte: Any = None
    lt: Any = None
    lte: Any = None

    gen_normal: bool = True
    gen_subnormal: bool = True

    def validate(self) -> None:
        """Reject contradictory option combinations.

        Raises:
            ValueError: If two lower or two upper bounds are given, or both
                categories are disabled.

        """
        if self.gt is not None and self.gte is not None:
            raise ValueError("only one of `gt` and `gte` may be given")
        if self.lt is not None and self.lte is not None:
            raise ValueError("only one of `lt` and `lte` may be given")
        if not self.gen_normal and not self.gen_subnormal:
            raise ValueError("at least one of `gen_normal` and `gen_subnormal` must be set")

    @property
    def lower(self) -> tuple[Any, bool]:
        """Lower bound and whether it is inclusive; `(None, True)` if unbounded."""
        if self.gt is not None:
            return self.gt, False
        return self.gte, True

    @property
    def upper(self) -> tuple[Any, bool]:
        """Upper bound and whether it is inclusive; `(None, True)` if unbounded."""
        if self.lt is not None:
            return self.lt, False
        return self.lte, True

    @property
    def is_unconstrained_category(self) -> bool:
        """Whether zero and infinities are eligible, i.e. both categories are allowed."""
        return self.gen_normal and self.gen_subnormal
