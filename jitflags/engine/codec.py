"""Digit-packed values: several small settings stored as base-10 digits of one integer.

Position 0 is the least significant digit. Example: with maxima (2, 2, 2),
`239` decodes to digits (9, 3, 2); position 0 is out of range and the repaired
value is `222`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

__all__ = ["decode_digits", "encode_digits", "DigitPack", "DigitProblem"]


def decode_digits(value: int, count: int) -> Tuple[Tuple[int, ...], int]:
    """Split `value` into `count` low digits plus whatever remains above them."""
    if value < 0:
        raise ValueError(f"digit-packed value must be non-negative, got {value}")
    digits = []
    rest = int(value)
    for _ in range(count):
        digits.append(rest % 10)
        rest //= 10
    return tuple(digits), rest


def encode_digits(digits: Sequence[int]) -> int:
    return sum(int(d) * 10**i for i, d in enumerate(digits))


@dataclass(frozen=True)
class DigitProblem:
    too_many_digits: bool
    position: Optional[int] = None  # set for an out-of-range digit


@dataclass(frozen=True)
class DigitPack:
    maxima: Tuple[int, ...]  # per-position maximum, position 0 first

    @property
    def count(self) -> int:
        return len(self.maxima)

    def check(self, value: int) -> Optional[DigitProblem]:
        """First problem found, scanning positions low to high before the excess check."""
        digits, rest = decode_digits(value, self.count)
        for i, (d, hi) in enumerate(zip(digits, self.maxima)):
            if d > hi:
                return DigitProblem(False, i)
        if rest != 0:
            return DigitProblem(True)
        return None

    def repair(self, value: int) -> int:
        digits, _ = decode_digits(value, self.count)
        return encode_digits(min(d, hi) for d, hi in zip(digits, self.maxima))
