"""Integers that fit both signed and unsigned 64-bit fields."""

from __future__ import annotations

from dataclasses import dataclass

MAX_INT64 = 2**63 - 1


@dataclass(frozen=True)
class SafeInt64:
    """A non-negative integer no larger than the maximum signed 64-bit value.

    Such a value converts between signed and unsigned 64-bit fields without
    overflow, which log indices and tree sizes rely on.
    """

    value: int

    def __post_init__(self) -> None:
        number = self.value
        if isinstance(number, bool) or not isinstance(number, int):
            raise TypeError("only uint64 and int64 are supported")
        if number > MAX_INT64:
            raise ValueError(f"exceeded max int64: {number}")
        if number < 0:
            raise ValueError(f"negative integer: {number}")

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value