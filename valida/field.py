"""Arithmetic helpers over the BabyBear prime field and trace padding."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

# The BabyBear prime, 2^31 - 2^27 + 1. It serves as both the base field and,
# for now, the extension field of the machine.
P = 2**31 - 2**27 + 1
MODULUS = P

_I32_LIMIT = 2**31


def inverse(value: int) -> int:
    """Return the multiplicative inverse of ``value`` modulo ``P``."""
    value %= P
    if value == 0:
        raise ZeroDivisionError("zero has no multiplicative inverse")
    return pow(value, P - 2, P)


def batch_multiplicative_inverse(values: Iterable[int]) -> list[int]:
    """Invert every element, leaving zeros as zero."""
    reduced = (value % P for value in values)
    return [inverse(value) if value else 0 for value in reduced]


def powers(base: int) -> Iterator[int]:
    """Yield ``1, base, base**2, ...`` modulo ``P`` without end."""
    base %= P
    current = 1
    while True:
        yield current
        current = current * base % P


def from_signed(value: int) -> int:
    """Map a signed 32-bit integer into the field, negatives to ``P - |value|``."""
    if not -_I32_LIMIT < value < _I32_LIMIT:
        raise OverflowError(f"{value} does not fit a signed 32-bit integer")
    return value % P


def next_power_of_two(n: int) -> int:
    """Return the smallest power of two that is at least ``n`` (1 for 0)."""
    if n < 0:
        raise ValueError("n must not be negative")
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def pad_to_power_of_two(values: Iterable[int], width: int) -> list[int]:
    """Pad a flattened row-major trace with zero rows to a power-of-two height."""
    if width <= 0:
        raise ValueError("width must be positive")
    padded = list(values)
    if len(padded) % width:
        raise ValueError(
            f"trace of {len(padded)} values is not a whole number of rows of width {width}"
        )
    rows = len(padded) // width
    padded.extend([0] * ((next_power_of_two(rows) - rows) * width))
    return padded