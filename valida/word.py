"""Four-cell big-endian machine words."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from .field import P

MEMORY_CELL_BYTES = 4
_U32_LIMIT = 1 << 32
_WORD_BITS = 8 * MEMORY_CELL_BYTES


@dataclass(frozen=True, order=True)
class Word:
    """A memory word: four cells, most significant first.

    Cells are bytes for machine values or field elements for trace values.
    Ordering compares the cells lexicographically.
    """

    cells: tuple = (0,) * MEMORY_CELL_BYTES

    def __post_init__(self) -> None:
        cells = tuple(self.cells)
        if len(cells) != MEMORY_CELL_BYTES:
            raise ValueError(f"a word has {MEMORY_CELL_BYTES} cells, got {len(cells)}")
        object.__setattr__(self, "cells", cells)

    @classmethod
    def from_int(cls, value: int) -> Word:
        """Split an unsigned 32-bit integer into big-endian bytes."""
        if not 0 <= value < _U32_LIMIT:
            raise ValueError(f"{value} does not fit an unsigned 32-bit word")
        return cls(tuple(value.to_bytes(MEMORY_CELL_BYTES, "big")))

    @classmethod
    def from_element(cls, value: Any) -> Word:
        """Place a single value in the least significant cell."""
        return cls((0,) * (MEMORY_CELL_BYTES - 1) + (value,))

    def transform(self, func: Callable[[Any], Any]) -> Word:
        """Apply ``func`` to every cell."""
        return Word(tuple(map(func, self.cells)))

    def reduce(self) -> int:
        """Combine the cells as base-256 digits into one field element."""
        total = sum(
            cell * (1 << (8 * n)) for n, cell in enumerate(reversed(self.cells))
        )
        return total % P

    def __int__(self) -> int:
        return int.from_bytes(bytes(self.cells), "big")

    def __iter__(self) -> Iterator[Any]:
        return iter(self.cells)

    def __getitem__(self, index: int) -> Any:
        return self.cells[index]

    def __len__(self) -> int:
        return MEMORY_CELL_BYTES

    def __add__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        return Word.from_int((int(self) + int(other)) % _U32_LIMIT)

    def __sub__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        difference = int(self) - int(other)
        if difference < 0:
            raise OverflowError("word subtraction underflowed")
        return Word.from_int(difference)

    def __mul__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        product = int(self) * int(other)
        if product >= _U32_LIMIT:
            raise OverflowError("word multiplication overflowed")
        return Word.from_int(product)

    def __floordiv__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        return Word.from_int(int(self) // int(other))

    def __lshift__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        shift = _shift_amount(other)
        return Word.from_int((int(self) << shift) % _U32_LIMIT)

    def __rshift__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        return Word.from_int(int(self) >> _shift_amount(other))

    def __xor__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        return Word(tuple(a ^ b for a, b in zip(self.cells, other.cells)))

    def __and__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        return Word(tuple(a & b for a, b in zip(self.cells, other.cells)))

    def __or__(self, other: object) -> Word:
        if not isinstance(other, Word):
            return NotImplemented
        return Word(tuple(a | b for a, b in zip(self.cells, other.cells)))


def _shift_amount(word: Word) -> int:
    shift = int(word)
    if shift >= _WORD_BITS:
        raise OverflowError(f"shift by {shift} is out of range for a 32-bit word")
    return shift