"""The range checker chip: counts how often each value below a bound is used."""

from __future__ import annotations

import dataclasses
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .air import Chip, Interaction, VirtualPairCol
from .field import P

__all__ = ["NUM_RANGE_COLS", "RANGE_COL_MAP", "RangeCheckerChip", "RangeCols"]


@dataclass(frozen=True)
class RangeCols:
    """One row of the range checker trace, by column name."""

    mult: Any = 0
    counter: Any = 0


NUM_RANGE_COLS = len(dataclasses.fields(RangeCols))
RANGE_COL_MAP = RangeCols(*range(NUM_RANGE_COLS))


@dataclass(eq=False)
class RangeCheckerChip(Chip):
    """Multiplicities of every value in ``[0, maximum)`` that was range checked."""

    maximum: int = 256
    count: Counter = dataclasses.field(default_factory=Counter)

    def __post_init__(self) -> None:
        if self.maximum <= 0:
            raise ValueError("maximum must be positive")

    def range_check(self, word: Iterable[Any]) -> None:
        """Record every cell of ``word`` in the counter."""
        for cell in word:
            self.count[int(cell)] += 1

    def generate_trace(self, machine: Any) -> list[list[int]]:
        rows = []
        for n in range(self.maximum):
            row = [0] * NUM_RANGE_COLS
            row[RANGE_COL_MAP.mult] = self.count.get(n, 0) % P
            row[RANGE_COL_MAP.counter] = n % P
            rows.append(row)
        return rows

    def global_receives(self, machine: Any) -> list[Interaction]:
        """Receive each counter value on the machine's range bus."""
        return [
            Interaction(
                (VirtualPairCol.single_main(RANGE_COL_MAP.counter),),
                VirtualPairCol.single_main(RANGE_COL_MAP.mult),
                machine.range_bus(),
            )
        ]

    def preprocessed_trace(self) -> list[list[int]]:
        return [[n % P] for n in range(self.maximum)]

    def eval(self, builder: Any) -> None:
        """The range checker imposes no constraints of its own."""