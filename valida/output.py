"""The output chip: bytes written to the program's output, with their clock cycles."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import pairwise
from typing import Any

from .air import Chip, Interaction, VirtualPairCol
from .field import P, pad_to_power_of_two
from .machine import CPU_MEMORY_CHANNELS, Operands
from .opcodes import Opcode
from .word import MEMORY_CELL_BYTES, Word

__all__ = ["NUM_OUTPUT_COLS", "OUTPUT_COL_MAP", "OutputChip", "OutputCols"]


@dataclass(frozen=True)
class OutputCols:
    """One row of the output trace, by column name."""

    clk: Any = 0
    value: Any = 0
    is_real: Any = 0
    diff: Any = 0
    counter: Any = 0
    counter_mult: Any = 0
    opcode: Any = 0

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> OutputCols:
        """Read the named columns out of a row."""
        return cls(*list(row[:NUM_OUTPUT_COLS]))

    def to_row(self) -> list[Any]:
        """Lay the columns out as a trace row."""
        return [getattr(self, f.name) for f in dataclasses.fields(self)]


NUM_OUTPUT_COLS = len(dataclasses.fields(OutputCols))
OUTPUT_COL_MAP = OutputCols(*range(NUM_OUTPUT_COLS))


@dataclass(eq=False)
class OutputChip(Chip):
    """Every output byte as a ``(clk, byte)`` pair, in the order written."""

    values: list[tuple[int, int]] = dataclasses.field(default_factory=list)

    def record(self, clk: int, word: Word, operands: Operands) -> int:
        """Log the least significant byte of ``word`` as output at ``clk``.

        The immediate flag must be set and operand ``c`` must be zero: one byte
        of one word is written at a time.
        """
        if operands.is_imm() != 1:
            raise ValueError("output instruction requires the immediate flag to be set")
        if operands.c() != 0:
            raise ValueError("output instruction requires operand c to be zero")
        byte = word[-1]
        self.values.append((clk, byte))
        return byte

    def generate_trace(self, machine: Any) -> list[list[int]]:
        table_len = len(self.values)
        rows: list[list[int]] = []
        for (clk_1, val_1), (clk_2, _) in pairwise(self.values):
            clk_diff = clk_2 - clk_1
            if clk_diff < 0:
                raise ValueError(
                    f"output clock went backwards from {clk_1} to {clk_2}"
                )
            num_rows = clk_diff // table_len + 1
            window = [OutputCols(clk=clk_1 % P, value=val_1 % P, is_real=1)]
            # Dummy outputs keep consecutive clock differences in range.
            window.extend(
                OutputCols(clk=(clk_1 + table_len * (n + 1)) % P)
                for n in range(1, num_rows)
            )
            clks = [cols.clk for cols in window] + [clk_2 % P]
            rows.extend(
                dataclasses.replace(cols, diff=(nxt - cur) % P).to_row()
                for cols, (cur, nxt) in zip(window, pairwise(clks))
            )

        if self.values:
            last_clk, last_value = self.values[-1]
            rows.append(
                OutputCols(clk=last_clk % P, value=last_value % P, is_real=1).to_row()
            )

        flat = pad_to_power_of_two(
            (value for row in rows for value in row), NUM_OUTPUT_COLS
        )
        return [
            flat[i:i + NUM_OUTPUT_COLS] for i in range(0, len(flat), NUM_OUTPUT_COLS)
        ]

    def global_receives(self, machine: Any) -> list[Interaction]:
        """Receive ``(opcode, memory channel cells..., clk)`` on the general bus."""
        values = [
            VirtualPairCol.constant(0)
            for _ in range(CPU_MEMORY_CHANNELS * MEMORY_CELL_BYTES)
        ]
        values[MEMORY_CELL_BYTES - 1] = VirtualPairCol.single_main(OUTPUT_COL_MAP.value)
        fields = [
            VirtualPairCol.single_main(OUTPUT_COL_MAP.opcode),
            *values,
            VirtualPairCol.single_main(OUTPUT_COL_MAP.clk),
        ]
        return [
            Interaction(
                fields,
                VirtualPairCol.single_main(OUTPUT_COL_MAP.is_real),
                machine.general_bus(),
            )
        ]

    def eval(self, builder: Any) -> None:
        local_row, next_row = builder.main
        local = OutputCols.from_row(local_row)
        nxt = OutputCols.from_row(next_row)

        # Range check constraints
        builder.when_transition().assert_eq(local.diff, nxt.clk - local.clk)
        builder.when_transition().assert_eq(nxt.counter, local.counter + 1)

        # Bus opcode constraint
        builder.when(local.is_real).assert_eq(local.opcode, int(Opcode.WRITE))