"""The native field chip: addition, subtraction and multiplication in the base field."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .air import Chip, Interaction, VirtualPairCol
from .field import P, pad_to_power_of_two
from .opcodes import Opcode
from .word import MEMORY_CELL_BYTES, Word

__all__ = [
    "COL_MAP",
    "NUM_COLS",
    "NativeFieldChip",
    "NativeFieldCols",
    "NativeFieldOpKind",
    "NativeFieldOperation",
]

NUM_COLS = 3 * MEMORY_CELL_BYTES + 3


@dataclass(frozen=True)
class NativeFieldCols:
    """One row of the native field trace, by column name."""

    input_1: Word = dataclasses.field(default_factory=Word)
    input_2: Word = dataclasses.field(default_factory=Word)
    output: Word = dataclasses.field(default_factory=Word)
    is_add: Any = 0
    is_sub: Any = 0
    is_mul: Any = 0

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> NativeFieldCols:
        """Read the named columns out of a row."""
        cells = list(row[:NUM_COLS])
        words = [
            Word(tuple(cells[start:start + MEMORY_CELL_BYTES]))
            for start in range(0, 3 * MEMORY_CELL_BYTES, MEMORY_CELL_BYTES)
        ]
        is_add, is_sub, is_mul = cells[3 * MEMORY_CELL_BYTES:]
        return cls(*words, is_add, is_sub, is_mul)

    def to_row(self) -> list[Any]:
        """Lay the columns out as a trace row."""
        return [
            *self.input_1,
            *self.input_2,
            *self.output,
            self.is_add,
            self.is_sub,
            self.is_mul,
        ]


COL_MAP = NativeFieldCols.from_row(range(NUM_COLS))


class NativeFieldOpKind(Enum):
    """The field operations, valued by their opcodes."""

    ADD = Opcode.ADD
    SUB = Opcode.SUB
    MUL = Opcode.MUL

    def compute(self, b: int, c: int) -> int:
        """Apply the operation to two field elements."""
        if self is NativeFieldOpKind.ADD:
            return (b + c) % P
        if self is NativeFieldOpKind.SUB:
            return (b - c) % P
        return b * c % P


@dataclass(frozen=True)
class NativeFieldOperation:
    """A recorded operation: ``output = input_1 <op> input_2``."""

    kind: NativeFieldOpKind
    output: Word
    input_1: Word
    input_2: Word

    def to_row(self) -> list[int]:
        def to_field(word: Word) -> Word:
            return word.transform(lambda cell: cell % P)

        return NativeFieldCols(
            input_1=to_field(self.input_1),
            input_2=to_field(self.input_2),
            output=to_field(self.output),
            is_add=int(self.kind is NativeFieldOpKind.ADD),
            is_sub=int(self.kind is NativeFieldOpKind.SUB),
            is_mul=int(self.kind is NativeFieldOpKind.MUL),
        ).to_row()


def _is_real() -> VirtualPairCol:
    return VirtualPairCol.sum_main([COL_MAP.is_add, COL_MAP.is_sub, COL_MAP.is_mul])


@dataclass(eq=False)
class NativeFieldChip(Chip):
    """Every native field operation performed during execution."""

    operations: list[NativeFieldOperation] = dataclasses.field(default_factory=list)

    def record(self, kind: NativeFieldOpKind | int, b: Word, c: Word) -> Word:
        """Compute ``b <op> c`` in the field, log the operation and return the result."""
        kind = NativeFieldOpKind(kind)
        result = kind.compute(int(b) % P, int(c) % P)
        output = Word.from_int(result)
        self.operations.append(NativeFieldOperation(kind, output, b, c))
        return output

    def generate_trace(self, machine: Any) -> list[list[int]]:
        values = [value for op in self.operations for value in op.to_row()]
        padded = pad_to_power_of_two(values, NUM_COLS)
        return [padded[i:i + NUM_COLS] for i in range(0, len(padded), NUM_COLS)]

    def global_sends(self, machine: Any) -> list[Interaction]:
        """Send each output cell to the machine's range bus."""
        return [
            Interaction(
                (VirtualPairCol.single_main(column),),
                _is_real(),
                machine.range_bus(),
            )
            for column in COL_MAP.output
        ]

    def global_receives(self, machine: Any) -> list[Interaction]:
        """Receive ``(opcode, input_1..., input_2..., output...)`` on the general bus."""
        opcode = VirtualPairCol.new_main(
            [
                (COL_MAP.is_add, int(Opcode.ADD)),
                (COL_MAP.is_sub, int(Opcode.SUB)),
                (COL_MAP.is_mul, int(Opcode.MUL)),
            ],
            0,
        )
        fields = [
            opcode,
            *(VirtualPairCol.single_main(column) for column in COL_MAP.input_1),
            *(VirtualPairCol.single_main(column) for column in COL_MAP.input_2),
            *(VirtualPairCol.single_main(column) for column in COL_MAP.output),
        ]
        return [Interaction(fields, _is_real(), machine.general_bus())]

    def eval(self, builder: Any) -> None:
        local = NativeFieldCols.from_row(builder.main[0])
        b = local.input_1.reduce()
        c = local.input_2.reduce()
        a = local.output.reduce()

        builder.when(local.is_add).assert_eq(a, b + c)
        builder.when(local.is_sub).assert_eq(a, b - c)
        builder.when(local.is_mul).assert_eq(a, b * c)