"""The program chip: the program ROM and how often each instruction was fetched."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .air import Chip, Interaction, VirtualPairCol
from .field import P, next_power_of_two, pad_to_power_of_two
from .machine import OPERAND_ELEMENTS, InstructionWord, Operands, ProgramROM

__all__ = [
    "COL_MAP",
    "NUM_COLS",
    "NUM_PREPROCESSED_COLS",
    "PREPROCESSED_COL_MAP",
    "ProgramChip",
    "ProgramCols",
    "ProgramPreprocessedCols",
]


@dataclass(frozen=True)
class ProgramCols:
    """One row of the program chip's main trace."""

    multiplicity: Any = 0


@dataclass(frozen=True)
class ProgramPreprocessedCols:
    """One row of the program chip's fixed trace."""

    pc: Any = 0
    opcode: Any = 0
    operands: Operands = dataclasses.field(default_factory=Operands)

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> ProgramPreprocessedCols:
        """Read the named columns out of a row."""
        cells = list(row[:NUM_PREPROCESSED_COLS])
        return cls(cells[0], cells[1], Operands(tuple(cells[2:])))

    def to_row(self) -> list[Any]:
        return [self.pc, self.opcode, *self.operands.values]


NUM_COLS = len(dataclasses.fields(ProgramCols))
COL_MAP = ProgramCols(*range(NUM_COLS))

NUM_PREPROCESSED_COLS = 2 + OPERAND_ELEMENTS
PREPROCESSED_COL_MAP = ProgramPreprocessedCols.from_row(range(NUM_PREPROCESSED_COLS))


@dataclass(eq=False)
class ProgramChip(Chip):
    """The program ROM with a fetch counter for each instruction."""

    program_rom: ProgramROM = dataclasses.field(default_factory=ProgramROM)
    counts: list[int] = dataclasses.field(default_factory=list)

    def set_program_rom(self, rom: ProgramROM) -> None:
        """Load a copy of ``rom`` and reset every counter to zero."""
        self.program_rom = ProgramROM(list(rom.instructions))
        self.counts = [0] * len(rom)

    def read_word(self, index: int) -> None:
        """Record a fetch of the instruction at ``index``."""
        if not 0 <= index < len(self.program_rom):
            raise IndexError(
                f"instruction {index} is outside a program of {len(self.program_rom)}"
            )
        self.counts[index] += 1

    def generate_trace(self, machine: Any) -> list[list[int]]:
        values = pad_to_power_of_two((count % P for count in self.counts), NUM_COLS)
        return [values[i:i + NUM_COLS] for i in range(0, len(values), NUM_COLS)]

    def global_receives(self, machine: Any) -> list[Interaction]:
        """Receive ``(pc, opcode, operands...)`` on the machine's program bus."""
        fields = [
            VirtualPairCol.single_preprocessed(PREPROCESSED_COL_MAP.pc),
            VirtualPairCol.single_preprocessed(PREPROCESSED_COL_MAP.opcode),
            *(
                VirtualPairCol.single_preprocessed(column)
                for column in PREPROCESSED_COL_MAP.operands.values
            ),
        ]
        return [
            Interaction(
                fields,
                VirtualPairCol.single_main(COL_MAP.multiplicity),
                machine.program_bus(),
            )
        ]

    def preprocessed_trace(self) -> list[list[int]]:
        """The ROM padded with empty instructions to a power-of-two height."""
        rom = list(self.program_rom.instructions)
        rom.extend(InstructionWord() for _ in range(next_power_of_two(len(rom)) - len(rom)))
        return [[pc % P, *word.flatten()] for pc, word in enumerate(rom)]

    def eval(self, builder: Any) -> None:
        """The program chip imposes no constraints of its own."""