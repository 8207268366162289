"""Instruction encoding, program ROM and proof containers."""

from __future__ import annotations

import dataclasses
import struct
from collections.abc import Iterator
from dataclasses import dataclass

from .field import P, from_signed
from .word import MEMORY_CELL_BYTES, Word

OPERAND_ELEMENTS = 5
INSTRUCTION_ELEMENTS = OPERAND_ELEMENTS + 1
CPU_MEMORY_CHANNELS = 3
LOOKUP_DEGREE_BOUND = 3

__all__ = [
    "CPU_MEMORY_CHANNELS",
    "INSTRUCTION_ELEMENTS",
    "LOOKUP_DEGREE_BOUND",
    "MEMORY_CELL_BYTES",
    "OPERAND_ELEMENTS",
    "ChipProof",
    "InstructionWord",
    "MachineProof",
    "Operands",
    "ProgramROM",
]

_INSTRUCTION_FORMAT = struct.Struct("<I" + "i" * OPERAND_ELEMENTS)


@dataclass(frozen=True)
class Operands:
    """The five operands of an instruction."""

    values: tuple = (0,) * OPERAND_ELEMENTS

    def __post_init__(self) -> None:
        values = tuple(self.values)
        if len(values) != OPERAND_ELEMENTS:
            raise ValueError(
                f"an instruction has {OPERAND_ELEMENTS} operands, got {len(values)}"
            )
        object.__setattr__(self, "values", values)

    def a(self):
        return self.values[0]

    def b(self):
        return self.values[1]

    def c(self):
        return self.values[2]

    def d(self):
        return self.values[3]

    def e(self):
        return self.values[4]

    def is_imm(self):
        """The immediate flag, which shares its slot with operand ``e``."""
        return self.values[4]

    def imm32(self) -> Word:
        """Operands ``b`` to ``e`` read as a 32-bit immediate word."""
        return Word(self.values[1:5])

    def to_field(self) -> Operands:
        """Map signed operands into field elements."""
        return Operands(tuple(from_signed(value) for value in self.values))


@dataclass(frozen=True)
class InstructionWord:
    """An opcode together with its operands."""

    opcode: int = 0
    operands: Operands = dataclasses.field(default_factory=Operands)

    def flatten(self) -> tuple[int, ...]:
        """The opcode followed by the operands, as field elements."""
        return (self.opcode % P, *self.operands.to_field().values)


@dataclass
class ProgramROM:
    """The read-only program: a sequence of instruction words."""

    instructions: list[InstructionWord] = dataclasses.field(default_factory=list)

    def get_instruction(self, pc: int) -> InstructionWord:
        """Fetch the instruction at program counter ``pc``."""
        if pc < 0:
            raise IndexError(f"program counter {pc} is negative")
        return self.instructions[pc]

    @classmethod
    def from_machine_code(cls, code: bytes) -> ProgramROM:
        """Decode little-endian machine code; a trailing partial instruction is ignored."""
        whole = len(code) - len(code) % _INSTRUCTION_FORMAT.size
        return cls(
            [
                InstructionWord(opcode, Operands(tuple(operands)))
                for opcode, *operands in _INSTRUCTION_FORMAT.iter_unpack(code[:whole])
            ]
        )

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[InstructionWord]:
        return iter(self.instructions)


@dataclass(frozen=True)
class ChipProof:
    """The proof for a single chip's trace."""


@dataclass
class MachineProof:
    """The proof of a whole machine execution, one entry per chip."""

    chip_proofs: list[ChipProof] = dataclasses.field(default_factory=list)