"""Instruction opcodes of the virtual machine."""

from __future__ import annotations

from enum import IntEnum


class Opcode(IntEnum):
    """Numeric opcode of each instruction."""

    # Core
    LOAD32 = 1
    STORE32 = 2
    JAL = 3
    JALV = 4
    BEQ = 5
    BNE = 6
    IMM32 = 7
    STOP = 8

    # Nondeterministic
    READ_ADVICE = 9
    WRITE_ADVICE = 10

    # 32-bit ALU
    ADD32 = 100
    SUB32 = 101
    MUL32 = 102
    DIV32 = 103
    LT32 = 104
    SHL32 = 105
    SHR32 = 106
    AND32 = 107
    OR32 = 108
    XOR32 = 109

    # Native field
    ADD = 200
    SUB = 201
    MUL = 202

    # Output
    WRITE = 300

    @property
    def category(self) -> str:
        """The instruction family this opcode belongs to."""
        if self >= Opcode.WRITE:
            return "output"
        if self >= Opcode.ADD:
            return "native_field"
        if self >= Opcode.ADD32:
            return "u32_alu"
        if self >= Opcode.READ_ADVICE:
            return "nondeterministic"
        return "core"