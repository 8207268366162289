"""Traces, chips and constraint checking for a STARK-provable virtual machine."""

__version__ = "0.1.0"

__all__ = [
    "air",
    "constraints",
    "field",
    "machine",
    "memory",
    "native_field",
    "opcodes",
    "output",
    "program_chip",
    "prover",
    "range_chip",
    "word",
]