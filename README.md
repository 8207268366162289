# valida

Building blocks for a STARK-provable virtual machine. It is written in pure
Python and has no runtime dependencies. All arithmetic is done modulo the
BabyBear prime `P = 2**31 - 2**27 + 1` (`valida.field.P`). The same field
serves as the extension field.

## Modules

- `valida.field`: field helpers.
  - `inverse` raises `ZeroDivisionError` for zero.
  - `batch_multiplicative_inverse` leaves zeros as zero.
  - `powers` yields `1, b, b**2, ...` without end.
  - `from_signed` maps a signed 32-bit integer into the field.
  - `next_power_of_two`.
  - `pad_to_power_of_two` pads a flattened row-major trace with zero rows.
- `valida.opcodes`: the `Opcode` `IntEnum` of the instruction set. Its
  `category` property names the instruction family.
- `valida.word`: `Word`, a four-cell big-endian memory word.
  - Build one with `Word.from_int` or `Word.from_element`.
  - `transform` maps every cell and `reduce` combines the cells into one field
    element.
  - `int(word)` gives the unsigned value.
  - `+` wraps modulo 2**32.
  - `-`, `*` and shifts raise `OverflowError` on underflow, overflow or a
    shift of 32 or more.
  - `//` is unsigned division.
  - `^`, `&` and `|` work cell by cell.
  - Words order lexicographically by cell.
- `valida.machine`: `Operands`, `InstructionWord` (`flatten` gives the opcode
  and the operands as field elements), `ProgramROM`, `ChipProof` and
  `MachineProof`. `ProgramROM.from_machine_code` decodes 24-byte
  little-endian instructions (an unsigned opcode, then five signed operands)
  and ignores a trailing partial instruction.
- `valida.air`: the pieces of the lookup argument.
  - `VirtualPairCol`: affine combinations of main and preprocessed columns.
  - `BusArgument`: a local or global bus.
  - `Interaction` and `InteractionType`.
  - The abstract `Chip` base class.
  - `generate_rlc_elements`, `reduce_row`, `generate_permutation_trace`
    (one reciprocal column per interaction plus a running-sum column) and
    `eval_permutation_constraints`.
- `valida.constraints`: constraint evaluation.
  - `AirBuilder` has `when`, `when_ne`, `when_first_row`, `when_last_row`,
    `when_transition`, `assert_zero`, `assert_one`, `assert_eq` and
    `assert_bool`.
  - `DebugConstraintBuilder` raises `ConstraintError` on the first nonzero
    constraint.
  - `ConstraintFolder` collects constraint values in `constraints`.
  - `check_constraints` checks every row, wrapping the last row onto the first,
    and returns the cumulative sum.
  - `check_cumulative_sums` raises `ConstraintError` unless the sums over all
    chips add up to zero.
- Chips, each with a trace layout (`...Cols` dataclasses and column maps):
  - `MemoryChip` (`valida.memory`): cells plus a log of reads and writes.
    Reading an address that was never written raises `KeyError`. Building the
    trace inserts dummy reads and pads the height to a power of two.
  - `RangeCheckerChip` (`valida.range_chip`): counts the values in
    `[0, maximum)` that were checked with `range_check`.
  - `NativeFieldChip` (`valida.native_field`): `record` computes
    add/sub/mul in the field and logs the operation.
  - `ProgramChip` (`valida.program_chip`): holds the ROM and counts fetches
    (`set_program_rom`, `read_word`).
  - `OutputChip` (`valida.output`): `record` logs the low byte of a word. It
    requires the immediate flag and a zero operand `c`.
- `valida.prover`: `sample_challenges` draws three permutation challenges.
  `prove` generates each chip's main and permutation traces, checks all
  constraints and the cumulative sums, and returns a `MachineProof`. `verify`
  checks that it was given a `MachineProof`.

The chips read their bus assignments from the machine object passed to them.
That object must provide whichever of `mem_bus()`, `range_bus()`,
`general_bus()` and `program_bus()` the chips in use call. Each must return a
`BusArgument`.

## Install

```
pip install .
pip install ".[test]"   # adds pytest and hypothesis
```

## Example

```python
from valida.field import P, batch_multiplicative_inverse, inverse
from valida.memory import MemoryChip
from valida.word import Word

mem = MemoryChip()
mem.write(0, 4, Word.from_int(0x01020304), True)
assert mem.read(1, 4, True) == Word.from_int(0x01020304)

assert Word.from_int(0xFFFFFFFF) + Word.from_int(1) == Word.from_int(0)
assert batch_multiplicative_inverse([0, 2]) == [0, inverse(2)]
assert 2 * inverse(2) % P == 1
```

## What this package does not do

- There is no CPU chip and no instruction-execution loop. Nothing runs a
  `ProgramROM`; the caller records operations into the chips directly.
- There is no ready-made machine type. The caller supplies the object that
  assigns buses.
- Proofs are not cryptographic. `prove` checks constraints in the clear.
  Each `ChipProof` is empty, no commitments are made, and `verify` accepts any
  `MachineProof`.
- There is no command-line tool.

## Tests

```
pytest
```