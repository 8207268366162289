"""The memory chip: a log of reads and writes sorted by address and clock."""

from __future__ import annotations

import dataclasses
from bisect import insort
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from itertools import pairwise
from typing import Any

from .air import BusArgument, Chip, Interaction, VirtualPairCol
from .field import P, batch_multiplicative_inverse, next_power_of_two
from .word import MEMORY_CELL_BYTES, Word

__all__ = [
    "MEM_COL_MAP",
    "NUM_MEM_COLS",
    "MemoryChip",
    "MemoryCols",
    "Operation",
    "OperationKind",
]

NUM_MEM_COLS = 9 + MEMORY_CELL_BYTES


@dataclass(frozen=True)
class MemoryCols:
    """One row of the memory trace, by column name."""

    addr: Any = 0
    value: Word = dataclasses.field(default_factory=Word)
    clk: Any = 0
    is_read: Any = 0
    is_real: Any = 0
    diff: Any = 0
    diff_inv: Any = 0
    addr_not_equal: Any = 0
    counter: Any = 0
    counter_mult: Any = 0

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> MemoryCols:
        """Read the named columns out of a row."""
        end = 1 + MEMORY_CELL_BYTES
        (clk, is_read, is_real, diff, diff_inv, addr_not_equal, counter,
         counter_mult) = row[end:NUM_MEM_COLS]
        return cls(
            addr=row[0],
            value=Word(tuple(row[1:end])),
            clk=clk,
            is_read=is_read,
            is_real=is_real,
            diff=diff,
            diff_inv=diff_inv,
            addr_not_equal=addr_not_equal,
            counter=counter,
            counter_mult=counter_mult,
        )

    def to_row(self) -> list[Any]:
        """Lay the columns out as a trace row."""
        return [
            self.addr,
            *self.value,
            self.clk,
            self.is_read,
            self.is_real,
            self.diff,
            self.diff_inv,
            self.addr_not_equal,
            self.counter,
            self.counter_mult,
        ]


MEM_COL_MAP = MemoryCols.from_row(range(NUM_MEM_COLS))


class OperationKind(Enum):
    READ = "read"
    WRITE = "write"
    DUMMY_READ = "dummy_read"

    @property
    def is_read(self) -> bool:
        return self is not OperationKind.WRITE

    @property
    def is_real(self) -> bool:
        return self is not OperationKind.DUMMY_READ


@dataclass(frozen=True)
class Operation:
    """A single memory access."""

    kind: OperationKind
    address: int
    value: Word


def _sort_key(entry: tuple[int, Operation]) -> tuple[int, int]:
    clk, op = entry
    return op.address, clk


@dataclass(eq=False)
class MemoryChip(Chip):
    """Memory cells and the log of every access, grouped by clock cycle."""

    cells: dict[int, Word] = dataclasses.field(default_factory=dict)
    operations: dict[int, list[Operation]] = dataclasses.field(default_factory=dict)

    def read(self, clk: int, address: int, log: bool) -> Word:
        """Return the word at ``address``, logging the read at ``clk`` if asked."""
        try:
            value = self.cells[address]
        except KeyError:
            raise KeyError(f"memory address {address} has not been written") from None
        if log:
            self.operations.setdefault(clk, []).append(
                Operation(OperationKind.READ, address, value)
            )
        return value

    def write(self, clk: int, address: int, value: Word, log: bool) -> None:
        """Store ``value`` at ``address``, logging the write at ``clk`` if asked."""
        if log:
            self.operations.setdefault(clk, []).append(
                Operation(OperationKind.WRITE, address, value)
            )
        self.cells[address] = value

    def generate_trace(self, machine: Any) -> list[list[int]]:
        ops = [
            (clk, op)
            for clk, clk_ops in sorted(self.operations.items())
            for op in clk_ops
        ]
        ops.sort(key=_sort_key)
        _insert_dummy_reads(ops)
        rows = [_op_to_row(n, clk, op) for n, (clk, op) in enumerate(ops)]
        _compute_address_diffs(ops, rows)
        return rows

    def local_sends(self) -> list[Interaction]:
        return [
            Interaction(
                (VirtualPairCol.single_main(MEM_COL_MAP.diff),),
                VirtualPairCol.one(),
                BusArgument.local(0),
            )
        ]

    def local_receives(self) -> list[Interaction]:
        return [
            Interaction(
                (VirtualPairCol.single_main(MEM_COL_MAP.counter),),
                VirtualPairCol.single_main(MEM_COL_MAP.counter_mult),
                BusArgument.local(0),
            )
        ]

    def global_receives(self, machine: Any) -> list[Interaction]:
        """Receive ``(is_read, clk, addr, value...)`` on the machine's memory bus."""
        fields = [
            VirtualPairCol.single_main(MEM_COL_MAP.is_read),
            VirtualPairCol.single_main(MEM_COL_MAP.clk),
            VirtualPairCol.single_main(MEM_COL_MAP.addr),
            *(VirtualPairCol.single_main(column) for column in MEM_COL_MAP.value),
        ]
        return [
            Interaction(
                fields,
                VirtualPairCol.single_main(MEM_COL_MAP.is_real),
                machine.mem_bus(),
            )
        ]

    def eval(self, builder: Any) -> None:
        local_row, next_row = builder.main
        local = MemoryCols.from_row(local_row)
        nxt = MemoryCols.from_row(next_row)

        # Address equality
        changed = builder.when_transition().when(local.addr_not_equal)
        changed.assert_one((nxt.addr - local.addr) * local.diff_inv)
        builder.assert_bool(local.addr_not_equal)

        # Non-contiguous
        changed.assert_eq(local.diff, nxt.addr - local.addr)
        builder.when_transition().when_ne(local.addr_not_equal, 1).assert_eq(
            local.diff, nxt.clk - local.clk
        )

        # Read/write
        for value_next, value in zip(nxt.value, local.value):
            (
                builder.when_transition()
                .when(nxt.is_read)
                .when(nxt.is_real)
                .when_ne(local.addr_not_equal, 1)
                .assert_eq(value_next, value)
            )
        builder.when(nxt.is_read).when(nxt.is_real).assert_eq(local.addr, nxt.addr)

        # Counter increments from zero.
        builder.when_first_row().assert_zero(local.counter)
        builder.when_transition().assert_eq(nxt.counter, local.counter + 1)


def _op_to_row(n: int, clk: int, op: Operation) -> list[int]:
    return MemoryCols(
        addr=op.address % P,
        value=op.value.transform(lambda cell: cell % P),
        clk=clk % P,
        is_read=int(op.kind.is_read),
        is_real=int(op.kind.is_real),
        counter=n % P,
    ).to_row()


def _insert_dummy_reads(ops: list[tuple[int, Operation]]) -> None:
    """Keep consecutive gaps within the table length, then pad to a power of two.

    Consecutive sorted clock cycles (or addresses) should differ by no more
    than the number of logged operations.
    """
    if not ops:
        return

    table_len = len(ops)
    dummies: list[tuple[int, Operation]] = []
    for (clk1, op1), (clk2, op2) in pairwise(ops):
        addr_diff = op2.address - op1.address
        if addr_diff:
            if addr_diff > table_len:
                dummies.extend(
                    (
                        clk1,
                        Operation(
                            OperationKind.DUMMY_READ,
                            op1.address + table_len * step,
                            op1.value,
                        ),
                    )
                    for step in range(1, addr_diff // table_len + 1)
                )
        else:
            clk_diff = clk2 - clk1
            if clk_diff > table_len:
                dummies.extend(
                    (
                        clk1 + table_len * step,
                        Operation(OperationKind.DUMMY_READ, op1.address, op1.value),
                    )
                    for step in range(1, clk_diff // table_len + 1)
                )

    addresses = {op.address for _, op in ops}
    for entry in dummies:
        address = entry[1].address
        # A dummy at an address already in the table is recorded twice.
        copies = 2 if address in addresses else 1
        for _ in range(copies):
            insort(ops, entry, key=_sort_key)
        addresses.add(address)

    last_clk, last_op = ops[-1]
    padding = next_power_of_two(len(ops)) - len(ops)
    ops.extend(
        (last_clk, Operation(OperationKind.DUMMY_READ, last_op.address, last_op.value))
        for _ in range(padding)
    )
    ops.sort(key=_sort_key)


def _compute_address_diffs(
    ops: list[tuple[int, Operation]], rows: list[list[int]]
) -> None:
    if not ops:
        return

    height = len(rows)
    diff = [0] * height
    mult = [0] * height
    for n, ((clk, op), (clk_next, op_next)) in enumerate(pairwise(ops)):
        step = (op_next.address - op.address) or (clk_next - clk)
        if step >= height:
            raise IndexError(
                f"gap of {step} between rows {n} and {n + 1} exceeds the table height {height}"
            )
        diff[n] = step % P
        mult[step] += 1

    diff_inv = batch_multiplicative_inverse(diff)

    for n, ((_, op), (_, op_next)) in enumerate(pairwise(ops)):
        row = rows[n]
        row[MEM_COL_MAP.diff] = diff[n]
        row[MEM_COL_MAP.diff_inv] = diff_inv[n]
        row[MEM_COL_MAP.counter_mult] = mult[n] % P
        if op_next.address != op.address:
            row[MEM_COL_MAP.addr_not_equal] = 1

    # The first row's zero-valued diff is sent to the local range check bus;
    # account for it on the receiving end.
    rows[0][MEM_COL_MAP.counter_mult] = (rows[0][MEM_COL_MAP.counter_mult] + 1) % P