"""Chips, bus interactions and the permutation (lookup) argument.

A trace is a sequence of rows, each a sequence of field elements.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from itertools import islice
from typing import Any, NamedTuple

from .field import P, batch_multiplicative_inverse, powers

__all__ = [
    "BusArgument",
    "Chip",
    "Interaction",
    "InteractionType",
    "VirtualPairCol",
    "eval_permutation_constraints",
    "generate_permutation_trace",
    "generate_rlc_elements",
    "reduce_row",
]


class _Source(Enum):
    PREPROCESSED = "preprocessed"
    MAIN = "main"


class _Column(NamedTuple):
    source: _Source
    index: int


@dataclass(frozen=True)
class VirtualPairCol:
    """An affine combination of main and preprocessed columns."""

    terms: tuple = ()
    offset: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(self.terms))

    @classmethod
    def single_main(cls, column: int) -> VirtualPairCol:
        return cls(((_Column(_Source.MAIN, column), 1),))

    @classmethod
    def single_preprocessed(cls, column: int) -> VirtualPairCol:
        return cls(((_Column(_Source.PREPROCESSED, column), 1),))

    @classmethod
    def sum_main(cls, columns: Iterable[int]) -> VirtualPairCol:
        return cls(tuple((_Column(_Source.MAIN, column), 1) for column in columns))

    @classmethod
    def new_main(cls, terms: Iterable[tuple[int, int]], constant: int) -> VirtualPairCol:
        """Sum of ``coefficient * main[column]`` over ``terms``, plus ``constant``."""
        return cls(
            tuple((_Column(_Source.MAIN, column), coeff) for column, coeff in terms),
            constant,
        )

    @classmethod
    def constant(cls, value: int) -> VirtualPairCol:
        return cls((), value)

    @classmethod
    def one(cls) -> VirtualPairCol:
        return cls.constant(1)

    def apply(self, preprocessed: Sequence[int], main: Sequence[int]) -> int:
        """Evaluate the combination on one row of each trace."""
        total = self.offset
        for column, coeff in self.terms:
            row = main if column.source is _Source.MAIN else preprocessed
            total += coeff * row[column.index]
        return total % P


@dataclass(frozen=True, order=True)
class BusArgument:
    """A bus, local to one chip or shared across the machine."""

    is_global: bool
    index: int

    @classmethod
    def local(cls, index: int) -> BusArgument:
        return cls(False, index)

    @classmethod
    def global_(cls, index: int) -> BusArgument:
        return cls(True, index)


class InteractionType(Enum):
    LOCAL_SEND = "local_send"
    LOCAL_RECEIVE = "local_receive"
    GLOBAL_SEND = "global_send"
    GLOBAL_RECEIVE = "global_receive"

    def is_send(self) -> bool:
        return self in (InteractionType.LOCAL_SEND, InteractionType.GLOBAL_SEND)


@dataclass(frozen=True)
class Interaction:
    """Values sent to or received from a bus, with a multiplicity."""

    fields: tuple
    count: VirtualPairCol
    bus: BusArgument

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))

    def is_local(self) -> bool:
        return not self.bus.is_global

    def is_global(self) -> bool:
        return self.bus.is_global

    def argument_index(self) -> int:
        return self.bus.index


class Chip(ABC):
    """A table of the machine with its constraints and bus interactions."""

    @abstractmethod
    def generate_trace(self, machine: Any) -> list[list[int]]:
        """Build the main trace from the machine's recorded execution."""

    @abstractmethod
    def eval(self, builder: Any) -> None:
        """Impose the chip's constraints through ``builder``."""

    def local_sends(self) -> list[Interaction]:
        return []

    def local_receives(self) -> list[Interaction]:
        return []

    def global_sends(self, machine: Any) -> list[Interaction]:
        return []

    def global_receives(self, machine: Any) -> list[Interaction]:
        return []

    def preprocessed_trace(self) -> list[list[int]] | None:
        """The fixed trace of the chip, if it has one."""
        return None

    def all_interactions(self, machine: Any) -> list[tuple[Interaction, InteractionType]]:
        """Every interaction, tagged: local sends, local receives, global sends, global receives."""
        groups = (
            (self.local_sends(), InteractionType.LOCAL_SEND),
            (self.local_receives(), InteractionType.LOCAL_RECEIVE),
            (self.global_sends(machine), InteractionType.GLOBAL_SEND),
            (self.global_receives(machine), InteractionType.GLOBAL_RECEIVE),
        )
        return [(interaction, kind) for items, kind in groups for interaction in items]


def _alpha_count(interactions: Iterable[Interaction]) -> int:
    return max((i.argument_index() for i in interactions), default=0) + 1


def generate_rlc_elements(
    machine: Any, chip: Chip, random_elements: Sequence[int]
) -> tuple[list[int], list[int]]:
    """Per-bus offsets: powers ``r^1, r^2, ...`` of the first two challenges."""
    local_count = _alpha_count([*chip.local_sends(), *chip.local_receives()])
    global_count = _alpha_count(
        [*chip.global_sends(machine), *chip.global_receives(machine)]
    )
    alphas_local = list(islice(powers(random_elements[0]), 1, local_count + 1))
    alphas_global = list(islice(powers(random_elements[1]), 1, global_count + 1))
    return alphas_local, alphas_global


def reduce_row(
    main_row: Sequence[int],
    preprocessed_row: Sequence[int],
    fields: Iterable[VirtualPairCol],
    alpha: int,
    beta: int,
) -> int:
    """Random linear combination ``alpha + sum_j beta^j * field_j`` of one row."""
    rlc = sum(
        b * field.apply(preprocessed_row, main_row)
        for field, b in zip(fields, powers(beta))
    )
    return (rlc + alpha) % P


def _alpha_for(interaction: Interaction, alphas_local: list[int], alphas_global: list[int]) -> int:
    alphas = alphas_local if interaction.is_local() else alphas_global
    return alphas[interaction.argument_index()]


def _preprocessed_rows(preprocessed: list | None, height: int) -> list:
    if preprocessed is None:
        return [()] * height
    if len(preprocessed) < height:
        raise IndexError(
            f"preprocessed trace has {len(preprocessed)} rows, main trace has {height}"
        )
    return list(preprocessed[:height])


def generate_permutation_trace(
    machine: Any,
    chip: Chip,
    main: Sequence[Sequence[int]],
    random_elements: Sequence[int],
) -> list[list[int]]:
    """Build the permutation trace: one reciprocal per interaction, then the running sum."""
    interactions = chip.all_interactions(machine)
    alphas_local, alphas_global = generate_rlc_elements(machine, chip, random_elements)
    beta = random_elements[2]
    pre_rows = _preprocessed_rows(chip.preprocessed_trace(), len(main))

    perm: list[list[int]] = []
    phi = 0
    for main_row, pre_row in zip(main, pre_rows):
        denominators = [
            reduce_row(
                main_row,
                pre_row,
                interaction.fields,
                _alpha_for(interaction, alphas_local, alphas_global),
                beta,
            )
            for interaction, _ in interactions
        ]
        reciprocals = batch_multiplicative_inverse(denominators)
        for (interaction, kind), q in zip(interactions, reciprocals):
            term = interaction.count.apply(pre_row, main_row) * q
            phi = phi + term if kind.is_send() else phi - term
        phi %= P
        perm.append([*reciprocals, phi])
    return perm


def eval_permutation_constraints(chip: Chip, builder: Any, cumulative_sum: int) -> None:
    """Constrain the reciprocal columns and the running sum of the permutation trace."""
    rand_elems = list(builder.perm_challenges)
    main_local, main_next = builder.main
    pre_local, pre_next = builder.preprocessed
    perm_local, perm_next = builder.perm

    phi_local = perm_local[-1]
    phi_next = perm_next[-1]

    interactions = chip.all_interactions(builder.machine)
    alphas_local, alphas_global = generate_rlc_elements(builder.machine, chip, rand_elems)
    beta = rand_elems[2]

    lhs = phi_next - phi_local
    rhs = 0
    phi_0 = 0
    for (interaction, kind), q_local, q_next in zip(interactions, perm_local, perm_next):
        rlc = reduce_row(
            main_local,
            pre_local,
            interaction.fields,
            _alpha_for(interaction, alphas_local, alphas_global),
            beta,
        )
        builder.assert_one(rlc * q_local)

        mult_local = interaction.count.apply(pre_local, main_local)
        mult_next = interaction.count.apply(pre_next, main_next)
        sign = 1 if kind.is_send() else -1
        phi_0 += sign * mult_local * q_local
        rhs += sign * mult_next * q_next

    builder.when_transition().assert_eq(lhs, rhs)
    builder.when_first_row().assert_eq(phi_local, phi_0)
    builder.when_last_row().assert_eq(phi_local, cumulative_sum)