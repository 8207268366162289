"""Constraint builders, the debug constraint checker and chip proving."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from .air import Chip, eval_permutation_constraints
from .field import P
from .machine import ChipProof

__all__ = [
    "AirBuilder",
    "ConstraintError",
    "ConstraintFolder",
    "DebugConstraintBuilder",
    "check_constraints",
    "check_cumulative_sums",
    "prove_chip",
]

_EMPTY_WINDOW: tuple = ((), ())


class ConstraintError(AssertionError):
    """A constraint did not evaluate to zero."""


@dataclass
class AirBuilder(ABC):
    """Evaluates constraints over a window of two consecutive rows.

    ``main``, ``preprocessed`` and ``perm`` are ``(local, next)`` row pairs.
    """

    machine: Any = None
    main: tuple = _EMPTY_WINDOW
    preprocessed: tuple = _EMPTY_WINDOW
    perm: tuple = _EMPTY_WINDOW
    perm_challenges: Sequence[int] = ()
    is_first_row: int = 0
    is_last_row: int = 0
    is_transition: int = 1
    condition: int = 1

    @abstractmethod
    def _record(self, value: int) -> None:
        """Handle one constraint value, already reduced modulo ``P``."""

    def when(self, condition: int) -> AirBuilder:
        """A builder whose constraints only apply where ``condition`` is nonzero."""
        return replace(self, condition=self.condition * condition % P)

    def when_ne(self, x: int, y: int) -> AirBuilder:
        return self.when(x - y)

    def when_first_row(self) -> AirBuilder:
        return self.when(self.is_first_row)

    def when_last_row(self) -> AirBuilder:
        return self.when(self.is_last_row)

    def when_transition(self) -> AirBuilder:
        return self.when(self.is_transition)

    def assert_zero(self, x: int) -> None:
        self._record(self.condition * x % P)

    def assert_one(self, x: int) -> None:
        self.assert_zero(x - 1)

    def assert_eq(self, x: int, y: int) -> None:
        self.assert_zero(x - y)

    def assert_bool(self, x: int) -> None:
        self.assert_zero(x * (x - 1))


@dataclass
class DebugConstraintBuilder(AirBuilder):
    """Raises as soon as a constraint fails to vanish."""

    def _record(self, value: int) -> None:
        if value:
            raise ConstraintError("constraints must evaluate to zero")


@dataclass
class ConstraintFolder(AirBuilder):
    """Collects every constraint value for later folding."""

    constraints: list = field(default_factory=list)

    def _record(self, value: int) -> None:
        self.constraints.append(value)


def check_constraints(
    machine: Any,
    air: Chip,
    main: Sequence[Sequence[int]],
    perm: Sequence[Sequence[int]],
    perm_challenges: Sequence[int],
) -> int:
    """Check every constraint of ``air`` on each row; return its cumulative sum.

    Rows wrap around, so the last row's next row is the first.
    """
    if len(main) != len(perm):
        raise ValueError(
            f"main trace has {len(main)} rows but permutation trace has {len(perm)}"
        )
    height = len(main)
    if height == 0:
        return 0

    preprocessed = air.preprocessed_trace()
    cumulative_sum = perm[-1][-1]

    main_next = [*main[1:], main[0]]
    perm_next = [*perm[1:], perm[0]]
    if preprocessed is None:
        pre_pairs = [((), ())] * height
    else:
        pre_rows = list(preprocessed[:height])
        if len(pre_rows) < height:
            raise IndexError(
                f"preprocessed trace has {len(pre_rows)} rows, main trace has {height}"
            )
        pre_pairs = list(zip(pre_rows, [*pre_rows[1:], pre_rows[0]]))

    rows = zip(main, main_next, perm, perm_next, pre_pairs)
    for i, (m_local, m_next, p_local, p_next, pre_pair) in enumerate(rows):
        last = i == height - 1
        builder = DebugConstraintBuilder(
            machine=machine,
            main=(m_local, m_next),
            preprocessed=pre_pair,
            perm=(p_local, p_next),
            perm_challenges=perm_challenges,
            is_first_row=int(i == 0),
            is_last_row=int(last),
            is_transition=int(not last),
        )
        air.eval(builder)
        eval_permutation_constraints(air, builder, cumulative_sum)
    return cumulative_sum


def check_cumulative_sums(perms: Sequence[Sequence[Sequence[int]]]) -> int:
    """Check that the cumulative sums of all permutation traces add up to zero."""
    if any(len(perm) == 0 for perm in perms):
        raise ValueError("permutation trace has no rows")
    total = sum(perm[-1][-1] for perm in perms) % P
    if total:
        raise ConstraintError("cumulative sums across all chips must add up to zero")
    return total


def prove_chip(machine: Any, air: Chip) -> ChipProof:
    """Produce the proof for one chip."""
    return ChipProof()