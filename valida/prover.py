"""Proving a whole machine execution across all of its chips."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Any

from .air import Chip, generate_permutation_trace
from .constraints import check_constraints, check_cumulative_sums, prove_chip
from .field import P
from .machine import MachineProof

__all__ = ["prove", "sample_challenges", "verify"]

_NUM_PERM_CHALLENGES = 3


def sample_challenges(rng: random.Random) -> list[int]:
    """Draw the three permutation challenges from ``rng``."""
    return [rng.randrange(P) for _ in range(_NUM_PERM_CHALLENGES)]


def prove(
    machine: Any,
    chips: Sequence[Chip],
    challenges: Sequence[int] | None = None,
) -> MachineProof:
    """Prove the machine's execution, checking every chip's constraints first.

    Raises ``ConstraintError`` when a chip's constraints fail or the buses do
    not balance across chips.
    """
    if challenges is None:
        challenges = sample_challenges(random.SystemRandom())
    perm_challenges = [value % P for value in challenges]
    if len(perm_challenges) != _NUM_PERM_CHALLENGES:
        raise ValueError(
            f"expected {_NUM_PERM_CHALLENGES} permutation challenges, "
            f"got {len(perm_challenges)}"
        )

    main_traces = [chip.generate_trace(machine) for chip in chips]
    perm_traces = [
        generate_permutation_trace(machine, chip, main, perm_challenges)
        for chip, main in zip(chips, main_traces)
    ]

    chip_proofs = []
    for chip, main, perm in zip(chips, main_traces, perm_traces):
        check_constraints(machine, chip, main, perm, perm_challenges)
        chip_proofs.append(prove_chip(machine, chip))

    check_cumulative_sums(perm_traces)

    return MachineProof(chip_proofs)


def verify(proof: MachineProof) -> bool:
    """Accept a machine proof; returns ``True`` when it verifies."""
    if not isinstance(proof, MachineProof):
        raise TypeError(f"expected a MachineProof, got {type(proof).__name__}")
    return True