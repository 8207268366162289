import random

import pytest

from valida.air import BusArgument, Chip, Interaction, VirtualPairCol
from valida.constraints import ConstraintError
from valida.field import P
from valida.machine import ChipProof, MachineProof
from valida.prover import prove, sample_challenges, verify

CHALLENGES = [5, 7, 11]


class _PairChip(Chip):
    """Two equal columns, sent and received on a local bus."""

    def __init__(self, rows):
        self.rows = rows

    def generate_trace(self, machine):
        return [list(row) for row in self.rows]

    def eval(self, builder):
        local, _ = builder.main
        builder.assert_eq(local[0], local[1])

    def local_sends(self):
        return [Interaction((VirtualPairCol.single_main(0),), VirtualPairCol.one(), BusArgument.local(0))]

    def local_receives(self):
        return [Interaction((VirtualPairCol.single_main(1),), VirtualPairCol.one(), BusArgument.local(0))]


class _GlobalChip(Chip):
    def __init__(self, values, sends):
        self.values = values
        self.sends = sends

    def generate_trace(self, machine):
        return [[v] for v in self.values]

    def eval(self, builder):
        pass

    def _interaction(self):
        return [Interaction((VirtualPairCol.single_main(0),), VirtualPairCol.one(), BusArgument.global_(0))]

    def global_sends(self, machine):
        return self._interaction() if self.sends else []

    def global_receives(self, machine):
        return [] if self.sends else self._interaction()


def test_sample_challenges_deterministic_and_in_field():
    first = sample_challenges(random.Random(1))
    second = sample_challenges(random.Random(1))
    assert first == second
    assert len(first) == 3
    assert all(0 <= value < P for value in first)


def test_prove_balanced_local_chip():
    proof = prove(None, [_PairChip([[1, 1], [2, 2], [3, 3], [4, 4]])], CHALLENGES)
    assert proof == MachineProof([ChipProof()])
    assert verify(proof) is True


def test_prove_one_proof_per_chip():
    chips = [
        _GlobalChip([1, 2], sends=True),
        _GlobalChip([2, 1], sends=False),
        _PairChip([[9, 9]]),
    ]
    proof = prove(None, chips, CHALLENGES)
    assert len(proof.chip_proofs) == len(chips)


def test_prove_samples_challenges_when_none_given():
    proof = prove(None, [_PairChip([[1, 1], [5, 5]])])
    assert len(proof.chip_proofs) == 1


def test_failing_chip_constraint_raises():
    with pytest.raises(ConstraintError):
        prove(None, [_PairChip([[1, 2], [3, 3]])], CHALLENGES)


def test_unbalanced_bus_raises():
    chips = [_GlobalChip([1, 2], sends=True), _GlobalChip([1, 3], sends=False)]
    with pytest.raises(ConstraintError):
        prove(None, chips, CHALLENGES)


def test_lone_sender_does_not_balance():
    with pytest.raises(ConstraintError):
        prove(None, [_GlobalChip([1, 2], sends=True)], CHALLENGES)


def test_wrong_number_of_challenges():
    with pytest.raises(ValueError):
        prove(None, [_PairChip([[1, 1]])], [1, 2])


def test_verify_rejects_non_proof():
    with pytest.raises(TypeError):
        verify([ChipProof()])