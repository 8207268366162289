from collections import Counter
from itertools import islice

import pytest
from hypothesis import given, strategies as st

from valida.air import (
    BusArgument,
    Chip,
    Interaction,
    InteractionType,
    VirtualPairCol,
    generate_permutation_trace,
    generate_rlc_elements,
    reduce_row,
)
from valida.field import P, powers

CHALLENGES = [5, 7, 11]


class SendChip(Chip):
    def __init__(self, values):
        self.values = values

    def generate_trace(self, machine):
        return [[v, 1] for v in self.values]

    def global_sends(self, machine):
        return [
            Interaction(
                [VirtualPairCol.single_main(0)],
                VirtualPairCol.single_main(1),
                BusArgument.global_(0),
            )
        ]

    def eval(self, builder):
        local, _ = builder.main
        builder.assert_bool(local[1])


class ReceiveChip(Chip):
    def __init__(self, values):
        self.counts = Counter(values)

    def generate_trace(self, machine):
        return [[v, c] for v, c in sorted(self.counts.items())]

    def global_receives(self, machine):
        return [
            Interaction(
                [VirtualPairCol.single_main(0)],
                VirtualPairCol.single_main(1),
                BusArgument.global_(0),
            )
        ]

    def eval(self, builder):
        pass


class LocalChip(Chip):
    def generate_trace(self, machine):
        return [[1]]

    def local_sends(self):
        return [Interaction([], VirtualPairCol.one(), BusArgument.local(2))]

    def local_receives(self):
        return [Interaction([], VirtualPairCol.one(), BusArgument.local(0))]

    def global_receives(self, machine):
        return [Interaction([], VirtualPairCol.one(), BusArgument.global_(1))]

    def eval(self, builder):
        pass


def test_single_main_selects_column():
    assert VirtualPairCol.single_main(1).apply((), [5, 7, 9]) == 7


def test_single_preprocessed_selects_column():
    assert VirtualPairCol.single_preprocessed(2).apply([4, 6, 8], [1]) == 8


def test_sum_main_adds_columns():
    col = VirtualPairCol.sum_main([0, 2])
    assert col.apply((), [5, 7, 9]) == 5 + 9


def test_new_main_is_affine():
    col = VirtualPairCol.new_main([(0, 2), (2, 3)], 4)
    assert col.apply((), [5, 7, 9]) == 41


def test_constant_and_one_ignore_rows():
    assert VirtualPairCol.constant(12).apply((), [1, 2]) == 12
    assert VirtualPairCol.one().apply([3], [4]) == 1


def test_apply_reduces_modulo_p():
    col = VirtualPairCol.new_main([(0, P - 1)], 0)
    result = col.apply((), [2])
    assert 0 <= result < P
    assert (result + 2) % P == 0


def test_missing_column_raises():
    with pytest.raises(IndexError):
        VirtualPairCol.single_main(3).apply((), [1])


def test_bus_argument_order_local_before_global():
    assert BusArgument.local(5) < BusArgument.global_(0)
    assert BusArgument.local(1) < BusArgument.local(2)
    assert BusArgument.global_(3) == BusArgument.global_(3)


def test_interaction_bus_queries():
    local = Interaction([], VirtualPairCol.one(), BusArgument.local(4))
    shared = Interaction([], VirtualPairCol.one(), BusArgument.global_(6))
    assert local.is_local() and not local.is_global()
    assert shared.is_global() and not shared.is_local()
    assert local.argument_index() == 4
    assert shared.argument_index() == 6


def test_interaction_type_is_send():
    assert InteractionType.LOCAL_SEND.is_send()
    assert InteractionType.GLOBAL_SEND.is_send()
    assert not InteractionType.LOCAL_RECEIVE.is_send()
    assert not InteractionType.GLOBAL_RECEIVE.is_send()


def test_default_chip_has_no_interactions():
    chip = ReceiveChip([])
    assert Chip.local_sends(chip) == []
    assert Chip.local_receives(chip) == []
    assert Chip.global_sends(chip, None) == []
    assert Chip.preprocessed_trace(chip) is None


def test_all_interactions_order():
    kinds = [kind for _, kind in Chip.all_interactions(LocalChip(), None)]
    assert kinds == [
        InteractionType.LOCAL_SEND,
        InteractionType.LOCAL_RECEIVE,
        InteractionType.GLOBAL_RECEIVE,
    ]


def test_rlc_elements_are_powers_of_challenges():
    alphas_local, alphas_global = generate_rlc_elements(None, LocalChip(), CHALLENGES)
    assert alphas_local == list(islice(powers(CHALLENGES[0]), 1, 4))
    assert alphas_global == list(islice(powers(CHALLENGES[1]), 1, 3))


def test_rlc_elements_without_interactions_has_one_each():
    alphas_local, alphas_global = generate_rlc_elements(None, ReceiveChip([]), CHALLENGES)
    assert alphas_local == [CHALLENGES[0]]
    assert alphas_global == [CHALLENGES[1]]


def test_reduce_row_without_fields_is_alpha():
    assert reduce_row([1, 2], (), [], 10, 3) == 10


def test_reduce_row_first_field_has_unit_weight():
    fields = [VirtualPairCol.single_main(0), VirtualPairCol.single_main(1)]
    assert reduce_row([4, 9], (), fields, 10, 0) == 14


def test_permutation_trace_shape_and_reciprocals():
    chip = SendChip([1, 2, 3])
    main = chip.generate_trace(None)
    perm = generate_permutation_trace(None, chip, main, CHALLENGES)
    assert len(perm) == len(main)
    assert all(len(row) == 2 for row in perm)
    fields = [VirtualPairCol.single_main(0)]
    for main_row, perm_row in zip(main, perm):
        rlc = reduce_row(main_row, (), fields, CHALLENGES[1], CHALLENGES[2])
        assert rlc * perm_row[0] % P == 1


def test_running_sum_first_row_is_first_term():
    chip = SendChip([1, 2])
    perm = generate_permutation_trace(None, chip, chip.generate_trace(None), CHALLENGES)
    assert perm[0][-1] == perm[0][0]
    assert perm[1][-1] == (perm[0][0] + perm[1][0]) % P


def test_short_preprocessed_trace_raises():
    class Pre(SendChip):
        def preprocessed_trace(self):
            return [[0]]

    chip = Pre([1, 2])
    with pytest.raises(IndexError):
        generate_permutation_trace(None, chip, chip.generate_trace(None), CHALLENGES)


@given(st.lists(st.integers(min_value=0, max_value=1000), min_size=1, max_size=20))
def test_send_and_receive_sums_cancel(values):
    sender, receiver = SendChip(values), ReceiveChip(values)
    send_perm = generate_permutation_trace(
        None, sender, sender.generate_trace(None), CHALLENGES
    )
    recv_perm = generate_permutation_trace(
        None, receiver, receiver.generate_trace(None), CHALLENGES
    )
    assert (send_perm[-1][-1] + recv_perm[-1][-1]) % P == 0