import pytest
from hypothesis import given
from hypothesis import strategies as st

from valida.air import BusArgument, Chip, Interaction, VirtualPairCol, generate_permutation_trace
from valida.constraints import (
    ConstraintError,
    ConstraintFolder,
    check_constraints,
    check_cumulative_sums,
)
from valida.range_chip import NUM_RANGE_COLS, RANGE_COL_MAP, RangeCheckerChip, RangeCols
from valida.word import Word

RANGE_BUS = BusArgument.global_(0)
CHALLENGES = (5, 7, 11)


class FakeMachine:
    def range_bus(self):
        return RANGE_BUS


class Sender(Chip):
    def __init__(self, values):
        self.values = values

    def generate_trace(self, machine):
        return [[value] for value in self.values]

    def eval(self, builder):
        pass

    def global_sends(self, machine):
        return [
            Interaction(
                (VirtualPairCol.single_main(0),),
                VirtualPairCol.one(),
                machine.range_bus(),
            )
        ]


def permutation(machine, chip):
    main = chip.generate_trace(machine)
    perm = generate_permutation_trace(machine, chip, main, CHALLENGES)
    return main, perm


def test_column_layout():
    assert NUM_RANGE_COLS == 2
    assert RANGE_COL_MAP == RangeCols(mult=0, counter=1)


def test_range_check_counts_cells():
    chip = RangeCheckerChip(maximum=8)
    chip.range_check(Word((1, 2, 2, 7)))
    assert chip.count == {1: 1, 2: 2, 7: 1}


def test_trace_holds_counter_and_multiplicity():
    chip = RangeCheckerChip(maximum=8)
    chip.range_check(Word((1, 2, 2, 7)))
    rows = chip.generate_trace(FakeMachine())
    assert [row[RANGE_COL_MAP.counter] for row in rows] == list(range(8))
    assert [row[RANGE_COL_MAP.mult] for row in rows] == [0, 1, 2, 0, 0, 0, 0, 1]


def test_values_beyond_maximum_are_left_out_of_trace():
    chip = RangeCheckerChip(maximum=4)
    chip.range_check(Word((9, 9, 9, 1)))
    rows = chip.generate_trace(FakeMachine())
    assert len(rows) == 4
    assert [row[RANGE_COL_MAP.mult] for row in rows] == [0, 1, 0, 0]


def test_default_maximum_covers_bytes():
    chip = RangeCheckerChip()
    assert len(chip.generate_trace(FakeMachine())) == 256


def test_non_positive_maximum_rejected():
    with pytest.raises(ValueError):
        RangeCheckerChip(maximum=0)


def test_preprocessed_trace_is_a_single_counter_column():
    chip = RangeCheckerChip(maximum=8)
    assert chip.preprocessed_trace() == [[n] for n in range(8)]


def test_global_receive_on_range_bus():
    chip = RangeCheckerChip(maximum=8)
    (receive,) = chip.global_receives(FakeMachine())
    row = [3, 6]
    assert receive.bus == RANGE_BUS
    assert [f.apply((), row) for f in receive.fields] == [6]
    assert receive.count.apply((), row) == 3


def test_eval_imposes_nothing():
    chip = RangeCheckerChip(maximum=8)
    builder = ConstraintFolder(main=([0, 0], [0, 1]))
    chip.eval(builder)
    assert builder.constraints == []


def test_lookup_balances_with_sender():
    machine = FakeMachine()
    sent = [1, 2, 2, 7]
    chip = RangeCheckerChip(maximum=8)
    chip.range_check(Word(tuple(sent)))
    sender = Sender(sent)

    range_main, range_perm = permutation(machine, chip)
    send_main, send_perm = permutation(machine, sender)

    assert check_constraints(machine, chip, range_main, range_perm, CHALLENGES) == range_perm[-1][-1]
    assert check_constraints(machine, sender, send_main, send_perm, CHALLENGES) == send_perm[-1][-1]
    assert check_cumulative_sums([range_perm, send_perm]) == 0


def test_unrecorded_value_unbalances_lookup():
    machine = FakeMachine()
    chip = RangeCheckerChip(maximum=8)
    chip.range_check(Word((1, 2, 2, 7)))
    sender = Sender([1, 2, 3, 7])

    _, range_perm = permutation(machine, chip)
    _, send_perm = permutation(machine, sender)
    with pytest.raises(ConstraintError):
        check_cumulative_sums([range_perm, send_perm])


@given(st.lists(st.tuples(*[st.integers(min_value=0, max_value=255)] * 4), max_size=10))
def test_multiplicities_sum_to_cells_checked(words):
    chip = RangeCheckerChip()
    for cells in words:
        chip.range_check(Word(cells))
    rows = chip.generate_trace(FakeMachine())
    assert sum(row[RANGE_COL_MAP.mult] for row in rows) == 4 * len(words)