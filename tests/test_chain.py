import pytest

from stack_aligner.chain import COMPARE_PREVIOUS, COMPARE_SELECTED, build_chain_corrections
from stack_aligner.core import Correction, Roi
from stack_aligner.errors import AlignmentCancelled, InvalidOptionError, SamplingBoundsError

ROI = Roi(20, 15, 10, 10)
OFFSETS = [(0, 0), (2, -1), (3, 0), (1, 2), (4, 1)]


def expected_corrections(offsets, ref_slice):
    ref_x, ref_y = offsets[ref_slice - 1]
    return [Correction(ox - ref_x, oy - ref_y) for ox, oy in offsets]


@pytest.mark.parametrize("compare", [COMPARE_SELECTED, COMPARE_PREVIOUS])
def test_recovers_linear_drift_from_first_slice(drift_stack, compare):
    host = drift_stack([(k, 0) for k in range(5)])

    corrections = build_chain_corrections(host, ROI, 1, 1, 5, search_range=4, compare=compare)

    assert corrections == [Correction(k, 0) for k in range(5)]


@pytest.mark.parametrize("compare", [COMPARE_SELECTED, COMPARE_PREVIOUS])
def test_both_directions_from_middle_slice(drift_stack, compare):
    host = drift_stack(OFFSETS)

    corrections = build_chain_corrections(host, ROI, 3, 1, 5, search_range=4, compare=compare)

    assert corrections[2] == Correction(0, 0)
    assert corrections == expected_corrections(OFFSETS, 3)


def test_previous_mode_accumulates_steps(drift_stack):
    host = drift_stack(OFFSETS)
    seen = []

    corrections = build_chain_corrections(
        host, ROI, 3, 1, 5, search_range=4, compare=COMPARE_PREVIOUS, progress=lambda s, c: seen.append((s, c))
    )

    assert [s for s, _ in seen] == [2, 1, 4, 5]
    steps = {s: Correction(OFFSETS[s - 1][0] - OFFSETS[s][0], OFFSETS[s - 1][1] - OFFSETS[s][1]) for s in (1, 2)}
    steps.update({s: Correction(OFFSETS[s - 1][0] - OFFSETS[s - 2][0], OFFSETS[s - 1][1] - OFFSETS[s - 2][1]) for s in (4, 5)})
    assert corrections[1] == corrections[2] + steps[2]
    assert corrections[0] == corrections[1] + steps[1]
    assert corrections[3] == corrections[2] + steps[4]
    assert corrections[4] == corrections[3] + steps[5]


def test_zero_range_gives_zero_corrections(drift_stack):
    host = drift_stack(OFFSETS)
    corrections = build_chain_corrections(host, ROI, 2, 1, 5, search_range=0)
    assert corrections == [Correction(0, 0)] * 5


def test_reference_at_range_end_skips_pass(drift_stack):
    host = drift_stack(OFFSETS)
    seen = []

    build_chain_corrections(host, ROI, 5, 2, 5, search_range=4, progress=lambda s, c: seen.append(s))

    assert seen == [4, 3, 2]


def test_slices_outside_range_stay_zero(drift_stack):
    host = drift_stack(OFFSETS)
    corrections = build_chain_corrections(host, ROI, 3, 2, 4, search_range=4)
    assert corrections[0] == Correction(0, 0)
    assert corrections[4] == Correction(0, 0)
    assert corrections[1:4] == expected_corrections(OFFSETS, 3)[1:4]


def test_cancel_between_slices(drift_stack):
    host = drift_stack(OFFSETS)
    calls = []

    def should_cancel():
        calls.append(1)
        return len(calls) > 2

    with pytest.raises(AlignmentCancelled):
        build_chain_corrections(host, ROI, 1, 1, 5, search_range=4, should_cancel=should_cancel)
    assert len(calls) == 3


def test_out_of_bounds_roi(drift_stack):
    host = drift_stack(OFFSETS)
    with pytest.raises(SamplingBoundsError):
        build_chain_corrections(host, Roi(1, 1, 10, 10), 1, 1, 5, search_range=4)


def test_unknown_compare_mode(drift_stack):
    host = drift_stack(OFFSETS)
    with pytest.raises(InvalidOptionError):
        build_chain_corrections(host, ROI, 1, 1, 5, compare="neighbour")
