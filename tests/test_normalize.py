import logging

import pytest

from stack_aligner.core import Correction
from stack_aligner.errors import InvalidOptionError
from stack_aligner.normalize import adjust_slice_for, hold_outside_range, normalize_corrections, resolve_range

CORRECTIONS = [Correction(0, 0), Correction(0, 0), Correction(3, 1), Correction(5, -2), Correction(6, 0), Correction(0, 0)]


def test_resolve_range_defaults():
    assert resolve_range(None, None, 7) == (1, 7)


def test_resolve_range_swaps(caplog):
    with caplog.at_level(logging.WARNING):
        assert resolve_range(5, 2, 7) == (2, 5)
    assert "turned the other way round" in caplog.text


def test_resolve_range_clamps(caplog):
    with caplog.at_level(logging.WARNING):
        assert resolve_range(0, 12, 7) == (1, 7)
    assert len(caplog.records) == 2


def test_resolve_range_outside_stack():
    assert resolve_range(9, 12, 7) == (7, 7)
    assert resolve_range(-4, -1, 7) == (1, 1)


def test_adjust_slice_choices():
    assert adjust_slice_for("first", 2, 5, 4) == 2
    assert adjust_slice_for("last", 2, 5, 4) == 5
    assert adjust_slice_for("current", 2, 5, 4) == 4
    with pytest.raises(InvalidOptionError):
        adjust_slice_for("middle", 2, 5, 4)


@pytest.mark.parametrize("adjust_slice", [2, 3, 4, 5])
def test_adjust_slice_becomes_zero(adjust_slice):
    normalized = normalize_corrections(CORRECTIONS, 2, 5, adjust_slice)
    assert normalized[adjust_slice - 1] == Correction(0, 0)
    offset = CORRECTIONS[adjust_slice - 1]
    for i in range(2, 6):
        assert normalized[i - 1] == CORRECTIONS[i - 1] - offset


def test_head_and_tail_untouched_by_default():
    normalized = normalize_corrections(CORRECTIONS, 3, 5, 4)
    assert normalized[0] == Correction(0, 0)
    assert normalized[1] == Correction(0, 0)
    assert normalized[5] == Correction(0, 0)
    assert normalized[2] == Correction(-2, 3)


def test_head_and_tail_extension():
    normalized = normalize_corrections(CORRECTIONS, 3, 5, 4, correct_previous=True, correct_following=True)
    assert normalized[0] == normalized[2] == Correction(-2, 3)
    assert normalized[1] == Correction(-2, 3)
    assert normalized[5] == normalized[4] == Correction(1, 2)


def test_normalize_does_not_mutate_input():
    original = list(CORRECTIONS)
    normalize_corrections(CORRECTIONS, 1, 6, 4, correct_previous=True)
    assert CORRECTIONS == original


def test_hold_outside_range_uses_reference():
    shifted = [Correction(4, 4), Correction(2, 1), Correction(0, 0), Correction(-1, 0), Correction(-3, 2)]
    held = hold_outside_range(shifted, 2, 4, 3)
    assert held == [Correction(0, 0), Correction(2, 1), Correction(0, 0), Correction(-1, 0), Correction(0, 0)]


def test_hold_outside_range_keeps_extended_ends():
    shifted = [Correction(2, 1), Correction(2, 1), Correction(0, 0), Correction(-1, 0), Correction(-3, 2)]
    held = hold_outside_range(shifted, 2, 4, 3, correct_previous=True)
    assert held[0] == Correction(2, 1)
    assert held[4] == Correction(0, 0)
