from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from .core import Correction, CorrectionArray, correction_at
from .errors import InvalidOptionError

logger = logging.getLogger(__name__)

ADJUST_FIRST = "first"
ADJUST_LAST = "last"
ADJUST_CURRENT = "current"
ADJUST_CHOICES = (ADJUST_FIRST, ADJUST_LAST, ADJUST_CURRENT)


def resolve_range(first_slice: Optional[int], last_slice: Optional[int], stack_size: int) -> Tuple[int, int]:
    first = 1 if first_slice is None else int(first_slice)
    last = stack_size if last_slice is None else int(last_slice)
    if first > last:
        logger.warning("Range of slices is invalid. Range will be turned the other way round.")
        first, last = last, first
    if first < 1:
        logger.warning("Range of slices is invalid. Beginning of range is corrected to first slice.")
        first = 1
    if last > stack_size:
        logger.warning("Range of slices is invalid. End of range is corrected to last possible slice.")
        last = stack_size
    # a range lying wholly outside the stack collapses onto the nearest end
    return min(first, stack_size), max(last, 1)


def adjust_slice_for(adjust_to: str, first_slice: int, last_slice: int, current_slice: int) -> int:
    if adjust_to == ADJUST_FIRST:
        return first_slice
    if adjust_to == ADJUST_LAST:
        return last_slice
    if adjust_to == ADJUST_CURRENT:
        return current_slice
    raise InvalidOptionError(f"Unknown adjust-to choice {adjust_to!r}; expected one of {ADJUST_CHOICES}.")


def normalize_corrections(
    corrections: Sequence[Correction],
    first_slice: int,
    last_slice: int,
    adjust_slice: int,
    correct_previous: bool = False,
    correct_following: bool = False,
) -> CorrectionArray:
    normalized = list(corrections)
    offset = normalized[adjust_slice - 1]
    for i in range(first_slice, last_slice + 1):
        normalized[i - 1] = normalized[i - 1] - offset

    if correct_previous:
        for i in range(1, first_slice):
            normalized[i - 1] = normalized[first_slice - 1]
    if correct_following:
        for i in range(last_slice + 1, len(normalized) + 1):
            normalized[i - 1] = normalized[last_slice - 1]
    return normalized


def hold_outside_range(
    corrections: Sequence[Correction],
    first_slice: int,
    last_slice: int,
    ref_slice: int,
    correct_previous: bool = False,
    correct_following: bool = False,
) -> CorrectionArray:
    """Give slices outside the range the reference correction unless they were extended."""
    held = list(corrections)
    reference = correction_at(held, ref_slice)
    if not correct_previous:
        for i in range(1, first_slice):
            held[i - 1] = reference
    if not correct_following:
        for i in range(last_slice + 1, len(held) + 1):
            held[i - 1] = reference
    return held
