from __future__ import annotations

import logging
from typing import Callable, Optional

from .core import Correction, CorrectionArray, Roi, StackHost, ZERO, zero_corrections
from .errors import AlignmentCancelled, InvalidOptionError
from .search import find_best_correction, reference_context

logger = logging.getLogger(__name__)

COMPARE_SELECTED = "selected"
COMPARE_PREVIOUS = "previous"
COMPARE_MODES = (COMPARE_SELECTED, COMPARE_PREVIOUS)

ProgressCallback = Callable[[int, Correction], None]


def build_chain_corrections(
    host: StackHost,
    roi: Roi,
    ref_slice: int,
    first_slice: int,
    last_slice: int,
    search_range: int = 5,
    power: float = 2.0,
    compare: str = COMPARE_SELECTED,
    should_cancel: Optional[Callable[[], bool]] = None,
    progress: Optional[ProgressCallback] = None,
) -> CorrectionArray:
    """Absolute corrections for every slice in the range, (0, 0) at ``ref_slice``.

    Both passes walk outward from ``ref_slice`` with their own ROI anchor. Each
    slice's search is centred on the position matched for the slice before it,
    so its absolute correction is that slice's correction plus the new step.
    With ``compare="previous"`` the reference patch follows the walk; otherwise
    it stays the patch sampled from ``ref_slice``.
    """
    if compare not in COMPARE_MODES:
        raise InvalidOptionError(f"Unknown compare mode {compare!r}; expected one of {COMPARE_MODES}.")

    corrections = zero_corrections(host.slice_count)
    passes = (
        range(ref_slice - 1, first_slice - 1, -1),
        range(ref_slice + 1, last_slice + 1),
    )
    for slices in passes:
        if not slices:
            continue
        _walk(host, roi, ref_slice, slices, corrections, search_range, power, compare, should_cancel, progress)
    return corrections


def _walk(
    host: StackHost,
    roi: Roi,
    ref_slice: int,
    slices: range,
    corrections: CorrectionArray,
    search_range: int,
    power: float,
    compare: str,
    should_cancel: Optional[Callable[[], bool]],
    progress: Optional[ProgressCallback],
) -> None:
    context = reference_context(host, ref_slice, roi.anchor, (roi.width, roi.height))
    previous = ZERO
    for slice_number in slices:
        if should_cancel is not None and should_cancel():
            raise AlignmentCancelled(f"Alignment cancelled before slice {slice_number}.")

        result = find_best_correction(host, slice_number, context, search_range, power)
        current = previous + result.correction
        corrections[slice_number - 1] = current
        logger.debug(
            "Slice %d: step (%d, %d), correction (%d, %d), error %.6g",
            slice_number,
            result.correction.dx,
            result.correction.dy,
            current.dx,
            current.dy,
            result.error,
        )

        context = context.moved(result.correction)
        if compare == COMPARE_PREVIOUS:
            context = reference_context(host, slice_number, context.anchor, context.size)
        previous = current
        if progress is not None:
            progress(slice_number, current)
