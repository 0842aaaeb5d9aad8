from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .chain import COMPARE_MODES, COMPARE_SELECTED, ProgressCallback, build_chain_corrections
from .core import Correction, CorrectionArray, Roi, StackHost
from .errors import InvalidOptionError, NoOutputRequestedError, ReferenceSliceError, SessionActiveError
from .export import write_transformation_file
from .landmarks import Point, build_landmark_corrections
from .normalize import ADJUST_FIRST, adjust_slice_for, hold_outside_range, normalize_corrections, resolve_range

logger = logging.getLogger(__name__)


@dataclass
class AlignmentOptions:
    search_range: int = 5
    power: float = 2.0
    compare: str = COMPARE_SELECTED
    first_slice: Optional[int] = None
    last_slice: Optional[int] = None
    adjust_to: str = ADJUST_FIRST
    correct_previous: bool = False
    correct_following: bool = False
    transform_file: Optional[str] = None
    apply: bool = True


@dataclass
class ManualOptions:
    first_slice: Optional[int] = None
    last_slice: Optional[int] = None
    adjust_to: str = ADJUST_FIRST
    correct_previous: bool = False
    correct_following: bool = False
    transform_file: Optional[str] = None
    align_x: bool = True
    align_y: bool = True

    @property
    def applies(self) -> bool:
        return self.align_x or self.align_y


@dataclass
class AlignmentResult:
    corrections: CorrectionArray
    ref_slice: int
    adjust_slice: int
    first_slice: int
    last_slice: int
    transform_written: bool = False
    applied: bool = False


def validate_options(options: AlignmentOptions) -> None:
    if options.search_range < 0:
        raise InvalidOptionError(f"Search range must be >= 0, got {options.search_range}.")
    if not options.power > 0:
        raise InvalidOptionError(f"Error exponent must be > 0, got {options.power}.")
    if options.compare not in COMPARE_MODES:
        raise InvalidOptionError(f"Unknown compare mode {options.compare!r}; expected one of {COMPARE_MODES}.")
    if not (options.transform_file or options.apply):
        raise NoOutputRequestedError("Choose at least applying translations or a transformation file.")


def validate_roi(roi: Optional[Roi]) -> Roi:
    if roi is None:
        raise InvalidOptionError("Automated alignment needs a region of interest.")
    if roi.width <= 0 or roi.height <= 0:
        raise InvalidOptionError(f"ROI size must be positive, got {roi.width}x{roi.height}.")
    return roi


def run_automated(
    host: StackHost,
    options: AlignmentOptions,
    roi: Optional[Roi] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    progress: Optional[ProgressCallback] = None,
) -> AlignmentResult:
    """Search corrections from the host's ROI and active slice, then export/apply them.

    Nothing is written and no pixel is touched unless the whole search succeeds.
    """
    validate_options(options)
    roi = validate_roi(roi if roi is not None else host.roi)
    if host.locked:
        raise SessionActiveError("Another alignment is already running on this stack.")

    stack_size = host.slice_count
    first, last = resolve_range(options.first_slice, options.last_slice, stack_size)
    selected = host.active_slice
    if not first <= selected <= last:
        raise ReferenceSliceError(
            f"Selected slice {selected} is outside the range {first}..{last}. "
            "Set the ROI on a slice that has to be corrected."
        )
    adjust = adjust_slice_for(options.adjust_to, first, last, selected)

    logger.info(
        "Computing corrections for slices %d..%d against slice %d (range +-%d, power %g, compare %s)",
        first,
        last,
        selected,
        options.search_range,
        options.power,
        options.compare,
    )
    host.locked = True
    try:
        corrections = build_chain_corrections(
            host,
            roi,
            selected,
            first,
            last,
            search_range=options.search_range,
            power=options.power,
            compare=options.compare,
            should_cancel=should_cancel,
            progress=progress,
        )
    finally:
        host.locked = False
    corrections = normalize_corrections(
        corrections, first, last, adjust, options.correct_previous, options.correct_following
    )
    result = AlignmentResult(corrections, ref_slice=selected, adjust_slice=adjust, first_slice=first, last_slice=last)
    _deliver(host, result, options.transform_file, options.apply, True, True)
    return result


def finalize_landmarks(
    host: StackHost,
    points: Sequence[Optional[Point]],
    options: ManualOptions,
    current_slice: int,
) -> AlignmentResult:
    first, last = resolve_range(options.first_slice, options.last_slice, host.slice_count)
    ref_slice = adjust_slice_for(options.adjust_to, first, last, current_slice)
    corrections = build_landmark_corrections(points, ref_slice, first, last)
    corrections = normalize_corrections(
        corrections, first, last, ref_slice, options.correct_previous, options.correct_following
    )
    # clicks outside the range must not move those slices
    corrections = hold_outside_range(
        corrections, first, last, ref_slice, options.correct_previous, options.correct_following
    )
    logger.info("Landmark corrections for slices %d..%d adjusted to slice %d", first, last, ref_slice)
    result = AlignmentResult(corrections, ref_slice=ref_slice, adjust_slice=ref_slice, first_slice=first, last_slice=last)
    _deliver(host, result, options.transform_file, options.applies, options.align_x, options.align_y)
    return result


def apply_corrections(
    host: StackHost,
    corrections: Sequence[Correction],
    align_x: bool = True,
    align_y: bool = True,
) -> None:
    selected = host.active_slice
    roi = host.roi
    host.roi = None
    try:
        for slice_number, correction in enumerate(corrections, start=1):
            host.active_slice = slice_number
            shift = correction.masked(align_x, align_y)
            host.translate_slice(slice_number, shift.dx, shift.dy)
    finally:
        host.active_slice = selected
        host.roi = roi


def _deliver(
    host: StackHost,
    result: AlignmentResult,
    transform_file: Optional[str],
    apply: bool,
    align_x: bool,
    align_y: bool,
) -> None:
    if transform_file:
        try:
            write_transformation_file(transform_file, result.corrections, result.ref_slice, host.dimensions)
        except OSError as exc:
            logger.warning("Saving MultiStackReg file %s failed: %s", transform_file, exc)
        else:
            result.transform_written = True
            logger.info("Wrote MultiStackReg file %s", transform_file)

    if apply:
        logger.info("Translating %d slices", host.slice_count)
        apply_corrections(host, result.corrections, align_x, align_y)
        result.applied = True
