from __future__ import annotations

import csv
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .core import Correction, CorrectionArray, ZERO
from .errors import AlignmentError

Point = Tuple[int, int]


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def clicked_span(points: Sequence[Optional[Point]]) -> Optional[Tuple[int, int]]:
    clicked = [idx + 1 for idx, point in enumerate(points) if point is not None]
    if not clicked:
        return None
    return (clicked[0], clicked[-1])


def interpolate_gaps(points: Sequence[Optional[Point]], clicked: Sequence[bool]) -> List[Optional[Point]]:
    """Linear fill for every unclicked slice between two clicked ones.

    Offsets use integer division truncated toward zero.
    """
    filled = list(points)
    clicked_slices = [idx + 1 for idx, flag in enumerate(clicked) if flag]
    for left, right in zip(clicked_slices, clicked_slices[1:]):
        left_x, left_y = points[left - 1]
        right_x, right_y = points[right - 1]
        for i in range(left + 1, right):
            x = left_x + _trunc_div((i - left) * (right_x - left_x), right - left)
            y = left_y + _trunc_div((i - left) * (right_y - left_y), right - left)
            filled[i - 1] = (x, y)
    return filled


def build_landmark_corrections(
    points: Sequence[Optional[Point]],
    ref_slice: int,
    first_slice: int,
    last_slice: int,
) -> CorrectionArray:
    span = clicked_span(points)
    if span is None:
        raise AlignmentError("No landmark has been set on any slice.")
    first_clicked, last_clicked = span

    filled = interpolate_gaps(points, [point is not None for point in points])

    if ref_slice < first_clicked:
        filled[ref_slice - 1] = filled[first_clicked - 1]
    if ref_slice > last_clicked:
        filled[ref_slice - 1] = filled[last_clicked - 1]

    for i in range(first_slice, first_clicked):
        filled[i - 1] = filled[first_clicked - 1]
    for i in range(last_clicked + 1, last_slice + 1):
        filled[i - 1] = filled[last_clicked - 1]

    return corrections_from_points(filled, ref_slice)


def corrections_from_points(points: Sequence[Optional[Point]], ref_slice: int) -> CorrectionArray:
    ref_x, ref_y = points[ref_slice - 1]
    corrections: CorrectionArray = []
    for point in points:
        if point is None:
            corrections.append(ZERO)
        else:
            corrections.append(Correction(ref_x - point[0], ref_y - point[1]))
    return corrections


def points_from_mapping(mapping: Mapping[int, Point], stack_size: int) -> List[Optional[Point]]:
    points: List[Optional[Point]] = [None] * stack_size
    for slice_number, point in mapping.items():
        if not 1 <= slice_number <= stack_size:
            raise AlignmentError(f"Landmark for slice {slice_number} outside 1..{stack_size}.")
        points[slice_number - 1] = (int(point[0]), int(point[1]))
    return points


def read_landmarks_csv(path: str) -> Dict[int, Point]:
    landmarks: Dict[int, Point] = {}
    with open(path, newline="") as handle:
        for row in csv.reader(handle):
            cells = [cell.strip() for cell in row]
            if not cells or not cells[0] or cells[0].startswith("#"):
                continue
            if not cells[0].lstrip("-").isdigit():
                continue
            if len(cells) < 3:
                raise AlignmentError(f"Landmark row needs slice,x,y: {row}")
            landmarks[int(cells[0])] = (int(round(float(cells[1]))), int(round(float(cells[2]))))
    return landmarks
