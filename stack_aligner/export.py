"""MultiStackReg transformation file output.

Each block pairs the source point with the image centre. The source point is
the centre moved by the step between a slice and its neighbour on the path
back to the reference slice, so chaining the blocks reproduces the absolute
corrections.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .core import Correction

HEADER = ("MultiStackReg Transformation File", "File Version 1.0", "0")
IDENTITY_ROWS = "0.0\t0.0\n0.0\t0.0\n"


def export_order(ref_slice: int, stack_size: int) -> List[int]:
    return list(range(ref_slice - 1, 0, -1)) + list(range(ref_slice + 1, stack_size + 1))


def source_points(
    corrections: Sequence[Correction],
    ref_slice: int,
    dimensions: Tuple[int, int],
) -> Dict[int, Tuple[int, int]]:
    x0 = dimensions[0] // 2
    y0 = dimensions[1] // 2
    points: Dict[int, Tuple[int, int]] = {}
    for i in export_order(ref_slice, len(corrections)):
        neighbour = i + 1 if i < ref_slice else i - 1
        current = corrections[i - 1]
        closer = corrections[neighbour - 1]
        points[i] = (x0 - current.dx + closer.dx, y0 - current.dy + closer.dy)
    return points


def format_transformation_file(
    corrections: Sequence[Correction],
    ref_slice: int,
    dimensions: Tuple[int, int],
) -> str:
    x0 = dimensions[0] // 2
    y0 = dimensions[1] // 2
    parts = ["\n".join(HEADER) + "\n"]
    for slice_number, (x, y) in source_points(corrections, ref_slice, dimensions).items():
        parts.append("TRANSLATION\n")
        parts.append(f"Source img: {slice_number} Target img: {ref_slice}\n")
        parts.append(f"{x}\t{y}\n")
        parts.append(IDENTITY_ROWS)
        parts.append("\n")
        parts.append(f"{x0}\t{y0}\n")
        parts.append(IDENTITY_ROWS)
        parts.append("\n")
    return "".join(parts)


def write_transformation_file(
    path: str,
    corrections: Sequence[Correction],
    ref_slice: int,
    dimensions: Tuple[int, int],
) -> None:
    text = format_transformation_file(corrections, ref_slice, dimensions)
    with open(path, "w", newline="\n") as handle:
        handle.write(text)
