"""Exhaustive integer translation search over an ROI patch."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

import numpy as np

from .core import Correction, StackHost
from .errors import SamplingBoundsError


@dataclass(frozen=True)
class SearchContext:
    reference: np.ndarray
    anchor: Tuple[int, int]

    @property
    def size(self) -> Tuple[int, int]:
        height, width = self.reference.shape
        return (width, height)

    def moved(self, step: Correction) -> "SearchContext":
        x, y = self.anchor
        return replace(self, anchor=(x - step.dx, y - step.dy))


@dataclass(frozen=True)
class SearchResult:
    correction: Correction
    error: float


def sample_patch(host: StackHost, slice_number: int, x0: int, y0: int, width: int, height: int) -> np.ndarray:
    region = getattr(host, "get_region", None)
    if region is not None:
        return np.array(region(slice_number, x0, y0, width, height), dtype=np.float64)
    patch = np.empty((height, width), dtype=np.float64)
    for j in range(height):
        for i in range(width):
            patch[j, i] = host.get_pixel_value(slice_number, x0 + i, y0 + j)
    return patch


def lp_error(candidate: np.ndarray, reference: np.ndarray, power: float = 2.0) -> float:
    diff = np.abs(np.asarray(candidate, dtype=np.float64) - np.asarray(reference, dtype=np.float64))
    return float(np.sum(diff**power))


def check_window(dimensions: Tuple[int, int], anchor: Tuple[int, int], size: Tuple[int, int], margin: int = 0) -> None:
    img_w, img_h = dimensions
    x, y = anchor
    width, height = size
    if x - margin < 0 or y - margin < 0 or x + width + margin > img_w or y + height + margin > img_h:
        raise SamplingBoundsError(anchor, size, margin, dimensions)


def reference_context(host: StackHost, slice_number: int, anchor: Tuple[int, int], size: Tuple[int, int]) -> SearchContext:
    check_window(host.dimensions, anchor, size)
    x, y = anchor
    width, height = size
    return SearchContext(reference=sample_patch(host, slice_number, x, y, width, height), anchor=anchor)


def find_best_correction(
    host: StackHost,
    slice_number: int,
    context: SearchContext,
    search_range: int = 5,
    power: float = 2.0,
) -> SearchResult:
    """Scan every offset in [-search_range, search_range]^2 around the anchor.

    Offsets are visited x-major, y-minor, both ascending. The first trial seeds
    the minimum and only strictly lower errors replace it. The returned
    correction is the negated offset of the best trial.
    """
    width, height = context.size
    check_window(host.dimensions, context.anchor, context.size, search_range)

    x, y = context.anchor
    span = 2 * search_range
    window = sample_patch(host, slice_number, x - search_range, y - search_range, width + span, height + span)

    best = None
    min_error = 0.0
    for xtrans in range(-search_range, search_range + 1):
        col = xtrans + search_range
        for ytrans in range(-search_range, search_range + 1):
            row = ytrans + search_range
            error = lp_error(window[row : row + height, col : col + width], context.reference, power)
            if best is None or error < min_error:
                min_error = error
                best = Correction(-xtrans, -ytrans)
    return SearchResult(correction=best, error=min_error)
