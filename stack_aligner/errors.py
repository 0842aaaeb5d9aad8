from __future__ import annotations


class AlignmentError(ValueError):
    pass


class InvalidOptionError(AlignmentError):
    pass


class ReferenceSliceError(AlignmentError):
    pass


class NoOutputRequestedError(AlignmentError):
    pass


class SamplingBoundsError(AlignmentError):
    def __init__(self, anchor: tuple[int, int], size: tuple[int, int], margin: int, dimensions: tuple[int, int]) -> None:
        x, y = anchor
        width, height = size
        img_w, img_h = dimensions
        super().__init__(
            f"ROI {width}x{height} at ({x}, {y}) with search range {margin} "
            f"leaves the {img_w}x{img_h} image. Check image and ROI."
        )
        self.anchor = anchor
        self.size = size
        self.margin = margin
        self.dimensions = dimensions


class AlignmentCancelled(AlignmentError):
    pass


class SessionActiveError(AlignmentError):
    pass


class SessionStateError(AlignmentError):
    pass
