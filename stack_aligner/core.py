from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import numpy as np
from PIL import Image, TiffImagePlugin


@dataclass(frozen=True)
class Correction:
    dx: int = 0
    dy: int = 0

    def __add__(self, other: "Correction") -> "Correction":
        return Correction(self.dx + other.dx, self.dy + other.dy)

    def __sub__(self, other: "Correction") -> "Correction":
        return Correction(self.dx - other.dx, self.dy - other.dy)

    def masked(self, use_x: bool = True, use_y: bool = True) -> "Correction":
        return Correction(self.dx if use_x else 0, self.dy if use_y else 0)


ZERO = Correction()


@dataclass(frozen=True)
class Roi:
    x: int
    y: int
    width: int
    height: int

    @property
    def anchor(self) -> Tuple[int, int]:
        return (self.x, self.y)


CorrectionArray = List[Correction]


def zero_corrections(count: int) -> CorrectionArray:
    return [ZERO] * count


def correction_at(corrections: Sequence[Correction], slice_number: int) -> Correction:
    return corrections[slice_number - 1]


class StackHost(Protocol):
    roi: Optional[Roi]
    locked: bool

    @property
    def slice_count(self) -> int: ...

    @property
    def dimensions(self) -> Tuple[int, int]: ...

    @property
    def active_slice(self) -> int: ...

    @active_slice.setter
    def active_slice(self, value: int) -> None: ...

    def get_pixel_value(self, slice_number: int, x: int, y: int) -> float: ...

    def translate_slice(self, slice_number: int, dx: int, dy: int) -> None: ...


@dataclass
class SliceStack:
    slices: List[Image.Image]
    source_paths: List[str]
    tiffinfo: Optional[TiffImagePlugin.ImageFileDirectory_v2] = None
    save_kwargs: Optional[dict] = None


class PillowStack:
    """Stack host backed by a list of equally sized Pillow images.

    Slice numbers are 1-based. Pixel reads go through float64 numpy views that
    are rebuilt lazily after a slice is translated.
    """

    def __init__(self, slices: Sequence[Image.Image], roi: Optional[Roi] = None, active_slice: int = 1) -> None:
        if not slices:
            raise ValueError("A stack needs at least one slice.")
        _ensure_same_size(slices)
        self.slices: List[Image.Image] = list(slices)
        self.roi = roi
        self.locked = False
        self._active = 1
        self._arrays: Dict[int, np.ndarray] = {}
        self.active_slice = active_slice

    @classmethod
    def from_arrays(cls, arrays: Iterable[np.ndarray], **kwargs) -> "PillowStack":
        images = [Image.fromarray(np.asarray(arr, dtype=np.float32)) for arr in arrays]
        return cls(images, **kwargs)

    @property
    def slice_count(self) -> int:
        return len(self.slices)

    @property
    def dimensions(self) -> Tuple[int, int]:
        return self.slices[0].size

    @property
    def active_slice(self) -> int:
        return self._active

    @active_slice.setter
    def active_slice(self, value: int) -> None:
        self._active = min(max(int(value), 1), self.slice_count)

    def get_pixel_value(self, slice_number: int, x: int, y: int) -> float:
        return float(self._array(slice_number)[y, x])

    def get_region(self, slice_number: int, x: int, y: int, width: int, height: int) -> np.ndarray:
        return self._array(slice_number)[y : y + height, x : x + width]

    def translate_slice(self, slice_number: int, dx: int, dy: int) -> None:
        index = self._index(slice_number)
        self.slices[index] = apply_translation(self.slices[index], dx, dy)
        self._arrays.pop(slice_number, None)

    def as_array(self, slice_number: int) -> np.ndarray:
        return self._array(slice_number).copy()

    def _array(self, slice_number: int) -> np.ndarray:
        cached = self._arrays.get(slice_number)
        if cached is None:
            cached = np.asarray(self.slices[self._index(slice_number)], dtype=np.float64)
            self._arrays[slice_number] = cached
        return cached

    def _index(self, slice_number: int) -> int:
        if not 1 <= slice_number <= self.slice_count:
            raise IndexError(f"Slice {slice_number} outside 1..{self.slice_count}.")
        return slice_number - 1


def apply_translation(image: Image.Image, dx: int, dy: int) -> Image.Image:
    if not dx and not dy:
        return image.copy()
    if image.mode == "I;16":
        return apply_translation(image.convert("I"), dx, dy).convert("I;16")
    return image.transform(
        image.size,
        Image.AFFINE,
        (1, 0, -int(dx), 0, 1, -int(dy)),
        resample=Image.NEAREST,
        fillcolor=0,
    )


def load_stack_from_paths(paths: Sequence[str]) -> SliceStack:
    if not paths:
        raise ValueError("No input paths provided.")

    source_paths = list(paths)
    tiffinfo: Optional[TiffImagePlugin.ImageFileDirectory_v2] = None
    save_kwargs: dict = {}

    slices: List[Image.Image] = []
    for idx, path in enumerate(paths):
        image = Image.open(path)
        if idx == 0:
            tiffinfo = _extract_tiffinfo(image)
            save_kwargs = _extract_save_kwargs(image)
        n_frames = getattr(image, "n_frames", 1)
        for frame in range(n_frames):
            image.seek(frame)
            slices.append(_single_band(image.copy()))
        image.close()

    _ensure_same_size(slices)
    return SliceStack(slices=slices, source_paths=source_paths, tiffinfo=tiffinfo, save_kwargs=save_kwargs)


def save_stack(
    slices: Sequence[Image.Image],
    path: str,
    tiffinfo: Optional[TiffImagePlugin.ImageFileDirectory_v2] = None,
    save_kwargs: Optional[dict] = None,
) -> None:
    if not slices:
        raise ValueError("No slices to save.")

    first = slices[0]
    rest = list(slices[1:])
    kwargs = dict(save_kwargs or {})
    if tiffinfo is not None:
        kwargs["tiffinfo"] = _copy_tiffinfo(tiffinfo)
    first.save(path, save_all=True, append_images=rest, **kwargs)


def add_alignment_tag(
    tiffinfo: Optional[TiffImagePlugin.ImageFileDirectory_v2],
    tag_text: str = "Slice Aligned",
) -> TiffImagePlugin.ImageFileDirectory_v2:
    info = _copy_tiffinfo(tiffinfo) if tiffinfo is not None else TiffImagePlugin.ImageFileDirectory_v2()
    existing = info.get(270)
    if existing:
        existing_text = str(existing)
        if tag_text.lower() not in existing_text.lower():
            info[270] = f"{existing_text} | {tag_text}"
    else:
        info[270] = tag_text
    return info


def _single_band(image: Image.Image) -> Image.Image:
    if len(image.getbands()) > 1:
        return image.convert("L")
    return image


def _ensure_same_size(slices: Iterable[Image.Image]) -> None:
    sizes = {im.size for im in slices}
    if len(sizes) != 1:
        raise ValueError("All slices must have the same dimensions.")


def _extract_tiffinfo(image: Image.Image) -> Optional[TiffImagePlugin.ImageFileDirectory_v2]:
    tag_v2 = getattr(image, "tag_v2", None)
    if not tag_v2:
        return None
    info = TiffImagePlugin.ImageFileDirectory_v2()
    for tag in (270, 282, 283, 296):
        if tag in tag_v2:
            info[tag] = tag_v2[tag]
    return info


def _copy_tiffinfo(
    tiffinfo: TiffImagePlugin.ImageFileDirectory_v2,
) -> TiffImagePlugin.ImageFileDirectory_v2:
    info = TiffImagePlugin.ImageFileDirectory_v2()
    for tag, value in tiffinfo.items():
        info[tag] = value
    return info


def _extract_save_kwargs(image: Image.Image) -> dict:
    info = getattr(image, "info", {}) or {}
    save_kwargs: dict = {}
    dpi = info.get("dpi")
    if dpi:
        save_kwargs["dpi"] = dpi
    compression = info.get("compression")
    if compression and compression != "raw":
        save_kwargs["compression"] = compression
    return save_kwargs
