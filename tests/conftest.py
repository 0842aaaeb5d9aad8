import numpy as np
import pytest

from stack_aligner.core import PillowStack


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def base_image(rng):
    return rng.integers(0, 256, size=(40, 60)).astype(np.float32)


def drifted_slices(base, offsets):
    # slice[y, x] == base[y + oy, x + ox]
    return [np.roll(base, (-oy, -ox), axis=(0, 1)) for ox, oy in offsets]


@pytest.fixture
def drift_stack(base_image):
    def factory(offsets, **kwargs):
        return PillowStack.from_arrays(drifted_slices(base_image, offsets), **kwargs)

    return factory


class RecordingHost:
    def __init__(self, slice_count=4, dimensions=(32, 32)):
        self._count = slice_count
        self._dimensions = dimensions
        self.active_slice = 1
        self.roi = None
        self.locked = False
        self.translations = []
        self.active_during = []

    @property
    def slice_count(self):
        return self._count

    @property
    def dimensions(self):
        return self._dimensions

    def get_pixel_value(self, slice_number, x, y):
        return float(slice_number * 1000 + y * 37 + x)

    def translate_slice(self, slice_number, dx, dy):
        self.active_during.append(self.active_slice)
        self.translations.append((slice_number, dx, dy))


@pytest.fixture
def recording_host():
    return RecordingHost()
