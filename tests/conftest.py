import os

import numpy as np
import pytest
from PIL import Image

from automap_lib.coords import AutomapLayout, MinimapLayout, RegionKey


@pytest.fixture
def small_automap():
    """Automap layout with 32x32 regions, small enough for fast tests."""
    return AutomapLayout(region_size=32)


@pytest.fixture
def small_minimap():
    return MinimapLayout(region_size=16, scale=2)


def save_region(directory, layout, key: RegionKey, pixels: dict, dtype=np.uint16, mode=None):
    """Writes a region image whose pixels are background except those given."""
    size = layout.region_size
    background = layout.codec_for("I;16" if dtype == np.uint16 else "L").background
    canvas = np.full((size, size), background, dtype=dtype)
    for (px, py), value in pixels.items():
        canvas[py, px] = value
    img = Image.fromarray(canvas)
    if mode:
        img = img.convert(mode)
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, layout.format_filename(key))
    img.save(path, "PNG")
    return path


def read_region(path):
    with Image.open(path) as img:
        return np.array(img).astype(np.int64)


@pytest.fixture
def region_writer():
    return save_region


@pytest.fixture
def region_reader():
    return read_region
