# --- automap_lib/coords.py ---
"""
Coordinate model shared by every converter.

A world tile is addressed by ``(floor, x, y)``. A region image covers a square
of ``span = region_size * scale`` world tiles on one floor. Its pixel
``(px, py)`` is anchored at tile ``(originX + px * scale, originY + py * scale)``.
The region's floor and origin are encoded in its file name, and each layout
has its own naming convention.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .constants import (
    AUTOMAP_REGION_SIZE,
    BACKGROUND_VALUES,
    MARKER_SHIFT,
    MAX_FLOOR,
    MAX_MARKER_CODE,
    MAX_PIXEL_VALUE,
    MAX_TERRAIN_ID,
    MINIMAP_REGION_SIZE,
    MINIMAP_SCALE,
    MODE_FAMILIES,
    TERRAIN_MASK,
)
from .errors import CorruptDataRecord, MalformedFilename, UnsupportedPixelFormat

log = logging.getLogger("automap.coords")


class RegionKey(NamedTuple):
    """Identifies one region image: its floor and world-tile origin."""

    floor: int
    originX: int
    originY: int


# --- Decoded pixel variants ---
@dataclass(frozen=True)
class Terrain:
    id: int


@dataclass(frozen=True)
class Marker:
    code: int
    terrain: Optional[int] = None


@dataclass(frozen=True)
class Empty:
    pass


EMPTY = Empty()
Cell = Union[Terrain, Marker, Empty]


@dataclass(frozen=True)
class PixelCodec:
    """Translates between raw pixel values and tile payloads for one mode family."""

    family: str
    background: int

    @property
    def carries_markers(self) -> bool:
        return self.family == "16bit"

    def empty_mask(self, values: np.ndarray, include_markers: bool = True) -> np.ndarray:
        """Vectorized: True where a pixel holds nothing we would emit as a tile."""
        v = values.astype(np.int64)
        mask = (v == self.background) | (v < 0) | (v > MAX_PIXEL_VALUE)
        if self.carries_markers:
            terrain_byte = v & TERRAIN_MASK
            if include_markers:
                mask |= v == 0
            else:
                mask |= terrain_byte == 0
        else:
            mask |= v > MAX_TERRAIN_ID
        return mask

    def classify(self, value: int, include_markers: bool = True) -> Cell:
        """Decodes a single pixel value into a tagged cell."""
        value = int(value)
        if value == self.background or value < 0 or value > MAX_PIXEL_VALUE:
            return EMPTY
        if not self.carries_markers:
            return EMPTY if value > MAX_TERRAIN_ID else Terrain(value)

        terrain_byte = value & TERRAIN_MASK
        terrain = terrain_byte - 1 if terrain_byte else None
        marker = value >> MARKER_SHIFT
        if marker and include_markers:
            return Marker(code=marker, terrain=terrain)
        if terrain is None:
            return EMPTY
        return Terrain(terrain)

    def encode(
        self, terrain: Optional[int], marker: Optional[int], include_markers: bool = True
    ) -> Optional[int]:
        """Encodes a tile payload. Returns None when there is nothing to paint."""
        if not self.carries_markers:
            raise UnsupportedPixelFormat("Tiles can only be encoded into 16-bit images.")
        value = 0
        if terrain is not None:
            if not 0 <= terrain <= MAX_TERRAIN_ID:
                raise CorruptDataRecord(f"Terrain id {terrain} cannot be encoded.")
            value = terrain + 1
        if include_markers and marker:
            if not 0 < marker <= MAX_MARKER_CODE:
                raise CorruptDataRecord(f"Marker code {marker} cannot be encoded.")
            value |= marker << MARKER_SHIFT
        if value == 0:
            return None
        if value == self.background:
            raise CorruptDataRecord(
                f"Encoded value {value:#06x} collides with the background value."
            )
        return value

    def has_marker(self, value: int) -> bool:
        return self.carries_markers and value != self.background and (int(value) >> MARKER_SHIFT) > 0


@dataclass(frozen=True)
class RegionLayout:
    """Base geometry shared by the Automap and minimap layouts."""

    name: str = ""
    region_size: int = AUTOMAP_REGION_SIZE
    scale: int = 1
    backgrounds: Dict[str, int] = field(default_factory=dict)

    @property
    def span(self) -> int:
        """World tiles covered by one region image along each axis."""
        return self.region_size * self.scale

    def region_key(self, floor: int, x: int, y: int) -> RegionKey:
        return RegionKey(floor, (x // self.span) * self.span, (y // self.span) * self.span)

    def to_world(self, key: RegionKey, px: int, py: int) -> Tuple[int, int]:
        return key.originX + px * self.scale, key.originY + py * self.scale

    def to_pixel(self, key: RegionKey, x: int, y: int) -> Tuple[int, int]:
        px, py = (x - key.originX) // self.scale, (y - key.originY) // self.scale
        if not (0 <= px < self.region_size and 0 <= py < self.region_size):
            raise ValueError(f"Tile ({x}, {y}) lies outside region {key}")
        return px, py

    def pixel_range(self, origin: int, lo: int, hi: int) -> Tuple[int, int]:
        """Pixel indices along one axis whose anchor tiles fall within [lo, hi]."""
        first = max(0, -(-(lo - origin) // self.scale))
        last = min(self.region_size - 1, (hi - origin) // self.scale)
        return first, last

    def codec_for(self, mode: str) -> PixelCodec:
        family = MODE_FAMILIES.get(mode)
        if family is None:
            raise UnsupportedPixelFormat(f"Unsupported image mode '{mode}' for {self.name}.")
        background = self.backgrounds.get(family, BACKGROUND_VALUES[(self.name, family)])
        return PixelCodec(family=family, background=background)

    def writer_codec(self) -> PixelCodec:
        return self.codec_for("I;16")

    def parse_filename(self, filename: str) -> RegionKey:
        raise NotImplementedError

    def format_filename(self, key: RegionKey) -> str:
        raise NotImplementedError


AUTOMAP_NAME_RE = re.compile(r"^(\d{3})(\d{3})(\d{2})\.png$", re.IGNORECASE)
MINIMAP_NAME_RE = re.compile(r"^Minimap_Color_(\d+)_(\d+)_(\d+)\.png$", re.IGNORECASE)


@dataclass(frozen=True)
class AutomapLayout(RegionLayout):
    """Full resolution regions named ``XXXYYYZZ.png`` by region index."""

    name: str = "automap"

    def parse_filename(self, filename: str) -> RegionKey:
        m = AUTOMAP_NAME_RE.match(filename)
        if not m:
            raise MalformedFilename(f"'{filename}' is not an Automap region name (XXXYYYZZ.png).")
        rx, ry, floor = (int(g) for g in m.groups())
        return RegionKey(floor, rx * self.span, ry * self.span)

    def format_filename(self, key: RegionKey) -> str:
        rx, ry = key.originX // self.span, key.originY // self.span
        if rx > 999 or ry > 999 or key.floor > 99:
            raise CorruptDataRecord(f"Region {key} cannot be named in the Automap layout.")
        return f"{rx:03d}{ry:03d}{key.floor:02d}.png"


@dataclass(frozen=True)
class MinimapLayout(RegionLayout):
    """Coarse regions named ``Minimap_Color_<x>_<y>_<z>.png`` by world origin."""

    name: str = "minimap"
    region_size: int = MINIMAP_REGION_SIZE
    scale: int = MINIMAP_SCALE

    def parse_filename(self, filename: str) -> RegionKey:
        m = MINIMAP_NAME_RE.match(filename)
        if not m:
            raise MalformedFilename(
                f"'{filename}' is not a minimap region name (Minimap_Color_X_Y_Z.png)."
            )
        x, y, floor = (int(g) for g in m.groups())
        if x % self.span or y % self.span:
            raise MalformedFilename(
                f"'{filename}' origin is not aligned to the {self.span}-tile region grid."
            )
        if floor > MAX_FLOOR:
            raise MalformedFilename(f"'{filename}' floor {floor} is out of range.")
        return RegionKey(floor, x, y)

    def format_filename(self, key: RegionKey) -> str:
        return f"Minimap_Color_{key.originX}_{key.originY}_{key.floor}.png"


def load_region(path: str, layout: RegionLayout) -> Tuple[np.ndarray, PixelCodec]:
    """
    Loads a region image into a 2D array of raw pixel values.

    Raises:
        UnsupportedPixelFormat: If the file is not a readable image, its mode
            is not one of the recognized variants, or its size does not match
            the layout.
    """
    try:
        with Image.open(path) as img:
            codec = layout.codec_for(img.mode)
            if img.size != (layout.region_size, layout.region_size):
                raise UnsupportedPixelFormat(
                    f"{path}: expected {layout.region_size}x{layout.region_size} pixels, "
                    f"got {img.size[0]}x{img.size[1]}."
                )
            values = np.array(img)
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedPixelFormat(f"Could not read image {path}: {e}") from e
    log.debug("Loaded %s (%s, background=%d)", path, codec.family, codec.background)
    return values, codec
