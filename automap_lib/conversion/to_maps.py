# --- automap_lib/conversion/to_maps.py ---
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Tuple, Union

import numpy as np
from PIL import Image

from automap_lib import schema
from automap_lib.constants import DEFAULT_MINIMAP_DIR, DEFAULT_WORKERS
from automap_lib.coords import AutomapLayout, MinimapLayout, RegionKey, RegionLayout
from automap_lib.store import DataStore, open_store
from .flash import export_flash

log = logging.getLogger("automap.render")

# (px, py, encoded value)
Pixel = Tuple[int, int, int]


class RegionRasterizer:
    """Paints the tiles of one floor into the region images of a layout."""

    def __init__(self, layout: RegionLayout, include_markers: bool, workers: int = DEFAULT_WORKERS):
        self.layout = layout
        self.include_markers = include_markers
        self.workers = max(1, workers)
        self.codec = layout.writer_codec()

    def allocate(
        self, floor: int, tiles: List[schema.Tile], bounds: schema.Bounds
    ) -> Dict[RegionKey, List[Pixel]]:
        """
        Encodes the tiles of one floor onto the region grid covering ``bounds``.

        Regions of the grid that receive no pixel are dropped. Every region
        name and pixel value is checked here, so a tile the layout cannot
        represent raises CorruptDataRecord before any image is written.
        """
        span = self.layout.span
        first = self.layout.region_key(floor, bounds.minX, bounds.minY)
        last = self.layout.region_key(floor, bounds.maxX, bounds.maxY)
        grid = {
            RegionKey(floor, ox, oy): []
            for oy in range(first.originY, last.originY + 1, span)
            for ox in range(first.originX, last.originX + 1, span)
        }
        for tile in sorted(tiles, key=lambda t: (t.y, t.x)):
            value = self.codec.encode(tile.terrain, tile.marker, self.include_markers)
            if value is None:
                continue
            key = self.layout.region_key(floor, tile.x, tile.y)
            px, py = self.layout.to_pixel(key, tile.x, tile.y)
            grid[key].append((px, py, value))

        regions = {key: pixels for key, pixels in grid.items() if pixels}
        for key in regions:
            self.layout.format_filename(key)
        return regions

    def paint(self, pixels: List[Pixel]) -> np.ndarray:
        """
        Returns a region canvas with the encoded pixels applied in order.

        Coarse layouts fold several tiles into one pixel. The first tile in
        (y, x) order wins, but a marker replaces a plain terrain value.
        """
        size = self.layout.region_size
        bg = self.codec.background
        canvas = np.full((size, size), bg, dtype=np.uint16)
        for px, py, value in pixels:
            current = int(canvas[py, px])
            if current == bg or (
                self.codec.has_marker(value) and not self.codec.has_marker(current)
            ):
                canvas[py, px] = value
        return canvas

    def flush(self, key: RegionKey, canvas: np.ndarray, output_dir: str) -> str:
        path = os.path.join(output_dir, self.layout.format_filename(key))
        Image.fromarray(canvas).save(path, "PNG")
        return path

    def render_floor(self, floor: int, regions: Dict[RegionKey, List[Pixel]], output_dir: str) -> int:
        """Paints and writes allocated regions of one floor. Returns the image count."""
        os.makedirs(output_dir, exist_ok=True)

        def _paint_and_flush(item):
            key, pixels = item
            return self.flush(key, self.paint(pixels), output_dir)

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            written = list(pool.map(_paint_and_flush, sorted(regions.items())))
        log.debug("Floor %02d: %d %s image(s) in %s", floor, len(written), self.layout.name, output_dir)
        return len(written)


def read_all_floors(store: DataStore) -> Dict[int, List[schema.Tile]]:
    """Reads and validates every floor before anything is written."""
    tiles_by_floor = {}
    for floor in store.list_floors():
        tiles = store.read_floor(floor)
        if tiles:
            tiles_by_floor[floor] = tiles
    log.info(
        "Read %d tile(s) on %d floor(s).",
        sum(len(t) for t in tiles_by_floor.values()),
        len(tiles_by_floor),
    )
    return tiles_by_floor


def convert_to_maps(
    data_dir: Union[str, DataStore],
    output_target: str,
    include_markers: bool = True,
    is_flash_export: bool = False,
    minimap_dir: str = None,
    automap_layout: AutomapLayout = None,
    minimap_layout: MinimapLayout = None,
    workers: int = DEFAULT_WORKERS,
) -> Dict[str, int]:
    """
    Regenerates region images (or a flash export) from a Data Directory.

    Floor bounds are recomputed from the tiles themselves and select the
    region grid each floor is allocated on. A corrupt record, or a tile that
    cannot be placed in either layout, raises CorruptDataRecord before any
    output is written.

    Returns:
        Counts of what was produced, keyed by output kind.
    """
    store = open_store(data_dir)
    tiles_by_floor = read_all_floors(store)

    if is_flash_export:
        size = export_flash(tiles_by_floor, output_target, include_markers)
        return {"flash_bytes": size}

    if minimap_dir is None:
        parent = os.path.dirname(os.path.abspath(output_target))
        minimap_dir = os.path.join(parent, DEFAULT_MINIMAP_DIR)

    automap = RegionRasterizer(automap_layout or AutomapLayout(), include_markers, workers)
    minimap = RegionRasterizer(minimap_layout or MinimapLayout(), include_markers, workers)

    plans = []
    for floor in sorted(tiles_by_floor):
        tiles = tiles_by_floor[floor]
        b = schema.Bounds.of_tiles(tiles)
        log.info(
            "Floor %02d: %d tile(s), x %d..%d, y %d..%d",
            floor,
            len(tiles),
            b.minX,
            b.maxX,
            b.minY,
            b.maxY,
        )
        plans.append((floor, automap.allocate(floor, tiles, b), minimap.allocate(floor, tiles, b)))

    counts = {"automap_images": 0, "minimap_images": 0}
    for floor, automap_regions, minimap_regions in plans:
        counts["automap_images"] += automap.render_floor(floor, automap_regions, output_target)
        counts["minimap_images"] += minimap.render_floor(floor, minimap_regions, minimap_dir)

    log.info(
        "Wrote %d Automap image(s) to %s and %d minimap image(s) to %s.",
        counts["automap_images"],
        output_target,
        counts["minimap_images"],
        minimap_dir,
    )
    return counts
