# --- automap_lib/conversion/from_maps.py ---
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import List, Union

import numpy as np

from automap_lib import schema
from automap_lib.constants import DEFAULT_WORKERS
from automap_lib.coords import (
    AutomapLayout,
    Marker,
    MinimapLayout,
    RegionKey,
    RegionLayout,
    Terrain,
    load_region,
)
from automap_lib.store import DataStore, open_store

log = logging.getLogger("automap.convert")


def regions_in_bounds(floor: int, bounds: schema.Bounds, layout: RegionLayout) -> List[RegionKey]:
    """Region keys whose area intersects the floor box, in row-major order."""
    first = layout.region_key(floor, bounds.minX, bounds.minY)
    last = layout.region_key(floor, bounds.maxX, bounds.maxY)
    return [
        RegionKey(floor, ox, oy)
        for oy in range(first.originY, last.originY + 1, layout.span)
        for ox in range(first.originX, last.originX + 1, layout.span)
    ]


def read_region_tiles(
    maps_dir: str,
    key: RegionKey,
    bounds: schema.Bounds,
    layout: RegionLayout,
    include_markers: bool,
) -> List[schema.Tile]:
    """Classifies the pixels of one region that fall inside the floor box."""
    path = os.path.join(maps_dir, layout.format_filename(key))
    if not os.path.exists(path):
        log.debug("No image for region %s; treating it as background.", key)
        return []

    px_lo, px_hi = layout.pixel_range(key.originX, bounds.minX, bounds.maxX)
    py_lo, py_hi = layout.pixel_range(key.originY, bounds.minY, bounds.maxY)
    if px_lo > px_hi or py_lo > py_hi:
        return []

    values, codec = load_region(path, layout)
    window = values[py_lo : py_hi + 1, px_lo : px_hi + 1]
    occupied = np.argwhere(~codec.empty_mask(window, include_markers))

    tiles = []
    for py, px in occupied:
        cell = codec.classify(window[py, px], include_markers)
        x, y = layout.to_world(key, px_lo + int(px), py_lo + int(py))
        if isinstance(cell, Marker):
            tiles.append(schema.Tile(key.floor, x, y, terrain=cell.terrain, marker=cell.code))
        elif isinstance(cell, Terrain):
            tiles.append(schema.Tile(key.floor, x, y, terrain=cell.id))
    log.debug("Region %s: %d tile(s)", key, len(tiles))
    return tiles


def convert(
    bounds: schema.MapBounds,
    maps_dir: str,
    data_dir: Union[str, DataStore],
    include_markers: bool,
    layout: RegionLayout,
    workers: int = DEFAULT_WORKERS,
) -> int:
    """
    Writes one sparse floor record per floor in ``bounds``.

    Only pixels inside each floor's box are inspected. Floors that turn out
    to hold no tiles are not written. Returns the number of tiles written.
    """
    store = open_store(data_dir)
    total = 0
    log.info(
        "Converting %s images in %s (markers %s)...",
        layout.name,
        maps_dir,
        "on" if include_markers else "off",
    )
    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        for floor in sorted(bounds.floors):
            floor_bounds = bounds.floors[floor]
            keys = regions_in_bounds(floor, floor_bounds, layout)
            per_region = pool.map(
                lambda k: read_region_tiles(maps_dir, k, floor_bounds, layout, include_markers),
                keys,
            )
            tiles = [t for region_tiles in per_region for t in region_tiles]
            if not tiles:
                log.info("Floor %02d holds no tiles; skipping.", floor)
                continue
            tiles.sort(key=lambda t: (t.y, t.x))
            store.write_floor(floor, tiles)
            total += len(tiles)

    log.info("Conversion complete: %d tile(s) written.", total)
    return total


def convert_from_maps(
    bounds: schema.MapBounds,
    maps_dir: str,
    data_dir: Union[str, DataStore],
    include_markers: bool = True,
    layout: AutomapLayout = None,
    workers: int = DEFAULT_WORKERS,
) -> int:
    return convert(bounds, maps_dir, data_dir, include_markers, layout or AutomapLayout(), workers)


def convert_from_minimap(
    bounds: schema.MapBounds,
    maps_dir: str,
    data_dir: Union[str, DataStore],
    include_markers: bool = True,
    layout: MinimapLayout = None,
    workers: int = DEFAULT_WORKERS,
) -> int:
    return convert(bounds, maps_dir, data_dir, include_markers, layout or MinimapLayout(), workers)
