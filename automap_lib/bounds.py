# --- automap_lib/bounds.py ---
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np

from . import schema
from .constants import DEFAULT_WORKERS
from .coords import AutomapLayout, MinimapLayout, RegionKey, RegionLayout, load_region
from .errors import MalformedFilename, UnsupportedPixelFormat
from .store import DataStore, open_store

log = logging.getLogger("automap.bounds")


def discover_regions(maps_dir: str, layout: RegionLayout) -> List[Tuple[str, RegionKey]]:
    """Lists the region images in a directory, skipping badly named PNG files."""
    if not os.path.isdir(maps_dir):
        raise FileNotFoundError(f"Map directory not found: {maps_dir}")

    regions = []
    for name in sorted(os.listdir(maps_dir)):
        path = os.path.join(maps_dir, name)
        if not os.path.isfile(path) or not name.lower().endswith(".png"):
            log.debug("Ignoring non-image entry %s", name)
            continue
        try:
            regions.append((path, layout.parse_filename(name)))
        except MalformedFilename as e:
            log.warning("Skipping %s: %s", name, e)
    log.info("Found %d %s region image(s) in %s", len(regions), layout.name, maps_dir)
    return regions


def scan_region(path: str, key: RegionKey, layout: RegionLayout) -> Optional[schema.Bounds]:
    """Returns the world-space box of all non-background pixels of one region."""
    values, codec = load_region(path, layout)
    mask = ~codec.empty_mask(values)
    if not mask.any():
        log.debug("Region %s is empty.", os.path.basename(path))
        return None

    x, y, w, h = cv2.boundingRect(mask.astype(np.uint8))
    min_x, min_y = layout.to_world(key, x, y)
    max_x, max_y = layout.to_world(key, x + w - 1, y + h - 1)
    return schema.Bounds(minX=min_x, maxX=max_x, minY=min_y, maxY=max_y)


def _scan_or_skip(path: str, key: RegionKey, layout: RegionLayout):
    try:
        return key, scan_region(path, key, layout)
    except UnsupportedPixelFormat as e:
        log.warning("Skipping %s: %s", os.path.basename(path), e)
        return key, None


def generate_bounds(
    maps_dir: str,
    layout: RegionLayout,
    data_dir: Union[str, DataStore, None] = None,
    workers: int = DEFAULT_WORKERS,
) -> schema.MapBounds:
    """
    Scans every region image of a layout and folds the results per floor.

    Unreadable or badly named files are skipped with a warning. When
    ``data_dir`` is given, the result is also saved as the bounds manifest.
    """
    regions = discover_regions(maps_dir, layout)
    result = schema.MapBounds(layout=layout.name)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        scans = pool.map(lambda r: _scan_or_skip(r[0], r[1], layout), regions)
        for key, bounds in scans:
            if bounds is not None:
                result.include(key.floor, bounds)

    for floor in sorted(result.floors):
        b = result.floors[floor]
        log.info(
            "Floor %02d: x %d..%d, y %d..%d", floor, b.minX, b.maxX, b.minY, b.maxY
        )
    if result.is_empty():
        log.warning("No map content found in %s", maps_dir)

    if data_dir is not None:
        open_store(data_dir).write_bounds(result)
    return result


def generate_bounds_from_automap(
    maps_dir: str,
    data_dir: Union[str, DataStore, None] = None,
    layout: AutomapLayout = None,
    workers: int = DEFAULT_WORKERS,
) -> schema.MapBounds:
    return generate_bounds(maps_dir, layout or AutomapLayout(), data_dir, workers)


def generate_bounds_from_minimap(
    maps_dir: str,
    data_dir: Union[str, DataStore, None] = None,
    layout: MinimapLayout = None,
    workers: int = DEFAULT_WORKERS,
) -> schema.MapBounds:
    return generate_bounds(maps_dir, layout or MinimapLayout(), data_dir, workers)
