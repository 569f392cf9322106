import json
import logging

import numpy as np
import pytest

from automap_lib import bounds as bounds_mod
from automap_lib.bounds import generate_bounds_from_automap, generate_bounds_from_minimap
from automap_lib.coords import RegionKey
from automap_lib.errors import UnsupportedPixelFormat
from automap_lib.schema import Bounds
from automap_lib.store import MemoryDataStore


def test_single_pixel_region_gives_point_bounds(tmp_path, small_automap, region_writer):
    maps_dir = tmp_path / "Automap"
    region_writer(maps_dir, small_automap, RegionKey(0, 0, 0), {(3, 4): 0x0003})

    result = generate_bounds_from_automap(str(maps_dir), layout=small_automap)

    assert result.floors == {0: Bounds(minX=3, maxX=3, minY=4, maxY=4)}
    assert result.envelope == Bounds(minX=3, maxX=3, minY=4, maxY=4)


def test_bounds_span_regions_and_stay_per_floor(tmp_path, small_automap, region_writer):
    maps_dir = tmp_path / "Automap"
    region_writer(maps_dir, small_automap, RegionKey(1, 0, 0), {(5, 10): 0x0101})
    region_writer(maps_dir, small_automap, RegionKey(1, 32, 0), {(2, 20): 0x0202})
    region_writer(maps_dir, small_automap, RegionKey(2, 64, 64), {(0, 0): 0x0001, (31, 31): 0x0001})

    result = generate_bounds_from_automap(str(maps_dir), layout=small_automap)

    assert result.floors[1] == Bounds(minX=5, maxX=34, minY=10, maxY=20)
    assert result.floors[2] == Bounds(minX=64, maxX=95, minY=64, maxY=95)
    assert result.envelope == Bounds(minX=5, maxX=95, minY=10, maxY=95)


def test_bounds_are_tight(tmp_path, small_automap, region_writer):
    maps_dir = tmp_path / "Automap"
    rng = np.random.default_rng(7)
    points = {(int(x), int(y)) for x, y in rng.integers(4, 28, size=(12, 2))}
    region_writer(maps_dir, small_automap, RegionKey(5, 32, 32), {p: 0x0010 for p in points})

    b = generate_bounds_from_automap(str(maps_dir), layout=small_automap).floors[5]

    xs = [32 + x for x, _ in points]
    ys = [32 + y for _, y in points]
    assert (b.minX, b.maxX, b.minY, b.maxY) == (min(xs), max(xs), min(ys), max(ys))


def test_empty_floors_are_omitted(tmp_path, small_automap, region_writer):
    maps_dir = tmp_path / "Automap"
    region_writer(maps_dir, small_automap, RegionKey(3, 0, 0), {})
    region_writer(maps_dir, small_automap, RegionKey(4, 0, 0), {(1, 1): 0x0001})

    result = generate_bounds_from_automap(str(maps_dir), layout=small_automap)

    assert list(result.floors) == [4]


def test_empty_directory_gives_empty_bounds(tmp_path):
    maps_dir = tmp_path / "Automap"
    maps_dir.mkdir()
    store = MemoryDataStore()

    result = generate_bounds_from_automap(str(maps_dir), store)

    assert result.is_empty()
    assert result.envelope is None
    assert store.read_bounds().floors == {}


def test_missing_directory_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        generate_bounds_from_automap(str(tmp_path / "nope"))


def test_bad_files_are_skipped_with_a_warning(tmp_path, small_automap, region_writer, caplog):
    maps_dir = tmp_path / "Automap"
    region_writer(maps_dir, small_automap, RegionKey(0, 0, 0), {(1, 2): 0x0001})
    region_writer(maps_dir, small_automap, RegionKey(0, 32, 0), {(1, 1): 1}, dtype=np.uint8, mode="RGB")
    (maps_dir / "notes.png").write_bytes(b"")
    (maps_dir / "readme.txt").write_text("ignored")

    with caplog.at_level(logging.WARNING, logger="automap.bounds"):
        result = generate_bounds_from_automap(str(maps_dir), layout=small_automap)

    assert result.floors == {0: Bounds(minX=1, maxX=1, minY=2, maxY=2)}
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert any("notes.png" in w for w in warnings)
    assert any("00100000.png" in w for w in warnings)
    assert not any("readme.txt" in w for w in warnings)


def test_scan_failures_do_not_abort_the_scan(tmp_path, small_automap, region_writer, mocker):
    maps_dir = tmp_path / "Automap"
    region_writer(maps_dir, small_automap, RegionKey(0, 0, 0), {(1, 1): 0x0001})
    region_writer(maps_dir, small_automap, RegionKey(0, 32, 0), {(1, 1): 0x0001})
    real_scan = bounds_mod.scan_region

    def flaky_scan(path, key, layout):
        if key.originX == 32:
            raise UnsupportedPixelFormat("broken")
        return real_scan(path, key, layout)

    mocker.patch("automap_lib.bounds.scan_region", side_effect=flaky_scan)

    result = generate_bounds_from_automap(str(maps_dir), layout=small_automap)

    assert result.floors == {0: Bounds(minX=1, maxX=1, minY=1, maxY=1)}


def test_manifest_is_written_to_data_directory(tmp_path, small_automap, region_writer):
    maps_dir = tmp_path / "Automap"
    data_dir = tmp_path / "data"
    region_writer(maps_dir, small_automap, RegionKey(7, 0, 32), {(3, 4): 0x0001})

    generate_bounds_from_automap(str(maps_dir), str(data_dir), small_automap)

    manifest = json.loads((data_dir / "bounds.json").read_text())
    assert manifest["layout"] == "automap"
    assert manifest["floors"] == {"7": {"minX": 3, "maxX": 3, "minY": 36, "maxY": 36}}
    assert manifest["envelope"] == {"minX": 3, "maxX": 3, "minY": 36, "maxY": 36}


def test_minimap_bounds_use_coarse_pixels(tmp_path, small_minimap, region_writer):
    maps_dir = tmp_path / "minimap"
    region_writer(maps_dir, small_minimap, RegionKey(7, 32, 0), {(1, 2): 0x0001, (3, 5): 0x0001})

    result = generate_bounds_from_minimap(str(maps_dir), layout=small_minimap)

    assert result.floors[7] == Bounds(minX=34, maxX=38, minY=4, maxY=10)
    assert result.layout == "minimap"
