import numpy as np
import pytest
from PIL import Image

from automap_lib.coords import (
    EMPTY,
    AutomapLayout,
    Marker,
    MinimapLayout,
    PixelCodec,
    RegionKey,
    Terrain,
    load_region,
)
from automap_lib.errors import CorruptDataRecord, MalformedFilename, UnsupportedPixelFormat


def test_automap_filename_round_trip():
    layout = AutomapLayout()
    key = layout.parse_filename("12412507.png")
    assert key == RegionKey(7, 124 * 256, 125 * 256)
    assert layout.format_filename(key) == "12412507.png"


def test_minimap_filename_uses_world_origin():
    layout = MinimapLayout(region_size=256, scale=1)
    key = layout.parse_filename("Minimap_Color_31744_30976_7.png")
    assert key == RegionKey(7, 31744, 30976)
    assert layout.format_filename(key) == "Minimap_Color_31744_30976_7.png"


@pytest.mark.parametrize(
    "name",
    ["1241250.png", "12412507.bmp", "abc12507.png", "Minimap_WaypointCost_0_0_7.png"],
)
def test_malformed_names_are_rejected(name):
    with pytest.raises(MalformedFilename):
        AutomapLayout().parse_filename(name)
    with pytest.raises(MalformedFilename):
        MinimapLayout().parse_filename(name)


def test_minimap_origin_must_be_aligned():
    layout = MinimapLayout(region_size=256, scale=4)
    with pytest.raises(MalformedFilename):
        layout.parse_filename("Minimap_Color_256_0_7.png")
    assert layout.parse_filename("Minimap_Color_1024_2048_7.png") == RegionKey(7, 1024, 2048)


def test_tile_pixel_mapping_is_linear():
    layout = AutomapLayout(region_size=32)
    key = layout.region_key(3, 70, 5)
    assert key == RegionKey(3, 64, 0)
    assert layout.to_pixel(key, 70, 5) == (6, 5)
    assert layout.to_world(key, 6, 5) == (70, 5)
    with pytest.raises(ValueError):
        layout.to_pixel(key, 10, 5)


def test_coarse_layout_anchors_pixels_at_top_left_tile():
    layout = MinimapLayout(region_size=16, scale=2)
    key = layout.region_key(0, 33, 3)
    assert key == RegionKey(0, 32, 0)
    assert layout.to_pixel(key, 33, 3) == (0, 1)
    assert layout.to_world(key, 0, 1) == (32, 2)
    # Only pixels whose anchor tile lies in [35, 40] are selected.
    assert layout.pixel_range(32, 35, 40) == (2, 4)


def test_pixel_codec_classifies_tagged_cells():
    codec = PixelCodec(family="16bit", background=0)
    assert codec.classify(0) is EMPTY
    assert codec.classify(6) == Terrain(5)
    assert codec.classify((3 << 8) | 6) == Marker(code=3, terrain=5)
    assert codec.classify(3 << 8) == Marker(code=3, terrain=None)
    # Without markers the underlying terrain survives, marker-only pixels vanish.
    assert codec.classify((3 << 8) | 6, include_markers=False) == Terrain(5)
    assert codec.classify(3 << 8, include_markers=False) is EMPTY
    assert codec.classify(70000) is EMPTY


def test_marker_values_are_disjoint_from_terrain_values():
    codec = PixelCodec(family="16bit", background=0)
    terrain_values = {codec.encode(t, None) for t in range(0, 255)}
    marker_values = {codec.encode(t, 1) for t in range(0, 255)}
    assert max(terrain_values) <= 0xFF
    assert min(marker_values) >= 0x100
    assert codec.encode(None, None) is None
    assert codec.encode(None, 4, include_markers=False) is None


def test_empty_mask_matches_classify():
    codec = PixelCodec(family="16bit", background=0)
    values = np.array([[0, 1, 0x100, 0x105]], dtype=np.uint16)
    assert codec.empty_mask(values).tolist() == [[True, False, False, False]]
    assert codec.empty_mask(values, include_markers=False).tolist() == [
        [True, False, True, False]
    ]


def test_eight_bit_minimap_background_is_255():
    codec = MinimapLayout().codec_for("L")
    assert codec.background == 255
    assert codec.classify(255) is EMPTY
    assert codec.classify(0) == Terrain(0)
    assert AutomapLayout().codec_for("L").classify(0) is EMPTY


def test_unsupported_modes_raise():
    with pytest.raises(UnsupportedPixelFormat):
        AutomapLayout().codec_for("RGB")


def test_load_region_rejects_rgb_and_wrong_size(tmp_path):
    layout = AutomapLayout(region_size=32)
    rgb_path = tmp_path / "00000007.png"
    Image.new("RGB", (32, 32)).save(rgb_path)
    with pytest.raises(UnsupportedPixelFormat):
        load_region(str(rgb_path), layout)

    small_path = tmp_path / "00000008.png"
    Image.fromarray(np.zeros((8, 8), dtype=np.uint16)).save(small_path)
    with pytest.raises(UnsupportedPixelFormat):
        load_region(str(small_path), layout)

    junk_path = tmp_path / "00000009.png"
    junk_path.write_bytes(b"not an image")
    with pytest.raises(UnsupportedPixelFormat):
        load_region(str(junk_path), layout)


def test_load_region_reads_sixteen_bit_values(tmp_path, region_writer):
    layout = AutomapLayout(region_size=32)
    path = region_writer(tmp_path, layout, RegionKey(0, 0, 0), {(3, 4): 0x0207})
    values, codec = load_region(path, layout)
    assert codec.family == "16bit"
    assert int(values[4, 3]) == 0x0207
    assert int(values[0, 0]) == 0


def test_eight_bit_values_above_terrain_range_are_empty():
    codec = AutomapLayout().codec_for("L")
    assert codec.classify(255) is EMPTY
    assert codec.classify(254) == Terrain(254)
    values = np.array([[0, 7, 254, 255]], dtype=np.uint8)
    assert codec.empty_mask(values).tolist() == [[True, False, False, True]]


def test_unrepresentable_tiles_are_corrupt_records():
    with pytest.raises(CorruptDataRecord):
        AutomapLayout().format_filename(RegionKey(100, 0, 0))
    with pytest.raises(CorruptDataRecord):
        PixelCodec(family="16bit", background=5).encode(4, None)
    with pytest.raises(CorruptDataRecord):
        PixelCodec(family="16bit", background=0).encode(255, None)
