# --- automap_lib/conversion/flash.py ---
"""
Legacy flash client export.

All integers are little-endian::

    header  "AMXP" | u16 version | u16 flags | u16 floor_count
    floor   u8 floor | u32 tile_count
    tile    u16 x | u16 y | u8 terrain (0xFF = none) | u8 marker (0 = none)

Floors are written in ascending order and tiles in ascending (y, x). The
same tile set therefore always serializes to the same bytes.
"""
import logging
import os
import struct
from typing import Dict, List

from automap_lib import schema
from automap_lib.constants import (
    FLASH_FLAG_MARKERS,
    FLASH_MAGIC,
    FLASH_NO_MARKER,
    FLASH_NO_TERRAIN,
    FLASH_VERSION,
    MARKER_ICONS,
)
from automap_lib.errors import CorruptDataRecord, UnsupportedMarkerCode

log = logging.getLogger("automap.export")

HEADER = struct.Struct("<4sHHH")
FLOOR_HEADER = struct.Struct("<BI")
TILE = struct.Struct("<HHBB")


def _marker_byte(tile: schema.Tile, include_markers: bool) -> int:
    if not include_markers or tile.marker is None:
        return FLASH_NO_MARKER
    if not 1 <= tile.marker <= len(MARKER_ICONS):
        raise UnsupportedMarkerCode(
            f"Marker code {tile.marker} at ({tile.x}, {tile.y}, {tile.floor}) "
            f"has no legacy icon (supported: 1..{len(MARKER_ICONS)})."
        )
    return tile.marker


def encode_flash(tiles_by_floor: Dict[int, List[schema.Tile]], include_markers: bool) -> bytes:
    floors = []
    for floor in sorted(tiles_by_floor):
        records = []
        for tile in sorted(tiles_by_floor[floor], key=lambda t: (t.y, t.x)):
            marker = _marker_byte(tile, include_markers)
            if tile.terrain is None and marker == FLASH_NO_MARKER:
                continue
            terrain = FLASH_NO_TERRAIN if tile.terrain is None else tile.terrain
            try:
                records.append(TILE.pack(tile.x, tile.y, terrain, marker))
            except struct.error as e:
                raise CorruptDataRecord(
                    f"Tile ({tile.x}, {tile.y}, {floor}) does not fit the export format: {e}"
                ) from e
        if records:
            floors.append((floor, records))

    flags = FLASH_FLAG_MARKERS if include_markers else 0
    out = bytearray(HEADER.pack(FLASH_MAGIC, FLASH_VERSION, flags, len(floors)))
    for floor, records in floors:
        out += FLOOR_HEADER.pack(floor, len(records))
        for record in records:
            out += record
    return bytes(out)


def export_flash(
    tiles_by_floor: Dict[int, List[schema.Tile]], path: str, include_markers: bool = True
) -> int:
    """Writes the export file and returns its size in bytes."""
    payload = encode_flash(tiles_by_floor, include_markers)
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    with open(path, "wb") as f:
        f.write(payload)
    log.info("Wrote flash export %s (%d bytes).", path, len(payload))
    return len(payload)


def load_flash_export(path: str) -> Dict[int, List[schema.Tile]]:
    """Reads an export file back into tiles grouped by floor."""
    with open(path, "rb") as f:
        data = f.read()
    try:
        magic, version, _flags, floor_count = HEADER.unpack_from(data, 0)
        if magic != FLASH_MAGIC or version != FLASH_VERSION:
            raise CorruptDataRecord(f"{path} is not a version {FLASH_VERSION} flash export.")
        offset = HEADER.size
        result = {}
        for _ in range(floor_count):
            floor, count = FLOOR_HEADER.unpack_from(data, offset)
            offset += FLOOR_HEADER.size
            tiles = []
            for x, y, terrain, marker in TILE.iter_unpack(data[offset : offset + count * TILE.size]):
                tiles.append(
                    schema.Tile(
                        floor,
                        x,
                        y,
                        terrain=None if terrain == FLASH_NO_TERRAIN else terrain,
                        marker=marker or None,
                    )
                )
            if len(tiles) != count:
                raise CorruptDataRecord(f"{path}: floor {floor} is truncated.")
            offset += count * TILE.size
            result[floor] = tiles
    except struct.error as e:
        raise CorruptDataRecord(f"{path} is truncated: {e}") from e
    return result
