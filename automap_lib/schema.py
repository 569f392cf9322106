# --- automap_lib/schema.py ---
import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .constants import (
    DATA_FORMAT_VERSION,
    MAX_COORD,
    MAX_FLOOR,
    MAX_MARKER_CODE,
    MAX_TERRAIN_ID,
    MIN_MARKER_CODE,
)
from .errors import CorruptDataRecord


@dataclass
class Tile:
    """A single non-empty world tile: terrain id and/or marker code."""

    floor: int
    x: int
    y: int
    terrain: Optional[int] = None
    marker: Optional[int] = None


@dataclass
class Bounds:
    """Inclusive axis-aligned box in world tile coordinates."""

    minX: int
    maxX: int
    minY: int
    maxY: int

    @classmethod
    def of_point(cls, x: int, y: int) -> "Bounds":
        return cls(minX=x, maxX=x, minY=y, maxY=y)

    @classmethod
    def of_tiles(cls, tiles: Iterable[Tile]) -> Optional["Bounds"]:
        bounds = None
        for tile in tiles:
            point = cls.of_point(tile.x, tile.y)
            bounds = point if bounds is None else bounds.union(point)
        return bounds

    def union(self, other: "Bounds") -> "Bounds":
        return Bounds(
            minX=min(self.minX, other.minX),
            maxX=max(self.maxX, other.maxX),
            minY=min(self.minY, other.minY),
            maxY=max(self.maxY, other.maxY),
        )


@dataclass
class MapBounds:
    """Per-floor bounds of a map. Floors without content are never present."""

    floors: Dict[int, Bounds] = field(default_factory=dict)
    layout: Optional[str] = None

    def include(self, floor: int, bounds: Bounds) -> None:
        """Folds a box into the accumulator of the given floor."""
        current = self.floors.get(floor)
        self.floors[floor] = bounds if current is None else current.union(bounds)

    @property
    def envelope(self) -> Optional[Bounds]:
        """The global box across all floors, or None for an empty map."""
        result = None
        for floor in sorted(self.floors):
            b = self.floors[floor]
            result = b if result is None else result.union(b)
        return result

    def is_empty(self) -> bool:
        return not self.floors


# --- Validation ---
def _require_int(value: Any, name: str, lo: int, hi: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise CorruptDataRecord(f"'{name}' must be an integer, got {value!r}")
    if value < lo or (hi is not None and value > hi):
        raise CorruptDataRecord(f"'{name}' out of range: {value}")
    return value


def tile_from_dict(floor: int, data: Any) -> Tile:
    """Builds a validated Tile from a floor record entry."""
    if not isinstance(data, dict):
        raise CorruptDataRecord(f"Tile record must be an object, got {type(data).__name__}")
    try:
        x, y = data["x"], data["y"]
    except KeyError as e:
        raise CorruptDataRecord(f"Tile record missing key {e}") from e
    terrain = data.get("terrain")
    marker = data.get("marker")
    tile = Tile(
        floor=floor,
        x=_require_int(x, "x", 0, MAX_COORD),
        y=_require_int(y, "y", 0, MAX_COORD),
        terrain=None if terrain is None else _require_int(terrain, "terrain", 0, MAX_TERRAIN_ID),
        marker=None
        if marker is None
        else _require_int(marker, "marker", MIN_MARKER_CODE, MAX_MARKER_CODE),
    )
    if tile.terrain is None and tile.marker is None:
        raise CorruptDataRecord(f"Empty tile record at ({tile.x}, {tile.y}) on floor {floor}")
    return tile


def floor_to_dict(floor: int, tiles: List[Tile]) -> Dict[str, Any]:
    records = [
        {"x": t.x, "y": t.y, "terrain": t.terrain, "marker": t.marker}
        for t in sorted(tiles, key=lambda t: (t.y, t.x))
    ]
    return {"floor": floor, "tileCount": len(records), "tiles": records}


def floor_from_dict(floor: int, data: Any) -> List[Tile]:
    """Deserializes and validates a floor record."""
    if not isinstance(data, dict) or not isinstance(data.get("tiles"), list):
        raise CorruptDataRecord(f"Floor {floor} record has no tile list.")
    if data.get("floor") != floor:
        raise CorruptDataRecord(
            f"Floor record declares floor {data.get('floor')!r}, expected {floor}"
        )
    _require_int(floor, "floor", 0, MAX_FLOOR)
    tiles = [tile_from_dict(floor, t) for t in data["tiles"]]
    seen = set()
    for t in tiles:
        if (t.x, t.y) in seen:
            raise CorruptDataRecord(f"Duplicate tile ({t.x}, {t.y}) on floor {floor}")
        seen.add((t.x, t.y))
    return tiles


def bounds_to_dict(map_bounds: MapBounds) -> Dict[str, Any]:
    envelope = map_bounds.envelope
    return {
        "version": DATA_FORMAT_VERSION,
        "layout": map_bounds.layout,
        "floors": {str(f): asdict(map_bounds.floors[f]) for f in sorted(map_bounds.floors)},
        "envelope": asdict(envelope) if envelope else None,
    }


def bounds_from_dict(data: Any) -> MapBounds:
    """Deserializes a bounds manifest."""
    try:
        floors = {
            int(floor): Bounds(**{k: int(v) for k, v in b.items()})
            for floor, b in data["floors"].items()
        }
        layout = data.get("layout")
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CorruptDataRecord(f"Invalid bounds manifest: {e}") from e
    return MapBounds(floors=floors, layout=layout)


def save_json(payload: Dict[str, Any], output_path: str) -> None:
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=1)


def load_json(input_path: str) -> Any:
    """
    Reads a JSON document from disk.

    Raises:
        CorruptDataRecord: If the file is not valid JSON.
    """
    try:
        with open(input_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptDataRecord(f"Could not parse {input_path}: {e}") from e
