# --- automap_lib/store.py ---
"""
Repository access to the Data Directory.

The converters only talk to a ``DataStore``, so they can be driven by the
filesystem-backed ``DirectoryDataStore`` or by ``MemoryDataStore`` in tests.
"""
import copy
import logging
import os
import re
from typing import Dict, List, Optional, Union

from . import schema
from .constants import BOUNDS_FILENAME, FLOOR_FILENAME
from .errors import CorruptDataRecord

log = logging.getLogger("automap.store")

FLOOR_FILE_RE = re.compile(r"^floor-(\d+)\.json$")


class DataStore:
    """Interface of a sparse, floor-addressed tile store with a bounds manifest."""

    def list_floors(self) -> List[int]:
        raise NotImplementedError

    def read_floor(self, floor: int) -> List[schema.Tile]:
        raise NotImplementedError

    def write_floor(self, floor: int, tiles: List[schema.Tile]) -> None:
        raise NotImplementedError

    def read_bounds(self) -> Optional[schema.MapBounds]:
        raise NotImplementedError

    def write_bounds(self, bounds: schema.MapBounds) -> None:
        raise NotImplementedError


class DirectoryDataStore(DataStore):
    """Stores one ``floor-NN.json`` per floor plus ``bounds.json`` in a directory."""

    def __init__(self, path: str):
        if not path:
            raise ValueError("Data directory path cannot be empty.")
        self.path = path

    def _floor_path(self, floor: int) -> str:
        return os.path.join(self.path, FLOOR_FILENAME.format(floor=floor))

    def list_floors(self) -> List[int]:
        if not os.path.isdir(self.path):
            raise FileNotFoundError(f"Data directory not found: {self.path}")
        floors = []
        for name in os.listdir(self.path):
            m = FLOOR_FILE_RE.match(name)
            if m:
                floors.append(int(m.group(1)))
        return sorted(floors)

    def read_floor(self, floor: int) -> List[schema.Tile]:
        path = self._floor_path(floor)
        tiles = schema.floor_from_dict(floor, schema.load_json(path))
        log.debug("Read %d tiles from %s", len(tiles), path)
        return tiles

    def write_floor(self, floor: int, tiles: List[schema.Tile]) -> None:
        os.makedirs(self.path, exist_ok=True)
        path = self._floor_path(floor)
        schema.save_json(schema.floor_to_dict(floor, tiles), path)
        log.info("Wrote %d tiles for floor %d to %s", len(tiles), floor, path)

    def read_bounds(self) -> Optional[schema.MapBounds]:
        path = os.path.join(self.path, BOUNDS_FILENAME)
        if not os.path.exists(path):
            return None
        return schema.bounds_from_dict(schema.load_json(path))

    def write_bounds(self, bounds: schema.MapBounds) -> None:
        os.makedirs(self.path, exist_ok=True)
        path = os.path.join(self.path, BOUNDS_FILENAME)
        schema.save_json(schema.bounds_to_dict(bounds), path)
        log.info("Saved bounds manifest for %d floor(s) to %s", len(bounds.floors), path)


class MemoryDataStore(DataStore):
    """In-memory store holding raw floor records, validated on read like files are."""

    def __init__(self):
        self.floors: Dict[int, dict] = {}
        self.bounds: Optional[dict] = None

    def list_floors(self) -> List[int]:
        return sorted(self.floors)

    def read_floor(self, floor: int) -> List[schema.Tile]:
        if floor not in self.floors:
            raise CorruptDataRecord(f"Floor {floor} is not present in the store.")
        return schema.floor_from_dict(floor, copy.deepcopy(self.floors[floor]))

    def write_floor(self, floor: int, tiles: List[schema.Tile]) -> None:
        self.floors[floor] = schema.floor_to_dict(floor, tiles)

    def read_bounds(self) -> Optional[schema.MapBounds]:
        if self.bounds is None:
            return None
        return schema.bounds_from_dict(copy.deepcopy(self.bounds))

    def write_bounds(self, bounds: schema.MapBounds) -> None:
        self.bounds = schema.bounds_to_dict(bounds)


def open_store(target: Union[str, os.PathLike, DataStore]) -> DataStore:
    """Returns ``target`` if it already is a store, else a directory store on it."""
    if isinstance(target, DataStore):
        return target
    return DirectoryDataStore(os.fspath(target))
