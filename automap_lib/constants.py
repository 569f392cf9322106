# --- automap_lib/constants.py ---
# Shared constants for the automap tool and library.

AUTOMAP_NAME = "automap"
AUTOMAP_VERSION = "1.0.0"

# --- Region layouts ---
AUTOMAP_REGION_SIZE = 256
MINIMAP_REGION_SIZE = 256
MINIMAP_SCALE = 4

# Pillow modes grouped by pixel payload.
MODE_FAMILIES = {
    "I;16": "16bit",
    "I": "16bit",
    "L": "8bit",
    "P": "8bit",
}

# Background (unexplored) value per layout and mode family.
BACKGROUND_VALUES = {
    ("automap", "16bit"): 0,
    ("automap", "8bit"): 0,
    ("minimap", "16bit"): 0,
    ("minimap", "8bit"): 255,
}

# --- Pixel payload (16-bit family) ---
TERRAIN_MASK = 0xFF
MARKER_SHIFT = 8
MAX_PIXEL_VALUE = 0xFFFF
MAX_TERRAIN_ID = 254
MIN_MARKER_CODE = 1
MAX_MARKER_CODE = 255
# Automap names hold two floor digits and the flash export stores u16 coordinates.
MAX_FLOOR = 99
MAX_COORD = 0xFFFF

# Marker icons known to the legacy export, in code order (code 1 is "checkmark").
MARKER_ICONS = (
    "checkmark",
    "question",
    "exclamation",
    "star",
    "crossmark",
    "cross",
    "mouth",
    "spear",
    "sword",
    "flag",
    "lock",
    "bag",
    "skull",
    "dollar",
    "red-up",
    "red-down",
    "red-right",
    "red-left",
    "up",
    "down",
)

# --- Data Directory ---
BOUNDS_FILENAME = "bounds.json"
FLOOR_FILENAME = "floor-{floor:02d}.json"
DATA_FORMAT_VERSION = "1.0.0"

# --- Flash export ---
FLASH_MAGIC = b"AMXP"
FLASH_VERSION = 1
FLASH_FLAG_MARKERS = 0x01
FLASH_NO_TERRAIN = 0xFF
FLASH_NO_MARKER = 0

# --- CLI defaults ---
DEFAULT_AUTOMAP_DIR = "Automap"
DEFAULT_MINIMAP_DIR = "minimap"
DEFAULT_DATA_DIR = "data"
DEFAULT_NEW_AUTOMAP_DIR = "Automap-new"
DEFAULT_CONFIG_FILE = "automap.cfg"
DEFAULT_WORKERS = 4
