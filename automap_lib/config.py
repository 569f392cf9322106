# --- automap_lib/config.py ---
import configparser
import logging
from typing import Tuple

from .constants import (
    AUTOMAP_REGION_SIZE,
    BACKGROUND_VALUES,
    DEFAULT_WORKERS,
    MINIMAP_REGION_SIZE,
    MINIMAP_SCALE,
)
from .coords import AutomapLayout, MinimapLayout

log = logging.getLogger("automap.config")


class ConfigService:
    """Reads the optional automap.cfg file, applying defaults if missing."""

    def __init__(self, config_path: str = None):
        self.config_path = config_path
        self.defaults = {
            "automap": {
                "region_size": AUTOMAP_REGION_SIZE,
                "background_16bit": BACKGROUND_VALUES[("automap", "16bit")],
                "background_8bit": BACKGROUND_VALUES[("automap", "8bit")],
            },
            "minimap": {
                "region_size": MINIMAP_REGION_SIZE,
                "scale": MINIMAP_SCALE,
                "background_16bit": BACKGROUND_VALUES[("minimap", "16bit")],
                "background_8bit": BACKGROUND_VALUES[("minimap", "8bit")],
            },
            "conversion": {
                "workers": DEFAULT_WORKERS,
            },
        }

    def get_settings(self) -> dict:
        """Returns all settings as a nested dict of integers."""
        config = configparser.ConfigParser()
        # Apply defaults first
        for section, values in self.defaults.items():
            config[section] = {k: str(v) for k, v in values.items()}

        if self.config_path:
            if config.read(self.config_path):
                log.info("Loaded settings from %s", self.config_path)
            else:
                log.debug("Config file not found at %s. Using defaults.", self.config_path)

        return self._config_to_dict(config)

    def _config_to_dict(self, config: configparser.ConfigParser) -> dict:
        """Converts a ConfigParser object to a nested dictionary of ints."""
        settings = {}
        for section in config.sections():
            settings[section] = {}
            for key, raw in config.items(section):
                try:
                    settings[section][key] = int(raw)
                except ValueError:
                    default = self.defaults.get(section, {}).get(key)
                    log.warning(
                        "Invalid value '%s' for [%s] %s. Using default %s.",
                        raw,
                        section,
                        key,
                        default,
                    )
                    if default is not None:
                        settings[section][key] = default
        return settings


def build_layouts(settings: dict) -> Tuple[AutomapLayout, MinimapLayout]:
    """Creates the Automap and minimap layouts described by the settings."""
    a, m = settings["automap"], settings["minimap"]
    automap = AutomapLayout(
        region_size=a["region_size"],
        backgrounds={"16bit": a["background_16bit"], "8bit": a["background_8bit"]},
    )
    minimap = MinimapLayout(
        region_size=m["region_size"],
        scale=m["scale"],
        backgrounds={"16bit": m["background_16bit"], "8bit": m["background_8bit"]},
    )
    log.debug("Layouts: %s, %s", automap, minimap)
    return automap, minimap
