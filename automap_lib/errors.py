# --- automap_lib/errors.py ---


class AutomapError(Exception):
    """Base class for all errors raised by the conversion pipeline."""


class MalformedFilename(AutomapError, ValueError):
    """A region image name does not follow the layout's naming convention."""


class UnsupportedPixelFormat(AutomapError, ValueError):
    """A region image has a colour depth, channel layout or size we cannot read."""


class CorruptDataRecord(AutomapError, ValueError):
    """A Data Directory entry cannot be parsed into valid tiles."""


class UnsupportedMarkerCode(AutomapError, ValueError):
    """A marker has no encoding in the legacy flash export format."""


class MissingOutputPath(AutomapError, ValueError):
    """An output flag was given without the path it requires."""
