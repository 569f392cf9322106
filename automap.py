#!/usr/bin/env python3
"""
automap: Converts tile maps between Automap/minimap region images and a
sparse, coordinate-indexed data directory, and exports data directories to
the legacy flash format.
"""
import argparse
import logging
import os
import shutil
import sys

from automap_lib.bounds import generate_bounds_from_automap, generate_bounds_from_minimap
from automap_lib.config import ConfigService, build_layouts
from automap_lib.constants import (
    AUTOMAP_NAME,
    AUTOMAP_VERSION,
    DEFAULT_AUTOMAP_DIR,
    DEFAULT_CONFIG_FILE,
    DEFAULT_DATA_DIR,
    DEFAULT_MINIMAP_DIR,
    DEFAULT_NEW_AUTOMAP_DIR,
)
from automap_lib.conversion.from_maps import convert_from_maps, convert_from_minimap
from automap_lib.conversion.to_maps import convert_to_maps
from automap_lib.errors import AutomapError, MissingOutputPath
from automap_lib.log_utils import setup_logging

log = logging.getLogger("automap.main")

USAGE_EXAMPLES = [
    f"{AUTOMAP_NAME} --from-maps=./Automap --output-dir=./data",
    f"{AUTOMAP_NAME} --from-data=./data --output-dir=./Automap --no-markers",
    f"{AUTOMAP_NAME} --from-data=./data-without-markers "
    "--flash-export-file=./flash/maps-without-markers.exp --no-markers",
]


class CustomHelpFormatter(
    argparse.ArgumentDefaultsHelpFormatter, argparse.RawTextHelpFormatter
):
    """Shows default values while preserving newlines in help text."""

    pass


def get_cli_args(argv):
    """Configures and parses command-line arguments."""
    p = argparse.ArgumentParser(
        prog=AUTOMAP_NAME,
        description="Converts between Automap/minimap images and map data.",
        formatter_class=CustomHelpFormatter,
    )
    g_src = p.add_argument_group("Source (pick exactly one)")
    g_src.add_argument(
        "--from-maps",
        nargs="?",
        const=True,
        metavar="DIR",
        help=f"Read Automap region images (default dir: {DEFAULT_AUTOMAP_DIR}).",
    )
    g_src.add_argument(
        "--from-minimap",
        nargs="?",
        const=True,
        metavar="DIR",
        help=f"Read minimap region images (default dir: {DEFAULT_MINIMAP_DIR}).",
    )
    g_src.add_argument(
        "--from-data",
        nargs="?",
        const=True,
        metavar="DIR",
        help=f"Read a data directory (default dir: {DEFAULT_DATA_DIR}).",
    )
    g_out = p.add_argument_group("Output")
    g_out.add_argument(
        "--output-dir",
        nargs="?",
        const=True,
        metavar="DIR",
        help=f"Destination directory ({DEFAULT_DATA_DIR} or {DEFAULT_NEW_AUTOMAP_DIR}).",
    )
    g_out.add_argument(
        "--flash-export-file",
        nargs="?",
        const=True,
        metavar="PATH",
        help="With --from-data, write a single flash export file instead of images.",
    )
    g_out.add_argument(
        "--no-markers",
        action="store_true",
        help="Neither read nor write markers.",
    )
    p.add_argument(
        "-v", "--version", action="version", version=f"v{AUTOMAP_VERSION}"
    )
    # Logging & settings arguments
    g_log = p.add_argument_group("Logging & Settings")
    g_log.add_argument("--verbose", action="store_true", help="Enable INFO logging.")
    g_log.add_argument(
        "-d",
        "--debug",
        nargs="?",
        const="all",
        dest="debug_topics",
        metavar="TOPICS",
        help="Enable DEBUG logging (all,bounds,coords,convert,render,export,store,config).",
    )
    g_log.add_argument(
        "--color-logs", action="store_true", help="Enable colored logging."
    )
    g_log.add_argument(
        "--log-file", metavar="FILE", help="Redirect log output to a file."
    )
    g_log.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        metavar="FILE",
        help="Settings file with layout and worker options.",
    )
    g_log.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Worker threads for per-image work (default from settings).",
    )
    return p.parse_args(argv)


def print_usage_banner():
    print(f"{AUTOMAP_NAME} v{AUTOMAP_VERSION}")
    print("\nUsage:\n")
    for example in USAGE_EXAMPLES:
        print(f"\t{example}")


def resolve_dir(value, flag: str, default: str) -> str:
    """Returns an absolute path for a flag value, falling back to the default."""
    if value is None or value is True:
        log.warning("`--%s` path not specified. Using the default, i.e. `%s`.", flag, default)
        value = default
    return os.path.abspath(str(value))


def empty_directory(path: str) -> None:
    """Removes everything inside ``path`` and makes sure the directory exists."""
    if os.path.isdir(path):
        for name in os.listdir(path):
            entry = os.path.join(path, name)
            if os.path.isdir(entry) and not os.path.islink(entry):
                shutil.rmtree(entry)
            else:
                os.remove(entry)
    os.makedirs(path, exist_ok=True)
    log.debug("Emptied %s", path)


def run(args, settings) -> None:
    """Sequences the conversion selected by the command-line flags."""
    automap_layout, minimap_layout = build_layouts(settings)
    workers = args.workers or settings["conversion"]["workers"]
    include_markers = not args.no_markers

    if args.from_maps is not None or args.from_minimap is not None:
        if args.from_maps is not None:
            maps_dir = resolve_dir(args.from_maps, "from-maps", DEFAULT_AUTOMAP_DIR)
        else:
            maps_dir = resolve_dir(args.from_minimap, "from-minimap", DEFAULT_MINIMAP_DIR)
        data_dir = resolve_dir(args.output_dir, "output-dir", DEFAULT_DATA_DIR)
        empty_directory(data_dir)
        if args.from_maps is not None:
            bounds = generate_bounds_from_automap(maps_dir, data_dir, automap_layout, workers)
            convert_from_maps(
                bounds, maps_dir, data_dir, include_markers, automap_layout, workers
            )
        else:
            bounds = generate_bounds_from_minimap(maps_dir, data_dir, minimap_layout, workers)
            convert_from_minimap(
                bounds, maps_dir, data_dir, include_markers, minimap_layout, workers
            )
        return

    data_dir = resolve_dir(args.from_data, "from-data", DEFAULT_DATA_DIR)
    if args.flash_export_file is True:
        raise MissingOutputPath("`--flash-export-file` path not specified.")
    if args.flash_export_file:
        convert_to_maps(
            data_dir,
            os.path.abspath(args.flash_export_file),
            include_markers,
            is_flash_export=True,
            workers=workers,
        )
        return

    maps_dir = resolve_dir(args.output_dir, "output-dir", DEFAULT_NEW_AUTOMAP_DIR)
    minimap_dir = os.path.join(os.path.dirname(maps_dir), DEFAULT_MINIMAP_DIR)
    empty_directory(maps_dir)
    empty_directory(minimap_dir)
    convert_to_maps(
        data_dir,
        maps_dir,
        include_markers,
        is_flash_export=False,
        minimap_dir=minimap_dir,
        automap_layout=automap_layout,
        minimap_layout=minimap_layout,
        workers=workers,
    )


def main(argv=None) -> int:
    """Main entry point for the automap CLI."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print_usage_banner()
        return 1

    args = get_cli_args(argv)
    log_level = logging.INFO if args.verbose else logging.WARNING
    if args.debug_topics:
        log_level = logging.DEBUG
    setup_logging(log_level, args.color_logs, args.debug_topics, args.log_file)

    log.info("--- AUTOMAP CLI Initialized ---")
    log.debug("Arguments received: %s", vars(args))

    sources = [
        flag
        for flag, value in (
            ("from-maps", args.from_maps),
            ("from-minimap", args.from_minimap),
            ("from-data", args.from_data),
        )
        if value is not None
    ]
    if not sources:
        log.error("Missing `--from-maps`, `--from-minimap`, or `--from-data` flag.")
        return 1
    if len(sources) > 1:
        log.error(
            "Cannot combine `--from-maps` with `--from-minimap` or `--from-data`. Pick one."
        )
        return 1

    settings = ConfigService(args.config).get_settings()
    try:
        run(args, settings)
    except (AutomapError, FileNotFoundError) as e:
        log.critical("%s", e)
        return 1

    log.info("--- Processing complete. ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
