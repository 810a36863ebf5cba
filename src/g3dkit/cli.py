from __future__ import annotations

import argparse
from typing import Sequence


class _JoinPathAction(argparse.Action):
    """Join successive CLI tokens into a single path string (handles spaces gracefully)."""

    def __call__(self, parser, namespace, values, option_string=None):
        joined = " ".join(values).strip()
        setattr(namespace, self.dest, joined or None)


def parse_args(
    argv: Sequence[str] | None = None,
    *,
    default_log_level: str = "WARNING",
) -> argparse.Namespace:
    """Parse the CLI arguments for the G3D inspector."""

    parser = argparse.ArgumentParser(
        prog="g3dkit",
        description="Inspect the BFAST layout and G3D geometry of a .g3d or .vim file",
    )
    parser.add_argument(
        "input_path",
        nargs="+",
        action=_JoinPathAction,
        help="Path to a .g3d or .vim file",
    )
    parser.add_argument(
        "--validate",
        dest="validate",
        action="store_true",
        help="Run the structural validation pass and exit with status 1 on failure",
    )
    parser.add_argument(
        "--meshes",
        dest="list_meshes",
        action="store_true",
        help="List vertex, index and submesh ranges, instances and transparency per mesh",
    )
    parser.add_argument(
        "--geometry-child",
        dest="geometry_child",
        default=None,
        help="Name of the nested BFAST holding the geometry (default: 'geometry', or $G3DKIT_GEOMETRY_CHILD)",
    )
    parser.add_argument(
        "--top-level",
        dest="top_level",
        action="store_true",
        help="Read the geometry from the top-level container even when a geometry child exists",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str.upper,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default=default_log_level,
        help="Logging verbosity (default: %(default)s, or $G3DKIT_LOG_LEVEL)",
    )
    return parser.parse_args(argv)
