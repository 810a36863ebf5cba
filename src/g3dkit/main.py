from __future__ import annotations

import logging
import sys
from dataclasses import replace
from typing import Sequence

from .api import select_geometry
from .bfast import BfastContainer, parse_bfast
from .cli import parse_args
from .config import LoadOptions, default_log_level
from .errors import G3dError
from .g3d import G3d
from .io_utils import path_name, read_bytes

__all__ = ["main"]

LOG = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv, default_log_level=default_log_level())
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")

    try:
        options = LoadOptions.from_env()
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    if args.top_level:
        options = replace(options, geometry_child=None)
    elif args.geometry_child is not None:
        options = replace(options, geometry_child=args.geometry_child)

    try:
        data = read_bytes(args.input_path)
        bfast = parse_bfast(data)
        g3d = G3d.from_bfast(
            select_geometry(bfast, options.geometry_child),
            default_color=options.default_color,
        )
    except (OSError, G3dError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    LOG.info("Decoded %s (%d bytes)", path_name(args.input_path), len(data))

    _print_container(bfast)
    _print_summary(g3d)
    if args.list_meshes:
        _print_meshes(g3d)

    if args.validate or options.validate:
        failure = g3d.validate()
        if failure is not None:
            print(f"\nValidation failed: {type(failure).__name__}: {failure}")
            return 1
        print("\nValidation passed.")
    return 0


# ------------- summary -------------
def _print_container(bfast: BfastContainer, indent: str = "") -> None:
    if not indent:
        print("Arrays:")
    for name, buffer in bfast.items():
        marker = " [bfast]" if name in bfast.children else ""
        print(f"{indent}- {name}: {buffer.nbytes} bytes{marker}")
        child = bfast.get_child(name)
        if child is not None:
            _print_container(child, indent + "  ")


def _print_summary(g3d: G3d) -> None:
    print("\nSummary:")
    for key, value in g3d.summary().items():
        print(f"- {key}: {value}")


def _print_meshes(g3d: G3d) -> None:
    print("\nMeshes:")
    for mesh in range(g3d.mesh_count):
        print(
            f"- mesh {mesh}: vertices=[{g3d.get_mesh_vertex_start(mesh)}, {g3d.get_mesh_vertex_end(mesh)}), "
            f"indices=[{g3d.get_mesh_index_start(mesh)}, {g3d.get_mesh_index_end(mesh)}), "
            f"submeshes=[{g3d.get_mesh_submesh_start(mesh)}, {g3d.get_mesh_submesh_end(mesh)}), "
            f"instances={len(g3d.get_mesh_instances(mesh))}, transparent={g3d.is_mesh_transparent(mesh)}"
        )
