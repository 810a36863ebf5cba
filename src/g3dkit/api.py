from __future__ import annotations

import logging
from typing import Optional

from .bfast import BfastContainer, BufferLike, parse_bfast
from .config import LoadOptions
from .g3d import G3d
from .io_utils import PathLike, is_geometry_path, path_name, read_bytes

__all__ = ["load_g3d", "read_g3d", "select_geometry"]

LOG = logging.getLogger(__name__)


def select_geometry(bfast: BfastContainer, geometry_child: Optional[str]) -> BfastContainer:
    """Return the nested geometry container when present, else ``bfast`` itself."""
    if geometry_child is None:
        return bfast
    child = bfast.get_child(geometry_child)
    if child is not None:
        LOG.debug("Using nested '%s' container", geometry_child)
        return child
    if geometry_child in bfast:
        LOG.warning("Buffer '%s' is not a BFAST container; reading the top level", geometry_child)
    return bfast


def load_g3d(data: BufferLike, options: Optional[LoadOptions] = None) -> G3d:
    """Decode G3D (or VIM) bytes into a :class:`G3d` model.

    ``data`` must outlive the model: attribute arrays are views into it.
    """
    opts = options if options is not None else LoadOptions.from_env()
    bfast = select_geometry(parse_bfast(data), opts.geometry_child)
    g3d = G3d.from_bfast(bfast, default_color=opts.default_color)
    if opts.validate:
        g3d.ensure_valid()
    return g3d


def read_g3d(path: PathLike, options: Optional[LoadOptions] = None) -> G3d:
    """Read a ``.g3d``/``.vim`` file from disk and decode it."""
    if not is_geometry_path(path):
        LOG.debug("'%s' does not have a .g3d/.vim extension; decoding anyway", path_name(path))
    return load_g3d(read_bytes(path), options)
