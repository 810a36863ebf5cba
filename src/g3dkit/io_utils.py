from __future__ import annotations

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]

G3D_SUFFIXES = (".g3d", ".vim")


def _as_string(value: PathLike) -> str:
    if isinstance(value, Path):
        return value.as_posix()
    return str(value)


def path_name(path: PathLike) -> str:
    return Path(_as_string(path)).name


def path_suffix(path: PathLike) -> str:
    name = path_name(path)
    idx = name.rfind(".")
    return "" if idx <= 0 else name[idx:].lower()


def is_geometry_path(path: PathLike) -> bool:
    """True for file names with a G3D or VIM extension."""
    return path_suffix(path) in G3D_SUFFIXES


def read_bytes(path: PathLike) -> bytes:
    target = Path(path)
    if not target.is_file():
        raise FileNotFoundError(f"No such file: {_as_string(path)}")
    return target.read_bytes()
