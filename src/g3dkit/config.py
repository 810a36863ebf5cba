"""Load-time options and their environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple

from .g3d import DEFAULT_COLOR

__all__ = [
    "LoadOptions",
    "DEFAULT_LOAD_OPTIONS",
    "DEFAULT_GEOMETRY_CHILD",
    "ENV_GEOMETRY_CHILD",
    "ENV_VALIDATE",
    "ENV_LOG_LEVEL",
    "default_log_level",
]

LOG = logging.getLogger(__name__)

# VIM files keep their G3D in a nested BFAST buffer with this name
DEFAULT_GEOMETRY_CHILD = "geometry"

ENV_GEOMETRY_CHILD = "G3DKIT_GEOMETRY_CHILD"
ENV_VALIDATE = "G3DKIT_VALIDATE"
ENV_LOG_LEVEL = "G3DKIT_LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _parse_flag(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise ValueError(f"Environment variable {name} must be a boolean flag, got '{value}'")


@dataclass(frozen=True)
class LoadOptions:
    """Knobs used by :func:`g3dkit.api.load_g3d`.

    ``geometry_child`` names the nested container to descend into when the
    top-level BFAST has one; set it to ``None`` to always read the top level.
    """

    geometry_child: Optional[str] = DEFAULT_GEOMETRY_CHILD
    validate: bool = False
    default_color: Tuple[float, float, float, float] = DEFAULT_COLOR

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        base: Optional["LoadOptions"] = None,
    ) -> "LoadOptions":
        """Apply ``G3DKIT_*`` overrides from ``environ`` (default ``os.environ``)."""
        env = os.environ if environ is None else environ
        options = base if base is not None else cls()
        child = env.get(ENV_GEOMETRY_CHILD)
        if child is not None:
            options = replace(options, geometry_child=child.strip() or None)
        flag = env.get(ENV_VALIDATE)
        if flag is not None:
            options = replace(options, validate=_parse_flag(ENV_VALIDATE, flag))
        return options


DEFAULT_LOAD_OPTIONS = LoadOptions()


def default_log_level(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    level = (env.get(ENV_LOG_LEVEL) or "WARNING").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        LOG.debug("Unknown log level '%s' in %s; using WARNING", level, ENV_LOG_LEVEL)
        return "WARNING"
    return level
