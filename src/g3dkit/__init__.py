"""Decoder for BFAST containers and the G3D geometry attribute schema."""

from . import api
from .api import load_g3d, read_g3d, select_geometry
from .attribute import Attribute, cast_data
from .bfast import (
    BFAST_MAGIC,
    BfastContainer,
    BfastHeader,
    is_bfast,
    pack_bfast,
    parse_bfast,
)
from .config import DEFAULT_LOAD_OPTIONS, LoadOptions
from .descriptor import Association, AttributeDescriptor, DataType
from .errors import (
    G3dError,
    InvalidURN,
    MalformedContainer,
    MisalignedBuffer,
    MissingRequiredAttribute,
    NameCountMismatch,
    UnsupportedDataType,
    ValidationFailure,
)
from .g3d import DEFAULT_COLOR, CommonAttributes, G3d
from .ranges import OffsetRanges

__version__ = "0.1.0"

__all__ = [
    "api",
    "load_g3d",
    "read_g3d",
    "select_geometry",
    "Attribute",
    "cast_data",
    "BFAST_MAGIC",
    "BfastContainer",
    "BfastHeader",
    "is_bfast",
    "pack_bfast",
    "parse_bfast",
    "DEFAULT_LOAD_OPTIONS",
    "LoadOptions",
    "Association",
    "AttributeDescriptor",
    "DataType",
    "G3dError",
    "InvalidURN",
    "MalformedContainer",
    "MisalignedBuffer",
    "MissingRequiredAttribute",
    "NameCountMismatch",
    "UnsupportedDataType",
    "ValidationFailure",
    "DEFAULT_COLOR",
    "CommonAttributes",
    "G3d",
    "OffsetRanges",
]
