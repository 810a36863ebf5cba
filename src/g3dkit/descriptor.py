"""Attribute identity: the ``g3d:<association>:<semantic>:<index>:<type>:<arity>`` URN.

Every G3D buffer is named by a URN that says which geometric domain it is
indexed over, what it means, how its scalars are stored and how many scalars
make one element.  :class:`AttributeDescriptor` is the parsed form; its string
form is the canonical key used to look attributes up.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

import numpy as np

from .errors import (
    InvalidURN,
    MalformedInteger,
    UnknownAssociation,
    UnknownDataType,
)

__all__ = ["Association", "DataType", "AttributeDescriptor", "URN_PREFIX"]

URN_PREFIX = "g3d"
_URN_PARTS = 6
_NON_NEGATIVE_INT = re.compile(r"^[0-9]+$")


class Association(Enum):
    """Geometric domain an attribute is indexed over."""

    ALL = "all"
    NONE = "none"
    VERTEX = "vertex"
    CORNER = "corner"
    EDGE = "edge"
    FACE = "face"
    MESH = "mesh"
    SUBMESH = "submesh"
    INSTANCE = "instance"
    MATERIAL = "material"
    SHAPE = "shape"
    SHAPEVERTEX = "shapevertex"

    @classmethod
    def parse(cls, text: str) -> "Association":
        try:
            return cls(text)
        except ValueError as exc:
            raise UnknownAssociation(f"Unknown attribute association '{text}'") from exc


class DataType(Enum):
    """Storage type of the individual scalars of an attribute."""

    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"

    @classmethod
    def parse(cls, text: str) -> "DataType":
        try:
            return cls(text)
        except ValueError as exc:
            raise UnknownDataType(f"Unknown attribute data type '{text}'") from exc

    @property
    def size(self) -> int:
        """Byte width of one scalar."""
        return _DATA_TYPE_SIZES[self]

    @property
    def dtype(self) -> np.dtype:
        """Little-endian numpy dtype matching the on-disk scalar layout."""
        return np.dtype(_DATA_TYPE_CODES[self])


_DATA_TYPE_SIZES = {
    DataType.INT8: 1,
    DataType.INT16: 2,
    DataType.INT32: 4,
    DataType.INT64: 8,
    DataType.FLOAT32: 4,
    DataType.FLOAT64: 8,
}

_DATA_TYPE_CODES = {
    DataType.INT8: "i1",
    DataType.INT16: "<i2",
    DataType.INT32: "<i4",
    DataType.INT64: "<i8",
    DataType.FLOAT32: "<f4",
    DataType.FLOAT64: "<f8",
}


def _parse_non_negative(text: str, what: str) -> int:
    if not _NON_NEGATIVE_INT.match(text):
        raise MalformedInteger(f"Attribute {what} must be a non-negative integer, got '{text}'")
    return int(text)


@dataclass(frozen=True)
class AttributeDescriptor:
    """Parsed identity of one G3D attribute buffer.

    ``association`` and ``data_type`` also accept their string tags and are
    normalised to the enum members.
    """

    association: Association
    semantic: str
    data_type: DataType
    data_arity: int = 1
    index: int = 0

    def __post_init__(self) -> None:
        association: Union[Association, str] = self.association
        data_type: Union[DataType, str] = self.data_type
        if not isinstance(association, Association):
            object.__setattr__(self, "association", Association.parse(str(association)))
        if not isinstance(data_type, DataType):
            object.__setattr__(self, "data_type", DataType.parse(str(data_type)))
        if ":" in self.semantic:
            raise InvalidURN(f"Attribute semantic may not contain ':' ({self.semantic!r})")
        if self.data_arity < 1:
            raise MalformedInteger(f"Attribute arity must be at least 1, got {self.data_arity}")
        if self.index < 0:
            raise MalformedInteger(f"Attribute index must be non-negative, got {self.index}")

    # ---------------- URN conversion ----------------

    @classmethod
    def parse(cls, urn: str) -> "AttributeDescriptor":
        """Parse a URN such as ``g3d:vertex:position:0:float32:3``."""
        parts = urn.split(":")
        if len(parts) != _URN_PARTS:
            raise InvalidURN(f"Expected {_URN_PARTS} parts in attribute URN, got {len(parts)}: {urn}")
        if parts[0] != URN_PREFIX:
            raise InvalidURN(f"Attribute URN must start with '{URN_PREFIX}': {urn}")
        _, association, semantic, index, data_type, arity = parts
        return cls(
            association=Association.parse(association),
            semantic=semantic,
            data_type=DataType.parse(data_type),
            data_arity=_parse_non_negative(arity, "arity"),
            index=_parse_non_negative(index, "index"),
        )

    @property
    def urn(self) -> str:
        return (
            f"{URN_PREFIX}:{self.association.value}:{self.semantic}:{self.index}"
            f":{self.data_type.value}:{self.data_arity}"
        )

    def __str__(self) -> str:
        return self.urn

    def validate(self) -> bool:
        """Re-parse the canonical URN and check it yields this descriptor.

        A mismatch is an internal encoding bug, so it raises ``AssertionError``
        instead of a recoverable :class:`~g3dkit.errors.G3dError`.
        """
        parsed = AttributeDescriptor.parse(self.urn)
        if parsed != self:
            raise AssertionError(f"Attribute descriptor does not round-trip: {self!r} -> {parsed!r}")
        return True

    # ---------------- sizes ----------------

    @property
    def data_type_size(self) -> int:
        return self.data_type.size

    @property
    def data_element_size(self) -> int:
        """Bytes per element (scalar width times arity)."""
        return self.data_type.size * self.data_arity
