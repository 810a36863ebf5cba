"""Typed numpy views over the raw bytes of one G3D attribute."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

import numpy as np

from .bfast import BufferLike, _as_byte_view
from .descriptor import AttributeDescriptor, DataType
from .errors import MisalignedBuffer, UnsupportedDataType

__all__ = ["Attribute", "cast_data"]


def cast_data(buffer: BufferLike, data_type: Union[DataType, str]) -> np.ndarray:
    """Reinterpret ``buffer`` as a read-only 1-D array of ``data_type`` scalars.

    No bytes are copied.  A byte length that is not a multiple of the scalar
    width raises :class:`MisalignedBuffer` instead of truncating.  ``int64`` is
    not mapped to a view and raises :class:`UnsupportedDataType`.
    """
    if not isinstance(data_type, DataType):
        data_type = DataType.parse(str(data_type))
    if data_type is DataType.INT64:
        raise UnsupportedDataType("int64 attribute data cannot be viewed as a typed array")
    view = _as_byte_view(buffer)
    if view.nbytes % data_type.size:
        raise MisalignedBuffer(
            f"Buffer of {view.nbytes} bytes is not a multiple of the {data_type.value} width ({data_type.size})"
        )
    if view.nbytes:
        data = np.frombuffer(view, dtype=data_type.dtype)
    else:
        data = np.empty(0, dtype=data_type.dtype)
    data.flags.writeable = False
    return data


@dataclass(frozen=True, eq=False)
class Attribute:
    """An attribute descriptor, its raw bytes and the typed view over them."""

    descriptor: AttributeDescriptor
    buffer: memoryview
    data: np.ndarray

    @classmethod
    def from_urn(cls, urn: str, buffer: BufferLike) -> "Attribute":
        descriptor = AttributeDescriptor.parse(urn)
        view = _as_byte_view(buffer)
        return cls(descriptor=descriptor, buffer=view, data=cast_data(view, descriptor.data_type))

    @classmethod
    def from_array(cls, urn: str, values: Any) -> "Attribute":
        """Build an attribute from in-memory values cast to the URN's data type."""
        descriptor = AttributeDescriptor.parse(urn)
        if descriptor.data_type is DataType.INT64:
            raise UnsupportedDataType("int64 attribute data cannot be viewed as a typed array")
        array = np.ascontiguousarray(values, dtype=descriptor.data_type.dtype).ravel()
        return cls.from_urn(urn, array.tobytes())

    @property
    def urn(self) -> str:
        return self.descriptor.urn

    @property
    def count(self) -> int:
        """Number of whole elements (scalars divided by arity)."""
        return len(self.data) // self.descriptor.data_arity

    def __repr__(self) -> str:
        return f"Attribute({self.urn!r}, {self.buffer.nbytes} bytes)"
