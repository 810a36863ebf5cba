"""BFAST container decoding (and the matching writer).

A BFAST buffer is laid out as::

    header        8 little-endian int32 words: magic, 0, dataStart, 0, dataEnd, 0, numArrays, 0
    array table   numArrays records of 4 words: begin, 0, end, 0
    data          raw array bytes inside [dataStart, dataEnd)

Array 0 holds the NUL separated names of arrays 1..numArrays-1.  Any named
array whose own bytes carry a valid header is decoded again as a child
container.  Decoded arrays are ``memoryview`` slices of the input, never
copies, so the input must stay alive as long as the container is used.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import MalformedContainer, NameCountMismatch

__all__ = [
    "BFAST_MAGIC",
    "HEADER_SIZE",
    "ARRAY_RECORD_SIZE",
    "ALIGNMENT",
    "BfastHeader",
    "BfastContainer",
    "is_bfast",
    "parse_bfast",
    "pack_bfast",
]

LOG = logging.getLogger(__name__)

BufferLike = Union[bytes, bytearray, memoryview, np.ndarray]

BFAST_MAGIC = 0xBFA5
HEADER_SIZE = 32
ARRAY_RECORD_SIZE = 16
ALIGNMENT = 64

_HEADER_STRUCT = struct.Struct("<8i")
_RECORD_STRUCT = struct.Struct("<4i")


def _as_byte_view(data: BufferLike) -> memoryview:
    """Return a flat unsigned-byte memoryview over ``data`` without copying."""
    view = data if isinstance(data, memoryview) else memoryview(data)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


@dataclass(frozen=True)
class BfastHeader:
    """The four header fields we consume plus the outcome of validating them.

    Always check ``is_valid`` before trusting the other fields; ``error``
    explains the first rule that failed.
    """

    magic: int
    data_start: int
    data_end: int
    num_arrays: int
    is_valid: bool
    error: Optional[str] = None

    @classmethod
    def from_values(
        cls,
        magic: int,
        data_start: int,
        data_end: int,
        num_arrays: int,
        byte_length: int,
    ) -> "BfastHeader":
        error: Optional[str] = None
        if magic != BFAST_MAGIC:
            error = "Not a BFAST file, or endianness is swapped"
        elif data_start <= HEADER_SIZE or data_start > byte_length:
            error = "Data start is out of valid range"
        elif data_end < data_start or data_end > byte_length:
            error = "Data end is out of valid range"
        elif num_arrays < 0 or num_arrays > data_end:
            error = "Number of arrays is invalid"
        return cls(
            magic=magic,
            data_start=data_start,
            data_end=data_end,
            num_arrays=num_arrays,
            is_valid=error is None,
            error=error,
        )

    @classmethod
    def from_bytes(cls, data: BufferLike) -> "BfastHeader":
        """Read and validate the header at the start of ``data``. Never raises."""
        view = _as_byte_view(data)
        if view.nbytes < HEADER_SIZE:
            return cls(0, 0, 0, 0, is_valid=False, error="Insufficient length for a BFAST header")
        magic, pad0, data_start, pad1, data_end, pad2, num_arrays, pad3 = _HEADER_STRUCT.unpack_from(view, 0)
        if pad0 or pad1 or pad2 or pad3:
            return cls(
                magic, data_start, data_end, num_arrays,
                is_valid=False,
                error="Header padding words must be zero",
            )
        return cls.from_values(magic, data_start, data_end, num_arrays, view.nbytes)


def is_bfast(data: BufferLike) -> bool:
    """Cheap predicate: does ``data`` start with a valid BFAST header?"""
    try:
        return BfastHeader.from_bytes(data).is_valid
    except (TypeError, ValueError):
        # objects that do not expose a flat byte buffer are simply not BFAST
        return False


@dataclass(frozen=True)
class BfastContainer:
    """Named byte slices decoded from one BFAST buffer.

    ``names`` and ``buffers`` are parallel and keep array order; names need not
    be unique.  ``children`` maps a name to the container decoded from that
    buffer when the buffer is itself a BFAST.
    """

    header: BfastHeader
    names: Tuple[str, ...]
    buffers: Tuple[memoryview, ...]
    children: Dict[str, "BfastContainer"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.names) != len(self.buffers):
            raise NameCountMismatch(
                f"Number of names ({len(self.names)}) and buffers ({len(self.buffers)}) must match"
            )

    @classmethod
    def from_bytes(cls, data: BufferLike) -> "BfastContainer":
        return parse_bfast(data)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def items(self) -> Iterator[Tuple[str, memoryview]]:
        return zip(self.names, self.buffers)

    def get_buffer(self, name: str) -> Optional[memoryview]:
        """Return the first buffer called ``name``, or ``None``."""
        try:
            return self.buffers[self.names.index(name)]
        except ValueError:
            return None

    def get_child(self, name: str) -> Optional["BfastContainer"]:
        return self.children.get(name)


def _read_array_table(view: memoryview, header: BfastHeader) -> List[memoryview]:
    table_end = HEADER_SIZE + header.num_arrays * ARRAY_RECORD_SIZE
    if table_end > view.nbytes:
        raise MalformedContainer(
            f"Array table for {header.num_arrays} arrays ends at byte {table_end}, "
            f"past the end of the buffer ({view.nbytes} bytes)"
        )
    table = np.frombuffer(view, dtype="<i4", count=header.num_arrays * 4, offset=HEADER_SIZE)
    buffers: List[memoryview] = []
    for index, (begin, reserved0, end, reserved1) in enumerate(table.reshape(-1, 4).tolist()):
        record_offset = HEADER_SIZE + index * ARRAY_RECORD_SIZE
        if reserved0 != 0:
            raise MalformedContainer(f"Array {index}: expected 0 at byte {record_offset + 4}")
        if reserved1 != 0:
            raise MalformedContainer(f"Array {index}: expected 0 at byte {record_offset + 12}")
        if begin < header.data_start or begin > header.data_end:
            raise MalformedContainer(f"Array {index}: buffer start {begin} is out of range")
        if end < begin or end > header.data_end:
            raise MalformedContainer(f"Array {index}: buffer end {end} is out of range")
        buffers.append(view[begin:end])
    return buffers


def _split_names(blob: memoryview) -> List[str]:
    try:
        joined = bytes(blob).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedContainer("Name buffer is not valid UTF-8") from exc
    if not joined:
        return []
    names = joined.split("\0")
    if names[-1] == "":
        names.pop()
    return names


def parse_bfast(data: BufferLike) -> BfastContainer:
    """Decode ``data`` into a :class:`BfastContainer`, recursing into nested BFASTs."""
    view = _as_byte_view(data)
    header = BfastHeader.from_bytes(view)
    if not header.is_valid:
        raise MalformedContainer(header.error)
    if header.num_arrays < 1:
        raise MalformedContainer("Expected at least one buffer containing the names")

    arrays = _read_array_table(view, header)
    names = _split_names(arrays[0])
    slices = arrays[1:]
    if len(names) != len(slices):
        raise NameCountMismatch(
            f"Expected number of names ({len(names)}) to equal the number of buffers - 1 ({len(slices)})"
        )

    children: Dict[str, BfastContainer] = {}
    for name, buffer in zip(names, slices):
        if is_bfast(buffer):
            LOG.debug("Buffer '%s' (%d bytes) is a nested BFAST", name, buffer.nbytes)
            children[name] = parse_bfast(buffer)

    LOG.debug("Decoded BFAST: %d named arrays, %d nested", len(names), len(children))
    return BfastContainer(header=header, names=tuple(names), buffers=tuple(slices), children=children)


def _align(offset: int, alignment: int = ALIGNMENT) -> int:
    return (offset + alignment - 1) // alignment * alignment


def pack_bfast(names: Iterable[str], buffers: Sequence[BufferLike]) -> bytes:
    """Write ``buffers`` under ``names`` into a new BFAST byte string.

    Every array starts on a 64-byte boundary.  Pass the result of another
    ``pack_bfast`` call as a buffer to nest containers.
    """
    names = list(names)
    payloads = [_as_byte_view(buffer) for buffer in buffers]
    if len(names) != len(payloads):
        raise NameCountMismatch(
            f"Number of names ({len(names)}) and buffers ({len(payloads)}) must match"
        )
    for name in names:
        if "\0" in name:
            raise ValueError(f"Array name may not contain NUL characters: {name!r}")

    blob = ("\0".join(names) + "\0").encode("utf-8") if names else b""
    arrays = [memoryview(blob)] + payloads
    num_arrays = len(arrays)

    data_start = _align(HEADER_SIZE + num_arrays * ARRAY_RECORD_SIZE)
    ranges: List[Tuple[int, int]] = []
    offset = data_start
    for array in arrays:
        begin = _align(offset)
        offset = begin + array.nbytes
        ranges.append((begin, offset))
    data_end = offset

    out = bytearray(data_end)
    _HEADER_STRUCT.pack_into(out, 0, BFAST_MAGIC, 0, data_start, 0, data_end, 0, num_arrays, 0)
    for index, ((begin, end), array) in enumerate(zip(ranges, arrays)):
        _RECORD_STRUCT.pack_into(out, HEADER_SIZE + index * ARRAY_RECORD_SIZE, begin, 0, end, 0)
        out[begin:end] = array
    return bytes(out)
