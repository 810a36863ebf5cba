"""Shared builders for synthetic BFAST / G3D payloads."""

import struct
from typing import Dict, Sequence

import numpy as np
import pytest

from g3dkit import Attribute, CommonAttributes, pack_bfast


def raw_bfast(arrays: Sequence[bytes], data_start: int = 64) -> bytearray:
    """Lay out ``arrays`` verbatim (array 0 is the name blob) without any checks."""
    num_arrays = len(arrays)
    offset = max(data_start, 32 + 16 * num_arrays)
    ranges = []
    for array in arrays:
        ranges.append((offset, offset + len(array)))
        offset += len(array)
    out = bytearray(offset)
    struct.pack_into("<8i", out, 0, 0xBFA5, 0, data_start, 0, offset, 0, num_arrays, 0)
    for index, ((begin, end), array) in enumerate(zip(ranges, arrays)):
        struct.pack_into("<4i", out, 32 + 16 * index, begin, 0, end, 0)
        out[begin:end] = array
    return out


def g3d_bytes(arrays: Dict[str, Sequence]) -> bytes:
    """Pack URN -> values into a G3D BFAST, casting values to each URN's type."""
    attributes = [Attribute.from_array(urn, values) for urn, values in arrays.items()]
    return pack_bfast([a.urn for a in attributes], [a.buffer for a in attributes])


def attributes(arrays: Dict[str, Sequence]):
    return [Attribute.from_array(urn, values) for urn, values in arrays.items()]


@pytest.fixture
def two_mesh_arrays():
    """Two single-submesh meshes sharing one vertex pool, indexed globally."""
    return {
        CommonAttributes.POSITIONS: np.arange(13 * 3, dtype=np.float32),
        CommonAttributes.INDICES: [5, 6, 7, 10, 11, 12],
        CommonAttributes.MESH_SUBMESHES: [0, 1],
        CommonAttributes.SUBMESH_INDEX_OFFSETS: [0, 3],
    }


@pytest.fixture
def triangle_arrays():
    return {
        CommonAttributes.POSITIONS: [0, 0, 0, 1, 0, 0, 0, 1, 0],
        CommonAttributes.INDICES: [0, 1, 2],
    }
