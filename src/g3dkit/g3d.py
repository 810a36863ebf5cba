"""G3D geometry model built from the well-known attribute buffers.

The model reads eight flat attribute arrays and derives the mesh level
structure from them once, at construction:

* ``mesh_vertex_offsets``: first vertex of every mesh (minimum corner index)
* rebased ``indices``: corner indices made local to their mesh
* ``mesh_instances``: instance indices grouped by the mesh they place
* ``mesh_transparent``: whether any submesh of a mesh has alpha below 1

Nothing in the format guarantees that the arrays agree with each other, so
construction only trusts what it needs and :meth:`G3d.validate` checks the
rest on request.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

from .attribute import Attribute
from .bfast import BfastContainer
from .errors import (
    IndexOutOfRange,
    InstanceBufferMismatch,
    InstanceMeshOutOfRange,
    InvalidIndexCount,
    InvalidInstanceTransformBuffer,
    InvalidMaterialColorBuffer,
    InvalidPositionBuffer,
    InvalidSubmeshIndexOffset,
    MeshSubmeshOffsetOutOfRange,
    MeshSubmeshOffsetOutOfSequence,
    MissingAttributeBuffer,
    MissingRequiredAttribute,
    SubmeshBufferMismatch,
    SubmeshIndexOffsetOutOfRange,
    SubmeshIndexOffsetOutOfSequence,
    SubmeshMaterialOutOfRange,
    ValidationFailure,
)
from .ranges import OffsetRanges

__all__ = [
    "CommonAttributes",
    "G3d",
    "DEFAULT_COLOR",
    "POSITION_SIZE",
    "MATRIX_SIZE",
    "COLOR_SIZE",
]

LOG = logging.getLogger(__name__)

POSITION_SIZE = 3
MATRIX_SIZE = 16
COLOR_SIZE = 4
DEFAULT_COLOR = (0.8, 0.8, 0.8, 1.0)


class CommonAttributes:
    """URNs of the attributes the model understands."""

    POSITIONS = "g3d:vertex:position:0:float32:3"
    INDICES = "g3d:corner:index:0:int32:1"
    INSTANCE_MESHES = "g3d:instance:mesh:0:int32:1"
    INSTANCE_TRANSFORMS = "g3d:instance:transform:0:float32:16"
    MESH_SUBMESHES = "g3d:mesh:submeshoffset:0:int32:1"
    SUBMESH_INDEX_OFFSETS = "g3d:submesh:indexoffset:0:int32:1"
    SUBMESH_MATERIALS = "g3d:submesh:material:0:int32:1"
    MATERIAL_COLORS = "g3d:material:color:0:float32:4"

    ALL = (
        POSITIONS,
        INDICES,
        INSTANCE_MESHES,
        INSTANCE_TRANSFORMS,
        MESH_SUBMESHES,
        SUBMESH_INDEX_OFFSETS,
        SUBMESH_MATERIALS,
        MATERIAL_COLORS,
    )
    REQUIRED = (POSITIONS, INDICES)


def _readonly(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


def _first(mask: np.ndarray) -> Optional[int]:
    """Index of the first True entry of ``mask``, or ``None``."""
    hits = np.flatnonzero(mask)
    return int(hits[0]) if hits.size else None


class G3d:
    """Read-only G3D model over a fixed set of decoded attributes.

    ``attributes`` may be an iterable of :class:`Attribute` or a mapping of
    URN to attribute; the first attribute seen for a URN wins.  The raw
    attribute bytes are shared, except for the indices, which the model copies
    before rebasing them.
    """

    def __init__(
        self,
        attributes: Union[Iterable[Attribute], Mapping[str, Attribute]],
        *,
        default_color: Sequence[float] = DEFAULT_COLOR,
    ):
        values = attributes.values() if isinstance(attributes, Mapping) else attributes
        self.attributes: Dict[str, Attribute] = {}
        for attribute in values:
            self.attributes.setdefault(attribute.urn, attribute)

        missing = [urn for urn in CommonAttributes.REQUIRED if urn not in self.attributes]
        if missing:
            raise MissingRequiredAttribute(f"Missing required attribute(s): {', '.join(missing)}")

        self.default_color = _readonly(np.array(default_color, dtype=np.float32))
        if self.default_color.shape != (COLOR_SIZE,):
            raise ValueError(f"default_color must have {COLOR_SIZE} components, got {len(self.default_color)}")

        self.positions: np.ndarray = self.attributes[CommonAttributes.POSITIONS].data
        self.mesh_submeshes = self._data_or_default(CommonAttributes.MESH_SUBMESHES, [0])
        self.submesh_index_offsets = self._data_or_default(CommonAttributes.SUBMESH_INDEX_OFFSETS, [0])
        self.submesh_materials = self._data_or_default(CommonAttributes.SUBMESH_MATERIALS, [])
        self.material_colors = self._data_or_default(CommonAttributes.MATERIAL_COLORS, [], dtype=np.float32)
        self.instance_meshes = self._data_or_default(CommonAttributes.INSTANCE_MESHES, [])
        self.instance_transforms = self._data_or_default(
            CommonAttributes.INSTANCE_TRANSFORMS, [], dtype=np.float32
        )

        # Stored as int32 but they are corner references: read them unsigned,
        # in a private copy so rebasing never touches the input bytes.
        raw_indices = self.attributes[CommonAttributes.INDICES].data
        indices = raw_indices.view(np.uint32).copy()
        self.indices = indices
        self._submesh_ranges = OffsetRanges(self.submesh_index_offsets, len(indices))
        self._mesh_ranges = OffsetRanges(self.mesh_submeshes, len(self.submesh_index_offsets))

        self.mesh_vertex_offsets = _readonly(self._compute_mesh_vertex_offsets())
        self._rebase_indices(indices)
        self.indices = _readonly(indices)
        self.mesh_instances = self._compute_mesh_instances()
        self.mesh_transparent = self._compute_mesh_transparent()

        LOG.debug(
            "Built G3D model: %d vertices, %d indices, %d meshes, %d instances",
            self.vertex_count,
            self.index_count,
            self.mesh_count,
            self.instance_count,
        )

    @classmethod
    def from_bfast(cls, bfast: BfastContainer, **kwargs: Any) -> "G3d":
        """Wrap every well-known buffer of ``bfast`` and build the model."""
        attributes: List[Attribute] = []
        for urn in CommonAttributes.ALL:
            buffer = bfast.get_buffer(urn)
            if buffer is not None:
                attributes.append(Attribute.from_urn(urn, buffer))
        return cls(attributes, **kwargs)

    def _data_or_default(self, urn: str, default: Sequence[Any], dtype: Any = np.int32) -> np.ndarray:
        attribute = self.attributes.get(urn)
        if attribute is not None:
            return attribute.data
        LOG.debug("Attribute %s not present; using default %s", urn, list(default))
        return _readonly(np.array(default, dtype=dtype))

    def has_attribute(self, urn: str) -> bool:
        return urn in self.attributes

    # ---------------- derived fields ----------------

    def _compute_mesh_vertex_offsets(self) -> np.ndarray:
        """First vertex of each mesh, taken as the smallest index it uses.

        A single mesh is assumed to be zero based already and is not scanned.
        A mesh without indices starts one past the largest index seen so far.
        """
        count = self.mesh_count
        if count == 1:
            return np.zeros(1, dtype=np.int64)
        result = np.zeros(count, dtype=np.int64)
        next_vertex = 0
        for mesh in range(count):
            corners = self.indices[self.get_mesh_index_start(mesh):self.get_mesh_index_end(mesh)]
            if corners.size:
                result[mesh] = int(corners.min())
                next_vertex = max(next_vertex, int(corners.max()) + 1)
            else:
                result[mesh] = next_vertex
        return result

    def _rebase_indices(self, indices: np.ndarray) -> None:
        """Make every mesh's indices relative to its own first vertex."""
        if self.mesh_count <= 1:
            return
        rebased = 0
        for mesh in range(self.mesh_count):
            offset = int(self.mesh_vertex_offsets[mesh])
            if offset == 0:
                continue
            start, end = self.get_mesh_index_start(mesh), self.get_mesh_index_end(mesh)
            indices[start:end] -= np.uint32(offset)
            rebased += 1
        LOG.debug("Rebased indices of %d/%d meshes", rebased, self.mesh_count)

    def _compute_mesh_instances(self) -> Dict[int, List[int]]:
        result: Dict[int, List[int]] = {}
        for instance, mesh in enumerate(self.instance_meshes.tolist()):
            if mesh < 0:
                continue
            result.setdefault(mesh, []).append(instance)
        return result

    def _compute_mesh_transparent(self) -> List[bool]:
        alphas = np.array(
            [self.get_submesh_color(submesh)[3] for submesh in range(self.submesh_count)],
            dtype=np.float32,
        )
        result = []
        for mesh in range(self.mesh_count):
            start, end = self.get_mesh_submesh_start(mesh), self.get_mesh_submesh_end(mesh)
            result.append(bool(np.any(alphas[start:end] < 1.0)))
        return result

    # ---------------- counts ----------------

    @property
    def vertex_count(self) -> int:
        return len(self.positions) // POSITION_SIZE

    @property
    def index_count(self) -> int:
        return len(self.indices)

    @property
    def mesh_count(self) -> int:
        return len(self.mesh_submeshes)

    @property
    def submesh_count(self) -> int:
        return len(self.submesh_index_offsets)

    @property
    def instance_count(self) -> int:
        return len(self.instance_meshes)

    @property
    def material_count(self) -> int:
        return len(self.material_colors) // COLOR_SIZE

    # ---------------- meshes ----------------

    def get_mesh_vertex_start(self, mesh: int) -> int:
        return int(self.mesh_vertex_offsets[mesh])

    def get_mesh_vertex_end(self, mesh: int) -> int:
        if mesh < len(self.mesh_vertex_offsets) - 1:
            return int(self.mesh_vertex_offsets[mesh + 1])
        return self.vertex_count

    def get_mesh_vertex_count(self, mesh: int) -> int:
        return self.get_mesh_vertex_end(mesh) - self.get_mesh_vertex_start(mesh)

    def get_mesh_index_start(self, mesh: int) -> int:
        return self._submesh_ranges.start(self.get_mesh_submesh_start(mesh))

    def get_mesh_index_end(self, mesh: int) -> int:
        if self.get_mesh_submesh_count(mesh) <= 0:
            return self.get_mesh_index_start(mesh)
        return self._submesh_ranges.end(self.get_mesh_submesh_end(mesh) - 1)

    def get_mesh_index_count(self, mesh: int) -> int:
        return self.get_mesh_index_end(mesh) - self.get_mesh_index_start(mesh)

    def get_mesh_submesh_start(self, mesh: int) -> int:
        return self._mesh_ranges.start(mesh)

    def get_mesh_submesh_end(self, mesh: int) -> int:
        return self._mesh_ranges.end(mesh)

    def get_mesh_submesh_count(self, mesh: int) -> int:
        return self._mesh_ranges.count(mesh)

    def get_mesh_instances(self, mesh: int) -> List[int]:
        return list(self.mesh_instances.get(mesh, ()))

    def is_mesh_transparent(self, mesh: int) -> bool:
        return self.mesh_transparent[mesh]

    def get_mesh_positions(self, mesh: int) -> np.ndarray:
        """Vertex positions of ``mesh`` as an ``(n, 3)`` view."""
        start, end = self.get_mesh_vertex_start(mesh), self.get_mesh_vertex_end(mesh)
        return self.positions[start * POSITION_SIZE:end * POSITION_SIZE].reshape(-1, POSITION_SIZE)

    def get_mesh_indices(self, mesh: int) -> np.ndarray:
        """Mesh-local corner indices of ``mesh``."""
        return self.indices[self.get_mesh_index_start(mesh):self.get_mesh_index_end(mesh)]

    def get_mesh_vertex_colors(self, mesh: int, use_alpha: bool = False) -> np.ndarray:
        """Spread submesh colors onto the vertices each submesh references.

        Returns an ``(n, 4)`` RGBA array when ``use_alpha`` is set, otherwise
        ``(n, 3)`` RGB; vertices no index refers to stay zero.
        """
        size = COLOR_SIZE if use_alpha else 3
        result = np.zeros((self.get_mesh_vertex_count(mesh), size), dtype=np.float32)
        for submesh in range(self.get_mesh_submesh_start(mesh), self.get_mesh_submesh_end(mesh)):
            color = self.get_submesh_color(submesh)[:size]
            corners = self.indices[self.get_submesh_index_start(submesh):self.get_submesh_index_end(submesh)]
            result[corners] = color
        return result

    # ---------------- submeshes ----------------

    def get_submesh_index_start(self, submesh: int) -> int:
        return self._submesh_ranges.start(submesh)

    def get_submesh_index_end(self, submesh: int) -> int:
        return self._submesh_ranges.end(submesh)

    def get_submesh_index_count(self, submesh: int) -> int:
        return self._submesh_ranges.count(submesh)

    def get_submesh_color(self, submesh: int) -> np.ndarray:
        if submesh < len(self.submesh_materials):
            return self.get_material_color(int(self.submesh_materials[submesh]))
        return self.default_color

    # ---------------- instances ----------------

    def get_instance_transform(self, instance: int) -> np.ndarray:
        """Row-major 4x4 view of the instance's transform."""
        start = instance * MATRIX_SIZE
        return self.instance_transforms[start:start + MATRIX_SIZE].reshape(4, 4)

    # ---------------- materials ----------------

    def get_material_color(self, material: int) -> np.ndarray:
        """RGBA of ``material``; negative or unknown materials give the default color."""
        if material < 0 or material >= self.material_count:
            return self.default_color
        start = material * COLOR_SIZE
        return self.material_colors[start:start + COLOR_SIZE]

    # ---------------- validation ----------------

    def validate(self) -> Optional[ValidationFailure]:
        """Check the structural invariants and return the first failure, if any.

        Instance/transform parity is only checked when both buffers were
        supplied; submesh/material parity only when materials were supplied.
        """
        for urn in CommonAttributes.REQUIRED:
            if urn not in self.attributes:
                return MissingAttributeBuffer(f"Missing attribute buffer: {urn}")

        if len(self.positions) % POSITION_SIZE:
            return InvalidPositionBuffer(f"Invalid position buffer, must be divisible by {POSITION_SIZE}")
        if len(self.indices) % 3:
            return InvalidIndexCount("Invalid index count, must be divisible by 3")
        bad = _first(self.indices >= self.vertex_count)
        if bad is not None:
            return IndexOutOfRange(f"Vertex index {int(self.indices[bad])} at {bad} is out of range")

        # instances
        if self.has_attribute(CommonAttributes.INSTANCE_MESHES) and self.has_attribute(
            CommonAttributes.INSTANCE_TRANSFORMS
        ):
            if len(self.instance_transforms) != self.instance_count * MATRIX_SIZE:
                return InstanceBufferMismatch(
                    f"{self.instance_count} instance meshes but {len(self.instance_transforms)} transform values"
                )
        if len(self.instance_transforms) % MATRIX_SIZE:
            return InvalidInstanceTransformBuffer(
                f"Invalid instance transform buffer, must respect arity {MATRIX_SIZE}"
            )
        bad = _first(self.instance_meshes >= self.mesh_count)
        if bad is not None:
            return InstanceMeshOutOfRange(f"Instance {bad} references mesh {int(self.instance_meshes[bad])}")

        # meshes
        mesh_submeshes = self.mesh_submeshes.astype(np.int64)
        bad = _first(np.diff(mesh_submeshes) <= 0)
        if bad is not None:
            return MeshSubmeshOffsetOutOfSequence(f"Mesh submesh offset out of sequence at {bad + 1}")
        bad = _first((mesh_submeshes < 0) | (mesh_submeshes >= self.submesh_count))
        if bad is not None:
            return MeshSubmeshOffsetOutOfRange(f"Mesh submesh offset out of range at {bad}")

        # submeshes
        if self.has_attribute(CommonAttributes.SUBMESH_MATERIALS):
            if len(self.submesh_materials) != self.submesh_count:
                return SubmeshBufferMismatch(
                    f"{self.submesh_count} submesh index offsets but {len(self.submesh_materials)} submesh materials"
                )
        offsets = self.submesh_index_offsets.astype(np.int64)
        bad = _first(offsets % 3 != 0)
        if bad is not None:
            return InvalidSubmeshIndexOffset(
                f"Invalid submesh index offset {int(offsets[bad])} at {bad}, must be divisible by 3"
            )
        bad = _first(np.diff(offsets) <= 0)
        if bad is not None:
            return SubmeshIndexOffsetOutOfSequence(f"Submesh index offset out of sequence at {bad + 1}")
        bad = _first((offsets < 0) | (offsets >= self.index_count))
        if bad is not None:
            return SubmeshIndexOffsetOutOfRange(f"Submesh index offset out of range at {bad}")
        materials = self.submesh_materials.astype(np.int64)
        bad = _first((materials < -1) | (materials >= self.material_count))
        if bad is not None:
            return SubmeshMaterialOutOfRange(f"Submesh {bad} references material {int(materials[bad])}")

        # materials
        if len(self.material_colors) % COLOR_SIZE:
            return InvalidMaterialColorBuffer(f"Invalid material color buffer, must be divisible by {COLOR_SIZE}")
        return None

    def ensure_valid(self) -> "G3d":
        failure = self.validate()
        if failure is not None:
            raise failure
        return self

    # ---------------- reporting ----------------

    def summary(self) -> Dict[str, int]:
        return {
            "vertices": self.vertex_count,
            "indices": self.index_count,
            "meshes": self.mesh_count,
            "submeshes": self.submesh_count,
            "instances": self.instance_count,
            "materials": self.material_count,
            "transparent_meshes": sum(self.mesh_transparent),
        }

    def __repr__(self) -> str:
        counts = ", ".join(f"{key}={value}" for key, value in self.summary().items())
        return f"G3d({counts})"
