"""Tests for the explicit G3D validation pass."""

import numpy as np
import pytest

from conftest import attributes
from g3dkit import CommonAttributes as A
from g3dkit import G3d
from g3dkit import errors


def _model(**overrides):
    arrays = {
        A.POSITIONS: np.zeros(9 * 3),
        A.INDICES: list(range(9)),
    }
    arrays.update({getattr(A, key): value for key, value in overrides.items()})
    return G3d(attributes(arrays))


def test_valid_model():
    g3d = _model(
        MESH_SUBMESHES=[0, 1],
        SUBMESH_INDEX_OFFSETS=[0, 3, 6],
        SUBMESH_MATERIALS=[0, -1, 1],
        MATERIAL_COLORS=np.ones(8),
        INSTANCE_MESHES=[0, 1, -1],
        INSTANCE_TRANSFORMS=np.zeros(48),
    )

    assert g3d.validate() is None
    assert g3d.ensure_valid() is g3d


def test_submesh_index_offset_not_divisible_by_three():
    failure = _model(SUBMESH_INDEX_OFFSETS=[0, 4]).validate()

    assert type(failure) is errors.InvalidSubmeshIndexOffset


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"POSITIONS": np.zeros(10)}, errors.InvalidPositionBuffer),
        ({"INDICES": list(range(8))}, errors.InvalidIndexCount),
        ({"INDICES": [0, 1, 9]}, errors.IndexOutOfRange),
        ({"INDICES": [0, 1, -1]}, errors.IndexOutOfRange),
        ({"INSTANCE_MESHES": [0, 0], "INSTANCE_TRANSFORMS": np.zeros(16)}, errors.InstanceBufferMismatch),
        ({"INSTANCE_TRANSFORMS": np.zeros(17)}, errors.InvalidInstanceTransformBuffer),
        ({"INSTANCE_MESHES": [0, 1]}, errors.InstanceMeshOutOfRange),
        ({"MESH_SUBMESHES": [0, 0], "SUBMESH_INDEX_OFFSETS": [0, 3]}, errors.MeshSubmeshOffsetOutOfSequence),
        ({"MESH_SUBMESHES": [0, 2], "SUBMESH_INDEX_OFFSETS": [0, 3]}, errors.MeshSubmeshOffsetOutOfRange),
        ({"SUBMESH_INDEX_OFFSETS": [0, 3], "SUBMESH_MATERIALS": [-1]}, errors.SubmeshBufferMismatch),
        ({"SUBMESH_INDEX_OFFSETS": [0, 6, 3]}, errors.SubmeshIndexOffsetOutOfSequence),
        ({"SUBMESH_INDEX_OFFSETS": [0, 9]}, errors.SubmeshIndexOffsetOutOfRange),
        ({"SUBMESH_MATERIALS": [1], "MATERIAL_COLORS": np.ones(4)}, errors.SubmeshMaterialOutOfRange),
        ({"SUBMESH_MATERIALS": [-2], "MATERIAL_COLORS": np.ones(4)}, errors.SubmeshMaterialOutOfRange),
        ({"MATERIAL_COLORS": np.ones(5)}, errors.InvalidMaterialColorBuffer),
    ],
)
def test_each_rule_reports_its_own_failure(overrides, expected):
    failure = _model(**overrides).validate()

    assert type(failure) is expected
    assert isinstance(failure, errors.ValidationFailure)
    assert str(failure)


def test_instances_without_transforms_are_not_a_mismatch():
    assert _model(INSTANCE_MESHES=[0, -1]).validate() is None


def test_first_failure_wins():
    failure = _model(INDICES=[0, 1, 9, 0], MATERIAL_COLORS=np.ones(3)).validate()

    assert type(failure) is errors.InvalidIndexCount


def test_ensure_valid_raises():
    with pytest.raises(errors.SubmeshIndexOffsetOutOfRange):
        _model(SUBMESH_INDEX_OFFSETS=[0, 9]).ensure_valid()
