"""Exception hierarchy shared by the BFAST decoder and the G3D model."""

from __future__ import annotations

__all__ = [
    "G3dError",
    "MalformedContainer",
    "NameCountMismatch",
    "InvalidURN",
    "UnknownAssociation",
    "UnknownDataType",
    "MalformedInteger",
    "UnsupportedDataType",
    "MisalignedBuffer",
    "MissingRequiredAttribute",
    "ValidationFailure",
    "MissingAttributeBuffer",
    "InvalidPositionBuffer",
    "InvalidIndexCount",
    "IndexOutOfRange",
    "InstanceBufferMismatch",
    "InvalidInstanceTransformBuffer",
    "InstanceMeshOutOfRange",
    "MeshSubmeshOffsetOutOfRange",
    "MeshSubmeshOffsetOutOfSequence",
    "SubmeshBufferMismatch",
    "InvalidSubmeshIndexOffset",
    "SubmeshIndexOffsetOutOfSequence",
    "SubmeshIndexOffsetOutOfRange",
    "SubmeshMaterialOutOfRange",
    "InvalidMaterialColorBuffer",
]


class G3dError(Exception):
    """Base class for every decode, construction and validation error."""


# ---------------- container ----------------

class MalformedContainer(G3dError):
    """Raised when a BFAST header or array table violates the layout rules."""


class NameCountMismatch(G3dError):
    """Raised when the name blob does not name every data buffer exactly once."""


# ---------------- attribute identity ----------------

class InvalidURN(G3dError, ValueError):
    """Raised when an attribute URN cannot be parsed."""


class UnknownAssociation(InvalidURN):
    pass


class UnknownDataType(InvalidURN):
    pass


class MalformedInteger(InvalidURN):
    pass


# ---------------- typed views ----------------

class UnsupportedDataType(G3dError):
    """Raised when a typed view is requested for a data type we do not map (int64)."""


class MisalignedBuffer(G3dError):
    """Raised when a byte length is not a multiple of the scalar width."""


class MissingRequiredAttribute(G3dError):
    """Raised when positions or indices are absent at model construction."""


# ---------------- validation ----------------

class ValidationFailure(G3dError):
    """One structural invariant of a G3D model does not hold.

    ``G3d.validate`` returns instances of the subclasses below rather than
    raising them; ``G3d.ensure_valid`` raises.
    """


class MissingAttributeBuffer(ValidationFailure):
    pass


class InvalidPositionBuffer(ValidationFailure):
    pass


class InvalidIndexCount(ValidationFailure):
    pass


class IndexOutOfRange(ValidationFailure):
    pass


class InstanceBufferMismatch(ValidationFailure):
    pass


class InvalidInstanceTransformBuffer(ValidationFailure):
    pass


class InstanceMeshOutOfRange(ValidationFailure):
    pass


class MeshSubmeshOffsetOutOfRange(ValidationFailure):
    pass


class MeshSubmeshOffsetOutOfSequence(ValidationFailure):
    pass


class SubmeshBufferMismatch(ValidationFailure):
    pass


class InvalidSubmeshIndexOffset(ValidationFailure):
    pass


class SubmeshIndexOffsetOutOfSequence(ValidationFailure):
    pass


class SubmeshIndexOffsetOutOfRange(ValidationFailure):
    pass


class SubmeshMaterialOutOfRange(ValidationFailure):
    pass


class InvalidMaterialColorBuffer(ValidationFailure):
    pass
