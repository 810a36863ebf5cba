"""Range arithmetic over offset arrays.

An offset array ``O`` of length ``n`` partitions a larger space of ``total``
items: item range ``k`` is ``[O[k], O[k + 1])`` and the last range runs to
``total``.  The G3D model uses this for mesh -> submesh and submesh -> index
ranges.
"""

from __future__ import annotations

from typing import Sequence, Tuple

__all__ = ["OffsetRanges"]


class OffsetRanges:
    """Start/end/count accessors for one offset array."""

    __slots__ = ("offsets", "total")

    def __init__(self, offsets: Sequence[int], total: int):
        self.offsets = offsets
        self.total = int(total)

    def __len__(self) -> int:
        return len(self.offsets)

    def start(self, k: int) -> int:
        # one past the last range is the (empty) range at the end of the space
        if k >= len(self.offsets):
            return self.total
        return int(self.offsets[k])

    def end(self, k: int) -> int:
        if k < len(self.offsets) - 1:
            return int(self.offsets[k + 1])
        return self.total

    def count(self, k: int) -> int:
        return self.end(k) - self.start(k)

    def range(self, k: int) -> Tuple[int, int]:
        return self.start(k), self.end(k)

    def __repr__(self) -> str:
        return f"OffsetRanges({[int(o) for o in self.offsets]!r}, total={self.total})"
