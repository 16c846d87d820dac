"""
Batched column-major matrix views.

A BatchedMatrix is a collection of ``batch_count`` same-shaped matrices in
column-major linear storage. Element (i, j) of item b lives at

    base[b] + shift + i + j * ld

where ``base[b]`` comes from the storage variant:

    StridedBatch: one 1-D tensor, base[b] = offset + b * stride
    PointerBatch: one 1-D tensor per item, base[b] = start of items[b]

Algorithms never index storage directly. They carve Tiles (rectangular
sub-blocks at a shift) out of a BatchedMatrix and hand them to the kernels
and the numeric backend, which see either one 3-D batched view (when the
layout allows it) or a list of per-item 2-D views. Both are writable
``as_strided`` views, so in-place tensor ops update caller storage.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Sequence

import torch


def idx2d(i: int, j: int, ld: int) -> int:
    """Linear offset of element (i, j) in column-major storage."""
    return i + j * ld


class BatchedMatrix(ABC):
    """
    Common interface of the two batched storage variants.

    Attributes:
        ld: Leading dimension (distance between columns)
        batch_count: Number of items
    """

    ld: int
    batch_count: int

    @property
    @abstractmethod
    def dtype(self) -> torch.dtype | None:
        ...

    @property
    @abstractmethod
    def device(self) -> torch.device | None:
        ...

    @abstractmethod
    def base(self, b: int) -> tuple[torch.Tensor, int]:
        """Storage tensor and absolute storage offset of item b."""

    @abstractmethod
    def available(self, b: int) -> int:
        """Number of elements addressable from the base of item b."""

    @abstractmethod
    def select(self, b: int) -> BatchedMatrix:
        """Single-item view of item b."""

    @abstractmethod
    def tensors(self) -> list[torch.Tensor]:
        """Distinct storage tensors backing this batch."""

    def stacked_view(
        self,
        shift: int,
        size: tuple[int, int],
        stride: tuple[int, int],
    ) -> torch.Tensor | None:
        """3-D (batch, rows, cols) view, or None if the layout has none."""
        return None

    def tile(self, shift: int, rows: int, cols: int) -> Tile:
        """Rectangular block of rows x cols starting at linear offset shift."""
        return Tile(self, shift, rows, cols, 1, self.ld)

    def vector(self, shift: int, length: int, inc: int = 1) -> Tile:
        """Column vector of given length with element increment inc."""
        return Tile(self, shift, length, 1, inc, self.ld)


class StridedBatch(BatchedMatrix):
    """
    Batch stored in one flat tensor, items ``stride`` elements apart.

    Args:
        data: 1-D contiguous tensor holding all items
        ld: Leading dimension of every item
        stride: Distance in elements between consecutive items
        batch_count: Number of items
        offset: Element offset of item 0 inside data
    """

    def __init__(
        self,
        data: torch.Tensor,
        ld: int,
        stride: int,
        batch_count: int,
        offset: int = 0,
    ):
        self.data = data
        self.ld = ld
        self.stride = stride
        self.batch_count = batch_count
        self.offset = offset

    def __repr__(self) -> str:
        return (f"StridedBatch(ld={self.ld}, stride={self.stride}, "
                f"batch_count={self.batch_count}, dtype={self.dtype})")

    @property
    def dtype(self) -> torch.dtype:
        return self.data.dtype

    @property
    def device(self) -> torch.device:
        return self.data.device

    def base(self, b: int) -> tuple[torch.Tensor, int]:
        return self.data, self.data.storage_offset() + self.offset + b * self.stride

    def available(self, b: int) -> int:
        return self.data.numel() - self.offset - b * self.stride

    def select(self, b: int) -> StridedBatch:
        return StridedBatch(self.data, self.ld, 0, 1, self.offset + b * self.stride)

    def tensors(self) -> list[torch.Tensor]:
        return [self.data]

    def stacked_view(self, shift, size, stride):
        # stride 0 would alias every item onto the same memory
        if self.batch_count > 1 and self.stride == 0:
            return None
        return self.data.as_strided(
            (self.batch_count,) + tuple(size),
            (self.stride,) + tuple(stride),
            self.data.storage_offset() + self.offset + shift,
        )

    @classmethod
    def from_matrices(cls, matrices: torch.Tensor) -> StridedBatch:
        """
        Pack a (batch, rows, cols) or (rows, cols) tensor into a fresh
        column-major strided batch with ld = rows and stride = rows * cols.
        """
        if matrices.dim() == 2:
            matrices = matrices.unsqueeze(0)
        batch, rows, cols = matrices.shape
        data = matrices.transpose(-1, -2).contiguous().reshape(-1).clone()
        return cls(data, ld=max(rows, 1), stride=rows * cols, batch_count=batch)

    def to_matrices(self, rows: int, cols: int) -> torch.Tensor:
        """Copy the leading rows x cols block of every item into (batch, rows, cols)."""
        return _gather(self, rows, cols)


class PointerBatch(BatchedMatrix):
    """
    Batch stored as independent flat tensors, one per item.

    Args:
        items: 1-D contiguous tensors, one per batch item
        ld: Leading dimension shared by all items
    """

    def __init__(self, items: Sequence[torch.Tensor], ld: int):
        self.items = list(items)
        self.ld = ld
        self.batch_count = len(self.items)

    def __repr__(self) -> str:
        return (f"PointerBatch(ld={self.ld}, batch_count={self.batch_count}, "
                f"dtype={self.dtype})")

    @property
    def dtype(self) -> torch.dtype | None:
        return self.items[0].dtype if self.items else None

    @property
    def device(self) -> torch.device | None:
        return self.items[0].device if self.items else None

    def base(self, b: int) -> tuple[torch.Tensor, int]:
        item = self.items[b]
        return item, item.storage_offset()

    def available(self, b: int) -> int:
        return self.items[b].numel()

    def select(self, b: int) -> PointerBatch:
        return PointerBatch([self.items[b]], self.ld)

    def tensors(self) -> list[torch.Tensor]:
        return list(self.items)

    @classmethod
    def from_matrices(cls, matrices: torch.Tensor) -> PointerBatch:
        """Split a (batch, rows, cols) tensor into fresh per-item column-major tensors."""
        if matrices.dim() == 2:
            matrices = matrices.unsqueeze(0)
        rows = matrices.shape[1]
        items = [m.transpose(0, 1).contiguous().reshape(-1).clone() for m in matrices]
        return cls(items, ld=max(rows, 1))

    def to_matrices(self, rows: int, cols: int) -> torch.Tensor:
        """Copy the leading rows x cols block of every item into (batch, rows, cols)."""
        return _gather(self, rows, cols)


@dataclass(frozen=True)
class Tile:
    """
    Rectangular block of every item of a BatchedMatrix.

    Attributes:
        matrix: The batch the block belongs to
        shift: Linear offset of element (0, 0) of the block within each item
        rows: Number of rows
        cols: Number of columns
        row_stride: Distance between consecutive rows (1 for column-major)
        col_stride: Distance between consecutive columns (ld for column-major)
    """
    matrix: BatchedMatrix
    shift: int
    rows: int
    cols: int
    row_stride: int
    col_stride: int

    @property
    def batch_count(self) -> int:
        return self.matrix.batch_count

    @property
    def empty(self) -> bool:
        return self.rows == 0 or self.cols == 0 or self.batch_count == 0

    def view(self, b: int) -> torch.Tensor:
        """Writable (rows, cols) view of item b."""
        tensor, offset = self.matrix.base(b)
        return tensor.as_strided(
            (self.rows, self.cols),
            (self.row_stride, self.col_stride),
            offset + self.shift,
        )

    def views(self) -> list[torch.Tensor]:
        return [self.view(b) for b in range(self.batch_count)]

    def stacked(self) -> torch.Tensor | None:
        """Writable (batch, rows, cols) view, or None for pointer batches."""
        return self.matrix.stacked_view(
            self.shift, (self.rows, self.cols), (self.row_stride, self.col_stride)
        )

    def parts(self) -> list[torch.Tensor]:
        """One batched view when available, else one view per item."""
        stacked = self.stacked()
        return [stacked] if stacked is not None else self.views()

    def select(self, b: int) -> Tile:
        return replace(self, matrix=self.matrix.select(b))

    def sub(self, i: int, j: int, rows: int, cols: int) -> Tile:
        """Block of rows x cols whose (0, 0) is element (i, j) of this tile."""
        return replace(
            self,
            shift=self.shift + i * self.row_stride + j * self.col_stride,
            rows=rows,
            cols=cols,
        )


def batched_parts(*tiles: Tile) -> list[tuple[torch.Tensor, ...]]:
    """
    Line up the per-item operands of several tiles.

    Returns a single tuple of 3-D views when every tile has a batched
    layout, otherwise one tuple of 2-D views per batch item. Kernels written
    against the last two dimensions work unchanged on either form.
    """
    batch_counts = {t.batch_count for t in tiles}
    if len(batch_counts) != 1:
        raise ValueError(f"Tiles disagree on batch_count: {sorted(batch_counts)}")
    stacked = [t.stacked() for t in tiles]
    if all(s is not None for s in stacked):
        return [tuple(stacked)]
    batch_count = batch_counts.pop()
    return [tuple(t.view(b) for t in tiles) for b in range(batch_count)]


def _gather(matrix: BatchedMatrix, rows: int, cols: int) -> torch.Tensor:
    tile = matrix.tile(0, rows, cols)
    stacked = tile.stacked()
    if stacked is not None:
        return stacked.clone()
    return torch.stack(tile.views()) if tile.batch_count else torch.empty(0, rows, cols)
