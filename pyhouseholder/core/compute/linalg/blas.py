"""
Batched BLAS-3 primitives on PyTorch.

TorchBlas implements the NumericBackend protocol. Strided batches run as
one batched matmul per call; pointer-array batches run one matmul per item,
all on the current stream.

Triangular multiply has no dedicated torch kernel: the referenced triangle
is materialized (with an implicit unit diagonal when requested) and
multiplied densely. Batched triangular multiply can be switched off to
reproduce backends that only offer the single-matrix form.
"""

import torch

from pyhouseholder.core.capabilities import (
    CAPABILITY_ASYNC_STREAM,
    CAPABILITY_BATCHED_GEMM,
    CAPABILITY_BATCHED_TRMM,
)
from pyhouseholder.core.matrix import Tile, batched_parts
from pyhouseholder.core.options import Diagonal, Fill, Operation, Side


def _op(x: torch.Tensor, trans: Operation) -> torch.Tensor:
    return x.transpose(-1, -2) if trans == 'transpose' else x


def _triangle(a: torch.Tensor, uplo: Fill, diag: Diagonal) -> torch.Tensor:
    """Dense copy of the referenced triangle of a."""
    if diag == 'unit':
        strict = torch.triu(a, 1) if uplo == 'upper' else torch.tril(a, -1)
        eye = torch.eye(a.shape[-2], a.shape[-1], dtype=a.dtype, device=a.device)
        return strict + eye
    return torch.triu(a) if uplo == 'upper' else torch.tril(a)


class TorchBlas:
    """
    NumericBackend on torch tensors (CPU, CUDA or MPS).

    Args:
        device: Device the operands live on
        batched_trmm: Advertise batched triangular multiply. When False,
            trmm() accepts one batch item per call and callers loop.
    """

    def __init__(self, device: torch.device, batched_trmm: bool = True):
        self.device = torch.device(device)
        self._batched_trmm = batched_trmm

    @property
    def name(self) -> str:
        return f'torch_{self.device.type}'

    def supports(self, capability: str) -> bool:
        if capability == CAPABILITY_BATCHED_GEMM:
            return True
        if capability == CAPABILITY_BATCHED_TRMM:
            return self._batched_trmm
        if capability == CAPABILITY_ASYNC_STREAM:
            return self.device.type in ('cuda', 'mps')
        return False

    def gemm(self, trans_a, trans_b, alpha, a: Tile, b: Tile, beta, c: Tile) -> None:
        if c.empty:
            return
        for pa, pb, pc in batched_parts(a, b, c):
            prod = _op(pa, trans_a) @ _op(pb, trans_b)
            if beta == 0:
                pc.copy_(prod.mul_(alpha))
            else:
                if beta != 1:
                    pc.mul_(beta)
                pc.add_(prod, alpha=alpha)

    def trmm(self, side: Side, uplo: Fill, trans: Operation, diag: Diagonal,
             alpha, a: Tile, b: Tile) -> None:
        if b.empty:
            return
        if not self._batched_trmm and b.batch_count > 1:
            raise ValueError(
                f"{self.name} has batched trmm disabled; got batch_count="
                f"{b.batch_count}, issue one call per item"
            )
        for pa, pb in batched_parts(a, b):
            tri = _op(_triangle(pa, uplo, diag), trans)
            prod = tri @ pb if side == 'left' else pb @ tri
            if alpha != 1:
                prod.mul_(alpha)
            pb.copy_(prod)

    def scal(self, alpha, x: Tile) -> None:
        if x.empty:
            return
        if isinstance(alpha, Tile):
            for pa, px in batched_parts(alpha, x):
                px.mul_(pa)
        else:
            for px in x.parts():
                px.mul_(alpha)
