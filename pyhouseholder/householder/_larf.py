"""
Single Householder reflector application.

Applies H = I - tau * v * v' to an m x n block from the left (H * A) or
the right (A * H). v is any vector tile (column-major increment 1 for
column reflectors, increment lda for row reflectors); tau is a per-item
1x1 tile.
"""

from pyhouseholder.core.compute.workspace import workspace
from pyhouseholder.core.matrix import Tile
from pyhouseholder.core.options import Side


def larf_template(handle, side: Side, m: int, n: int, v: Tile, tau: Tile, A: Tile) -> None:
    """
    A := H * A (left) or A * H (right), H = I - tau * v * v'.

    Args:
        handle: Execution context
        side: 'left' (v has m entries) or 'right' (v has n entries)
        m: Rows of A
        n: Columns of A
        v: Reflector vector tile
        tau: Reflector scalar, 1x1 tile
        A: Target block, m x n tile
    """
    if m == 0 or n == 0 or A.batch_count == 0:
        return

    blas = handle.backend
    left = side == 'left'
    with workspace(handle, 1 if left else m, n if left else 1,
                   A.batch_count, A.matrix.dtype) as work:
        if left:
            # w = v' A ; A -= v (tau w)
            w = work.tile(0, 1, n)
            blas.gemm('transpose', 'none', 1.0, v, A, 0.0, w)
            blas.scal(tau, w)
            blas.gemm('none', 'none', -1.0, v, w, 1.0, A)
        else:
            # w = A v ; A -= (tau w) v'
            w = work.tile(0, m, 1)
            blas.gemm('none', 'none', 1.0, A, v, 0.0, w)
            blas.scal(tau, w)
            blas.gemm('none', 'transpose', -1.0, w, v, 1.0, A)
