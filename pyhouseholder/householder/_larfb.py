"""
Block reflector application.

Applies H = I - V T V' (or its transpose) to an m x n matrix A from the
left or the right, using only BLAS-3 calls on the numeric backend:

    left:   A := op(H) A = A - V op(T) V' A
    right:  A := A op(H) = A - A V op(T) V'

V is split into its k x k unit-triangular leading block V1 and the dense
remainder V2; A is split the same way into A1 and A2. The work buffer
holds V'A (left, k x n) or AV (right, m x k) while it is built up and
pushed back.
"""

from pyhouseholder.core.capabilities import CAPABILITY_BATCHED_TRMM
from pyhouseholder.core.compute.linalg import kernels
from pyhouseholder.core.compute.workspace import workspace
from pyhouseholder.core.exceptions import UnsupportedVariantError
from pyhouseholder.core.matrix import BatchedMatrix, Tile
from pyhouseholder.core.options import (
    Diagonal, Direction, Fill, Operation, Side, Storage, flip,
)


def _trmm(handle, side: Side, uplo: Fill, trans: Operation, diag: Diagonal,
          a: Tile, b: Tile) -> None:
    """b := op(a) b or b op(a), batched when the backend can, else per item."""
    blas = handle.backend
    if blas.supports(CAPABILITY_BATCHED_TRMM):
        blas.trmm(side, uplo, trans, diag, 1.0, a, b)
        return
    # one call per item, same stream
    for item in range(b.batch_count):
        blas.trmm(side, uplo, trans, diag, 1.0, a.select(item), b.select(item))


def larfb_template(
    handle,
    side: Side,
    trans: Operation,
    direct: Direction,
    storev: Storage,
    m: int,
    n: int,
    k: int,
    V: BatchedMatrix,
    shift_v: int,
    F: BatchedMatrix,
    shift_f: int,
    A: BatchedMatrix,
    shift_a: int,
) -> None:
    """
    Apply a block of k reflectors to the m x n block of A at shift_a.

    Args:
        handle: Execution context
        side: 'left' or 'right'
        trans: 'none' applies H, 'transpose' applies H'
        direct: Only 'forward' is supported
        storev: 'column_wise' (V lower trapezoidal) or 'row_wise'
            (V upper trapezoidal)
        m: Rows of the target block
        n: Columns of the target block
        k: Number of reflectors
        V: Generators, block at shift_v
        F: Triangular factor T, k x k upper triangular at shift_f
        A: Target, updated in place

    Raises:
        UnsupportedVariantError: For direct='backward'; A is left untouched
    """
    if m == 0 or n == 0 or A.batch_count == 0:
        return
    if direct == 'backward':
        raise UnsupportedVariantError(
            "Backward composition of reflectors is not implemented",
            option='direct', value=direct,
        )

    left = side == 'left'
    colwise = storev == 'column_wise'
    if left:
        order, ldw, trap = n, k, m > k
    else:
        order, ldw, trap = k, m, n > k
    dim = m if left else n

    if colwise:
        uplo_v: Fill = 'lower'
        transp: Operation = 'transpose' if left else 'none'
        V2 = V.tile(shift_v + k, dim - k, k)
    else:
        uplo_v = 'upper'
        transp = 'none' if left else 'transpose'
        V2 = V.tile(shift_v + k * V.ld, k, dim - k)
    V1 = V.tile(shift_v, k, k)
    T = F.tile(shift_f, k, k)

    target = A.tile(shift_a, m, n)
    A1 = target.sub(0, 0, ldw, order)
    A2 = target.sub(k, 0, m - k, n) if left else target.sub(0, k, m, n - k)

    blas = handle.backend
    with workspace(handle, ldw, order, A.batch_count, A.dtype) as work:
        W = work.tile(0, ldw, order)

        # W = V1' A1  |  A1 V1
        kernels.copy_block(A1, W)
        _trmm(handle, side, uplo_v, transp, 'unit', V1, W)

        # W += V2' A2  |  A2 V2
        if trap:
            if left:
                blas.gemm(transp, 'none', 1.0, V2, A2, 1.0, W)
            else:
                blas.gemm('none', transp, 1.0, A2, V2, 1.0, W)

        # W = op(T) W  |  W op(T)
        _trmm(handle, side, 'upper', trans, 'non_unit', T, W)

        # A2 -= V2 W  |  W V2'
        transp = flip(transp)
        if trap:
            if left:
                blas.gemm(transp, 'none', -1.0, V2, W, 1.0, A2)
            else:
                blas.gemm('none', transp, -1.0, W, V2, 1.0, A2)

        # A1 -= V1 W  |  W V1'
        _trmm(handle, side, uplo_v, transp, 'unit', V1, W)
        kernels.subtract_block(A1, W)
