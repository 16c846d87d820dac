"""
Application of row-stored reflectors to a general matrix.

A holds k reflectors as rows (the layout an LQ factorization leaves
behind): reflector i is v_i = [0, ..., 0, 1, A[i, i+1:nq]] with its unit
implied at A[i, i]. With Q = H(k-1) ... H(1) H(0), C is overwritten by
Q C, Q' C, C Q or C Q' one reflector at a time.
"""

from pyhouseholder.core.compute.workspace import workspace
from pyhouseholder.core.matrix import BatchedMatrix, idx2d
from pyhouseholder.core.options import Operation, Side
from pyhouseholder.householder._common import unit_diagonal
from pyhouseholder.householder._larf import larf_template


def orml2_template(
    handle,
    side: Side,
    trans: Operation,
    m: int,
    n: int,
    k: int,
    A: BatchedMatrix,
    shift_a: int,
    ipiv: BatchedMatrix,
    shift_p: int,
    C: BatchedMatrix,
    shift_c: int,
) -> None:
    """
    Overwrite the m x n block of C at shift_c with op(Q) C or C op(Q).

    Args:
        handle: Execution context
        side: 'left' (reflectors of order m) or 'right' (order n)
        trans: 'none' applies Q, 'transpose' applies Q'
        m: Rows of C
        n: Columns of C
        k: Number of reflectors
        A: k x nq reflector rows at shift_a; diagonal is restored on exit
        ipiv: tau values at shift_p
        C: Target, updated in place
    """
    if m == 0 or n == 0 or k == 0 or C.batch_count == 0:
        return

    left = side == 'left'
    forward = (left and trans == 'none') or (not left and trans == 'transpose')
    order = range(k) if forward else range(k - 1, -1, -1)
    nq = m if left else n
    lda, ldc = A.ld, C.ld

    with workspace(handle, 1, 1, C.batch_count, C.dtype) as saved:
        for i in order:
            diag = A.tile(shift_a + idx2d(i, i, lda), 1, 1)
            v = A.vector(shift_a + idx2d(i, i, lda), nq - i, inc=lda)
            tau = ipiv.tile(shift_p + i, 1, 1)
            if left:
                target = C.tile(shift_c + idx2d(i, 0, ldc), m - i, n)
                rows, cols = m - i, n
            else:
                target = C.tile(shift_c + idx2d(0, i, ldc), m, n - i)
                rows, cols = m, n - i

            with unit_diagonal(saved.tile(0, 1, 1), diag):
                larf_template(handle, side, rows, cols, v, tau, target)
