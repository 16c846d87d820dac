"""
Unblocked reconstruction of Q from column reflectors.

Q = H(0) H(1) ... H(k-1) is accumulated from the last reflector to the
first, one column at a time. Column j only receives contributions from
H(j) onward, so once H(j) has been applied to the columns on its right the
column itself has the closed form

    Q[j, j] = 1 - tau[j],   Q[j+1:m, j] = -tau[j] * v_j[1:]

which is written in place over the stored reflector.
"""

from pyhouseholder.core.compute.linalg import kernels
from pyhouseholder.core.matrix import BatchedMatrix, idx2d
from pyhouseholder.householder._larf import larf_template


def org2r_template(
    handle,
    m: int,
    n: int,
    k: int,
    A: BatchedMatrix,
    shift_a: int,
    ipiv: BatchedMatrix,
    shift_p: int,
) -> None:
    """
    Overwrite the m x n block of A at shift_a with the first n columns of Q.

    Args:
        handle: Execution context
        m: Rows of Q
        n: Columns of Q (n <= m)
        k: Number of reflectors (k <= n), stored below the diagonal of
           the first k columns
        A: Reflectors on entry, Q on exit
        ipiv: tau values at shift_p; negated while working, restored on exit
    """
    if m == 0 or n == 0 or A.batch_count == 0:
        return

    lda = A.ld
    blas = handle.backend
    kernels.init_ident_col(A.tile(shift_a, m, n), k)

    for j in range(k - 1, -1, -1):
        tau = ipiv.tile(shift_p + j, 1, 1)

        # apply H(j) to Q[j:m, j+1:n] from the left
        if j < n - 1:
            larf_template(
                handle, 'left', m - j, n - j - 1,
                A.vector(shift_a + idx2d(j, j, lda), m - j),
                tau,
                A.tile(shift_a + idx2d(j, j + 1, lda), m - j, n - j - 1),
            )

        kernels.set_diag_negate_tau(A.tile(shift_a + idx2d(j, j, lda), 1, 1), tau)

        if j < m - 1:
            blas.scal(tau, A.vector(shift_a + idx2d(j + 1, j, lda), m - j - 1))

    if k > 0:
        kernels.negate(ipiv.vector(shift_p, k))
