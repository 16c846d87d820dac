"""
Unblocked LQ factorization into row reflectors.

On exit the lower triangle of A holds L and the part right of the diagonal
holds the reflector rows, unit leading entries implied. Applying them to
another matrix is orml2_template's job.
"""

from pyhouseholder.core.compute.workspace import workspace
from pyhouseholder.core.matrix import BatchedMatrix, idx2d
from pyhouseholder.householder._common import unit_diagonal
from pyhouseholder.householder._larf import larf_template
from pyhouseholder.householder._larfg import larfg_template


def gelq2_template(
    handle,
    m: int,
    n: int,
    A: BatchedMatrix,
    shift_a: int,
    ipiv: BatchedMatrix,
    shift_p: int,
) -> None:
    """Unblocked LQ of the m x n block of A at shift_a; min(m, n) taus at shift_p."""
    if m == 0 or n == 0 or A.batch_count == 0:
        return

    lda = A.ld
    with workspace(handle, 1, 1, A.batch_count, A.dtype) as saved:
        for j in range(min(m, n)):
            diag = A.tile(shift_a + idx2d(j, j, lda), 1, 1)
            tau = ipiv.tile(shift_p + j, 1, 1)
            larfg_template(
                handle, n - j, diag,
                A.vector(shift_a + idx2d(j, min(j + 1, n - 1), lda), n - j - 1, inc=lda),
                tau,
            )

            if j < m - 1:
                with unit_diagonal(saved.tile(0, 1, 1), diag):
                    larf_template(
                        handle, 'right', m - j - 1, n - j,
                        A.vector(shift_a + idx2d(j, j, lda), n - j, inc=lda),
                        tau,
                        A.tile(shift_a + idx2d(j + 1, j, lda), m - j - 1, n - j),
                    )
