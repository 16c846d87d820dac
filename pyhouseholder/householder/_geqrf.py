"""
QR factorization into Householder reflectors.

On exit the upper triangle of A holds R and the part below the diagonal
holds the reflector vectors with unit leading entries implied, which is
exactly the input the orthogonal builders expect.

geqr2_template works column by column. geqrf_template factors panels of
``block_size`` columns with geqr2 and pushes each panel's block reflector
onto the trailing columns with larft/larfb, finishing the last
``switch_size`` columns unblocked.
"""

import logging

from pyhouseholder.core.compute.workspace import workspace
from pyhouseholder.core.config import BlockingConfig
from pyhouseholder.core.matrix import BatchedMatrix, idx2d
from pyhouseholder.householder._common import unit_diagonal
from pyhouseholder.householder._larf import larf_template
from pyhouseholder.householder._larfb import larfb_template
from pyhouseholder.householder._larfg import larfg_template
from pyhouseholder.householder._larft import larft_template

logger = logging.getLogger(__name__)


def geqr2_template(
    handle,
    m: int,
    n: int,
    A: BatchedMatrix,
    shift_a: int,
    ipiv: BatchedMatrix,
    shift_p: int,
) -> None:
    """Unblocked QR of the m x n block of A at shift_a; min(m, n) taus at shift_p."""
    if m == 0 or n == 0 or A.batch_count == 0:
        return

    lda = A.ld
    with workspace(handle, 1, 1, A.batch_count, A.dtype) as saved:
        for j in range(min(m, n)):
            diag = A.tile(shift_a + idx2d(j, j, lda), 1, 1)
            tau = ipiv.tile(shift_p + j, 1, 1)
            larfg_template(
                handle, m - j, diag,
                A.vector(shift_a + idx2d(min(j + 1, m - 1), j, lda), m - j - 1),
                tau,
            )

            if j < n - 1:
                with unit_diagonal(saved.tile(0, 1, 1), diag):
                    larf_template(
                        handle, 'left', m - j, n - j - 1,
                        A.vector(shift_a + idx2d(j, j, lda), m - j),
                        tau,
                        A.tile(shift_a + idx2d(j, j + 1, lda), m - j, n - j - 1),
                    )


def geqrf_template(
    handle,
    m: int,
    n: int,
    A: BatchedMatrix,
    shift_a: int,
    ipiv: BatchedMatrix,
    shift_p: int,
    config: BlockingConfig,
) -> dict:
    """
    Blocked QR of the m x n block of A at shift_a.

    Returns:
        {'method': 'unblocked' | 'blocked' | 'quick_return', 'blocks': int}
    """
    if m == 0 or n == 0 or A.batch_count == 0:
        return {'method': 'quick_return', 'blocks': 0}

    dim = min(m, n)
    if dim <= config.switch_size:
        geqr2_template(handle, m, n, A, shift_a, ipiv, shift_p)
        return {'method': 'unblocked', 'blocks': 0}

    lda = A.ld
    blocks = 0
    j = 0
    with workspace(handle, config.block_size, config.block_size,
                   A.batch_count, A.dtype) as work:
        while j < dim - config.switch_size:
            jb = min(dim - j, config.block_size)
            panel = shift_a + idx2d(j, j, lda)
            geqr2_template(handle, m - j, jb, A, panel, ipiv, shift_p + j)

            if j + jb < n:
                larft_template(handle, 'forward', 'column_wise', m - j, jb,
                               A.tile(panel, m - j, jb),
                               ipiv.vector(shift_p + j, jb),
                               work.tile(0, jb, jb))
                larfb_template(handle, 'left', 'transpose', 'forward', 'column_wise',
                               m - j, n - j - jb, jb,
                               A, panel, work, 0,
                               A, shift_a + idx2d(j, j + jb, lda))
            blocks += 1
            j += jb

    logger.debug("geqrf: %d panels, unblocked tail of %d columns", blocks, dim - j)
    geqr2_template(handle, m - j, n - j, A, shift_a + idx2d(j, j, lda), ipiv, shift_p + j)
    return {'method': 'blocked', 'blocks': blocks}
