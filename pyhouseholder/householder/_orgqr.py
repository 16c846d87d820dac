"""
Blocked reconstruction of Q from column reflectors.

The reflectors are consumed in panels of ``block_size`` from the last panel
to the first. Each panel is folded into one block reflector (larft) and
applied to the columns already finished on its right (larfb), then the
panel's own columns are produced by the unblocked builder. Reflectors past
the last full panel form a tail that is reconstructed unblocked first.

Below ``switch_size`` reflectors everything is done unblocked.
"""

import logging

from pyhouseholder.core.compute.linalg import kernels
from pyhouseholder.core.compute.workspace import workspace
from pyhouseholder.core.config import BlockingConfig
from pyhouseholder.core.matrix import BatchedMatrix, idx2d
from pyhouseholder.householder._larfb import larfb_template
from pyhouseholder.householder._larft import larft_template
from pyhouseholder.householder._org2r import org2r_template

logger = logging.getLogger(__name__)


def orgqr_template(
    handle,
    m: int,
    n: int,
    k: int,
    A: BatchedMatrix,
    shift_a: int,
    ipiv: BatchedMatrix,
    shift_p: int,
    config: BlockingConfig,
) -> dict:
    """
    Overwrite the m x n block of A at shift_a with the first n columns of Q.

    Same contract as org2r_template; the result agrees with it up to
    floating-point reordering.

    Returns:
        {'method': 'unblocked' | 'blocked' | 'quick_return', 'blocks': int}
    """
    if m == 0 or n == 0 or A.batch_count == 0:
        return {'method': 'quick_return', 'blocks': 0}

    if k <= config.switch_size:
        org2r_template(handle, m, n, k, A, shift_a, ipiv, shift_p)
        return {'method': 'unblocked', 'blocks': 0}

    lda = A.ld
    jb = config.block_size
    # start of the last full panel, and of the unblocked tail after it
    j = ((k - config.switch_size - 1) // jb) * jb
    kk = min(k, j + jb)
    logger.debug("orgqr: k=%d, %d panels of %d, unblocked tail of %d",
                 k, j // jb + 1, jb, k - kk)

    blocks = 0
    with workspace(handle, jb, jb, A.batch_count, A.dtype) as work:
        if kk < n:
            kernels.set_zero(A.tile(shift_a + idx2d(0, kk, lda), kk, n - kk))
            org2r_template(handle, m - kk, n - kk, k - kk,
                           A, shift_a + idx2d(kk, kk, lda), ipiv, shift_p + kk)

        while j >= 0:
            panel = shift_a + idx2d(j, j, lda)

            if j + jb < n:
                larft_template(handle, 'forward', 'column_wise', m - j, jb,
                               A.tile(panel, m - j, jb),
                               ipiv.vector(shift_p + j, jb),
                               work.tile(0, jb, jb))
                larfb_template(handle, 'left', 'none', 'forward', 'column_wise',
                               m - j, n - j - jb, jb,
                               A, panel, work, 0,
                               A, shift_a + idx2d(j, j + jb, lda))

            if j > 0:
                kernels.set_zero(A.tile(shift_a + idx2d(0, j, lda), j, jb))
            org2r_template(handle, m - j, jb, jb, A, panel, ipiv, shift_p + j)

            blocks += 1
            j -= jb

    return {'method': 'blocked', 'blocks': blocks}
