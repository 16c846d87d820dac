"""
Public entry points for the Householder routines.

Each function validates its arguments, wraps the caller's tensors in a
BatchedMatrix view and dispatches to the matching template. Validation is
the boundary: nothing is written to device memory before every check has
passed, and the templates trust their inputs.

Storage conventions:
    - Matrices are flat 1-D tensors in column-major order with an explicit
      leading dimension (lda, ldv, ldf, ldc)
    - ``*_strided_batched`` variants take one tensor holding batch_count
      items ``stride`` elements apart
    - ``*_batched`` variants take a sequence of per-item tensors
    - tau (``ipiv``) is always one tensor, items ``stridep`` elements apart
    - With batch_count > 1 every stride must cover one item, so that items
      never share storage

Every entry point returns a Result whose ``params`` is the view that was
written in place, or raises a PyHouseholderError subclass carrying a Status.
"""

from typing import Any, Callable, Sequence
import logging

import torch

from pyhouseholder.core.compute.timing import Timer
from pyhouseholder.core.exceptions import InternalError
from pyhouseholder.core.handle import Handle
from pyhouseholder.core.matrix import BatchedMatrix, PointerBatch, StridedBatch
from pyhouseholder.core.options import (
    DIRECTIONS, OPERATIONS, SIDES, STORAGES,
    Direction, Operation, Side, Storage,
)
from pyhouseholder.core.result import Result
from pyhouseholder.core.validation import (
    check_at_least,
    check_at_most,
    check_batch_stride,
    check_device,
    check_dtypes,
    check_extent,
    check_handle,
    check_nonnegative,
    check_option,
    check_tensor,
    check_tensor_list,
    footprint,
)
from pyhouseholder.householder._geqrf import geqr2_template, geqrf_template
from pyhouseholder.householder._gelq2 import gelq2_template
from pyhouseholder.householder._larfb import larfb_template
from pyhouseholder.householder._org2r import org2r_template
from pyhouseholder.householder._orgqr import orgqr_template
from pyhouseholder.householder._orml2 import orml2_template

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# Operand construction
# ═══════════════════════════════════════════════════════════════════════

def _strided(tensor: Any, ld: int, stride: int, batch_count: int,
             name: str, required: bool) -> StridedBatch | None:
    if not required and tensor is None:
        return None
    return StridedBatch(check_tensor(tensor, name), ld=ld, stride=stride,
                        batch_count=batch_count)


def _pointers(items: Any, ld: int, batch_count: int,
              name: str, required: bool) -> PointerBatch | None:
    if not required and items is None:
        return None
    return PointerBatch(check_tensor_list(items, batch_count, name), ld=ld)


def _tau(ipiv: Any, k: int, stridep: int, batch_count: int,
         required: bool) -> StridedBatch | None:
    return _strided(ipiv, max(k, 1), stridep, batch_count, 'ipiv', required)


def _check_operands(
    handle: Handle,
    operands: dict[str, tuple[BatchedMatrix | None, int, int]],
) -> None:
    """
    Check extents, device placement and dtypes of the present operands.

    Args:
        operands: name -> (matrix or None, rows, cols)
    """
    present = {name: entry for name, entry in operands.items() if entry[0] is not None}
    for name, (matrix, rows, cols) in present.items():
        check_extent(matrix, rows, cols, name)
        check_device(matrix.tensors(), handle.device, name)
    if not present:
        return
    names = tuple(present)
    matrices = [present[n][0] for n in names]
    check_dtypes(matrices, names)
    dtype = next((mat.dtype for mat in matrices if mat.dtype is not None), None)
    if dtype is not None:
        handle.check_dtype(dtype)


def _check_batch(batch_count: int, *strides: tuple[int, str, int]) -> None:
    """Check batch_count and each (stride, name, item extent) triple."""
    check_nonnegative(batch_count, 'batch_count')
    for value, name, extent in strides:
        check_nonnegative(value, name)
        check_batch_stride(value, extent, batch_count, name)


# ═══════════════════════════════════════════════════════════════════════
# Execution
# ═══════════════════════════════════════════════════════════════════════

def _execute(
    handle: Handle,
    operation: str,
    params: BatchedMatrix | None,
    run: Callable[[], dict | None],
    quick: bool,
    **info: Any,
) -> Result:
    """
    Run a template on the handle's stream and wrap the outcome.

    Torch failures surface as InternalError with the original chained.
    Workspace has already been released by the time they propagate here.
    """
    timer = Timer()
    timer.start()

    if quick:
        details = {'method': 'quick_return', 'blocks': 0}
    else:
        try:
            with handle.stream_context(), timer.section(operation):
                details = run() or {}
        except RuntimeError as e:
            raise InternalError(
                f"{operation}: backend failure on {handle.device}: {e}"
            ) from e

    timer.stop()

    info = {
        'operation': operation,
        **info,
        **details,
        'device': str(handle.device),
        'dtype': str(params.dtype) if params is not None else None,
    }
    logger.debug("%s: %s", operation, info)

    return Result(
        params=params,
        info=info,
        timing=timer.result(),
        backend_name=handle.backend.name,
    )


# ═══════════════════════════════════════════════════════════════════════
# Orthogonal builders (org2r / orgqr)
# ═══════════════════════════════════════════════════════════════════════

def _check_orgqr_sizes(m: int, n: int, k: int, lda: int) -> None:
    check_nonnegative(m, 'm')
    check_nonnegative(n, 'n')
    check_nonnegative(k, 'k')
    check_at_most(n, m, 'n', bound='m')
    check_at_most(k, n, 'k', bound='n')
    check_at_least(lda, m, 'lda', bound='m')


def _orthogonal(handle, operation, blocked, m, n, k, A, ipiv, batch_count) -> Result:
    _check_operands(handle, {'A': (A, m, n), 'ipiv': (ipiv, k, 1)})
    quick = m == 0 or n == 0 or batch_count == 0

    def run():
        if blocked:
            return orgqr_template(handle, m, n, k, A, 0, ipiv, 0, handle.config)
        org2r_template(handle, m, n, k, A, 0, ipiv, 0)
        return {'method': 'unblocked', 'blocks': 0}

    return _execute(handle, operation, A, run, quick,
                    m=m, n=n, k=k, batch_count=batch_count)


def _orthogonal_strided(handle, operation, blocked, m, n, k, A, lda, strideA,
                        ipiv, stridep, batch_count) -> Result:
    check_handle(handle)
    _check_orgqr_sizes(m, n, k, lda)
    _check_batch(batch_count, (strideA, 'strideA', footprint(m, n, lda)),
                 (stridep, 'stridep', k))
    A_view = _strided(A, lda, strideA, batch_count, 'A', required=m * n > 0)
    tau = _tau(ipiv, k, stridep, batch_count, required=k > 0)
    return _orthogonal(handle, operation, blocked, m, n, k, A_view, tau, batch_count)


def _orthogonal_pointers(handle, operation, blocked, m, n, k, A, lda,
                         ipiv, stridep, batch_count) -> Result:
    check_handle(handle)
    _check_orgqr_sizes(m, n, k, lda)
    _check_batch(batch_count, (stridep, 'stridep', k))
    A_view = _pointers(A, lda, batch_count, 'A', required=m * n > 0)
    tau = _tau(ipiv, k, stridep, batch_count, required=k > 0)
    return _orthogonal(handle, operation, blocked, m, n, k, A_view, tau, batch_count)


def org2r(handle: Handle, m: int, n: int, k: int,
          A: torch.Tensor, lda: int, ipiv: torch.Tensor) -> Result[StridedBatch]:
    """
    Build the first n columns of Q from k column reflectors, unblocked.

    On entry the first k columns of A hold the reflector vectors below the
    diagonal, as left by geqrf. On exit A holds Q. ipiv is read and left
    unchanged.

    Args:
        handle: Execution context
        m: Rows of Q
        n: Columns of Q, 0 <= n <= m
        k: Number of reflectors, 0 <= k <= n
        A: Flat column-major storage, lda * n elements
        lda: Leading dimension, >= m
        ipiv: k reflector scalars

    Returns:
        Result whose params is the StridedBatch view over A

    Raises:
        InvalidHandleError: handle missing
        DimensionError: size or leading dimension out of range, or batch items
            overlap
        InvalidPointerError: A or ipiv missing or unusable
        InternalError: the device failed after validation

    Example:
        >>> handle = Handle.create('cpu')
        >>> geqrf(handle, m, n, A, m, tau)
        >>> org2r(handle, m, n, n, A, m, tau)
    """
    return _orthogonal_strided(handle, 'org2r', False, m, n, k, A, lda, 0,
                               ipiv, 0, 1)


def org2r_batched(handle: Handle, m: int, n: int, k: int,
                  A: Sequence[torch.Tensor], lda: int, ipiv: torch.Tensor,
                  stridep: int, batch_count: int) -> Result[PointerBatch]:
    """org2r over a sequence of per-item tensors; taus stridep apart in ipiv."""
    return _orthogonal_pointers(handle, 'org2r_batched', False, m, n, k, A, lda,
                                ipiv, stridep, batch_count)


def org2r_strided_batched(handle: Handle, m: int, n: int, k: int,
                          A: torch.Tensor, lda: int, strideA: int,
                          ipiv: torch.Tensor, stridep: int,
                          batch_count: int) -> Result[StridedBatch]:
    """org2r over batch_count items strideA elements apart in one tensor."""
    return _orthogonal_strided(handle, 'org2r_strided_batched', False, m, n, k,
                               A, lda, strideA, ipiv, stridep, batch_count)


def orgqr(handle: Handle, m: int, n: int, k: int,
          A: torch.Tensor, lda: int, ipiv: torch.Tensor) -> Result[StridedBatch]:
    """
    Build the first n columns of Q from k column reflectors, blocked.

    Same contract as org2r. Up to handle.config.switch_size reflectors the
    work is done by org2r; beyond that reflectors are applied in blocks of
    handle.config.block_size. ``info['method']`` and ``info['blocks']``
    report which path ran.
    """
    return _orthogonal_strided(handle, 'orgqr', True, m, n, k, A, lda, 0,
                               ipiv, 0, 1)


def orgqr_batched(handle: Handle, m: int, n: int, k: int,
                  A: Sequence[torch.Tensor], lda: int, ipiv: torch.Tensor,
                  stridep: int, batch_count: int) -> Result[PointerBatch]:
    """orgqr over a sequence of per-item tensors; taus stridep apart in ipiv."""
    return _orthogonal_pointers(handle, 'orgqr_batched', True, m, n, k, A, lda,
                                ipiv, stridep, batch_count)


def orgqr_strided_batched(handle: Handle, m: int, n: int, k: int,
                          A: torch.Tensor, lda: int, strideA: int,
                          ipiv: torch.Tensor, stridep: int,
                          batch_count: int) -> Result[StridedBatch]:
    """orgqr over batch_count items strideA elements apart in one tensor."""
    return _orthogonal_strided(handle, 'orgqr_strided_batched', True, m, n, k,
                               A, lda, strideA, ipiv, stridep, batch_count)


# ═══════════════════════════════════════════════════════════════════════
# Block reflector application (larfb)
# ═══════════════════════════════════════════════════════════════════════

def larfb(handle: Handle, side: Side, trans: Operation, direct: Direction,
          storev: Storage, m: int, n: int, k: int,
          V: torch.Tensor, ldv: int, F: torch.Tensor, ldf: int,
          A: torch.Tensor, lda: int) -> Result[StridedBatch]:
    """
    Apply the block reflector H = I - V F V' (or H') to A from either side.

    Args:
        handle: Execution context
        side: 'left' computes op(H) A, 'right' computes A op(H)
        trans: 'none' or 'transpose'
        direct: 'forward'; 'backward' raises UnsupportedVariantError
        storev: 'column_wise' (V is order x k, unit lower trapezoidal) or
            'row_wise' (V is k x order, unit upper trapezoidal)
        m: Rows of A
        n: Columns of A
        k: Reflectors in the block, >= 1 and <= the order (m or n)
        V: Reflector generators, leading dimension ldv
        ldv: >= k for row_wise; >= m (left) or n (right) for column_wise
        F: k x k upper triangular factor, as built by larft
        ldf: >= k
        A: Target, m x n with leading dimension lda >= m

    Returns:
        Result whose params is the StridedBatch view over A
    """
    check_handle(handle)
    check_option(side, SIDES, 'side')
    check_option(trans, OPERATIONS, 'trans')
    check_option(direct, DIRECTIONS, 'direct')
    check_option(storev, STORAGES, 'storev')

    left = side == 'left'
    order = m if left else n
    check_nonnegative(m, 'm')
    check_nonnegative(n, 'n')
    check_at_least(k, 1, 'k')
    if m > 0 and n > 0:
        check_at_most(k, order, 'k', bound='m' if left else 'n')
    check_at_least(lda, m, 'lda', bound='m')
    check_at_least(ldf, k, 'ldf', bound='k')
    if storev == 'row_wise':
        check_at_least(ldv, k, 'ldv', bound='k')
    else:
        check_at_least(ldv, order, 'ldv', bound='m' if left else 'n')

    A_view = _strided(A, lda, 0, 1, 'A', required=True)
    V_view = _strided(V, ldv, 0, 1, 'V', required=True)
    F_view = _strided(F, ldf, 0, 1, 'F', required=True)

    if m > 0 and n > 0:
        v_rows, v_cols = (order, k) if storev == 'column_wise' else (k, order)
    else:
        v_rows, v_cols = 0, 0
    _check_operands(handle, {
        'A': (A_view, m, n),
        'V': (V_view, v_rows, v_cols),
        'F': (F_view, k, k),
    })

    def run():
        larfb_template(handle, side, trans, direct, storev, m, n, k,
                       V_view, 0, F_view, 0, A_view, 0)
        return {'method': 'blocked', 'blocks': 1}

    return _execute(handle, 'larfb', A_view, run, m == 0 or n == 0,
                    side=side, trans=trans, storev=storev, m=m, n=n, k=k,
                    batch_count=1)


# ═══════════════════════════════════════════════════════════════════════
# Row-wise reflector application (orml2)
# ═══════════════════════════════════════════════════════════════════════

def _orml2(handle, operation, side, trans, m, n, k, A, lda, strideA,
           ipiv, stridep, C, ldc, strideC, batch_count) -> Result:
    check_handle(handle)
    check_option(side, SIDES, 'side')
    check_option(trans, OPERATIONS, 'trans')

    nq = m if side == 'left' else n
    check_nonnegative(m, 'm')
    check_nonnegative(n, 'n')
    check_nonnegative(k, 'k')
    check_at_most(k, nq, 'k', bound='m' if side == 'left' else 'n')
    check_at_least(lda, k, 'lda', bound='k')
    check_at_least(ldc, m, 'ldc', bound='m')
    _check_batch(batch_count, (strideA, 'strideA', footprint(k, nq, lda)),
                 (stridep, 'stridep', k), (strideC, 'strideC', footprint(m, n, ldc)))

    A_view = _strided(A, lda, strideA, batch_count, 'A', required=k > 0)
    tau = _tau(ipiv, k, stridep, batch_count, required=k > 0)
    C_view = _strided(C, ldc, strideC, batch_count, 'C', required=m * n > 0)
    _check_operands(handle, {
        'A': (A_view, k, nq),
        'ipiv': (tau, k, 1),
        'C': (C_view, m, n),
    })

    def run():
        orml2_template(handle, side, trans, m, n, k, A_view, 0, tau, 0, C_view, 0)
        return {'method': 'unblocked', 'blocks': 0}

    quick = m == 0 or n == 0 or k == 0 or batch_count == 0
    return _execute(handle, operation, C_view, run, quick,
                    side=side, trans=trans, m=m, n=n, k=k, batch_count=batch_count)


def orml2(handle: Handle, side: Side, trans: Operation, m: int, n: int, k: int,
          A: torch.Tensor, lda: int, ipiv: torch.Tensor,
          C: torch.Tensor, ldc: int) -> Result[StridedBatch]:
    """
    Overwrite C with Q C, Q' C, C Q or C Q', Q given by k row reflectors.

    Q = H(k-1) ... H(1) H(0) is the orthogonal factor of an LQ
    factorization as produced by gelq2: row i of A holds reflector i to
    the right of the diagonal. A's diagonal is borrowed during the call
    and restored before it returns.

    Args:
        handle: Execution context
        side: 'left' (Q is m x m) or 'right' (Q is n x n)
        trans: 'none' or 'transpose'
        m: Rows of C
        n: Columns of C
        k: Number of reflectors, <= m (left) or n (right)
        A: k x nq reflector rows, leading dimension lda >= k
        lda: Leading dimension of A
        ipiv: k reflector scalars
        C: m x n target, leading dimension ldc >= m
        ldc: Leading dimension of C

    Returns:
        Result whose params is the StridedBatch view over C
    """
    return _orml2(handle, 'orml2', side, trans, m, n, k, A, lda, 0, ipiv, 0,
                  C, ldc, 0, 1)


def orml2_strided_batched(handle: Handle, side: Side, trans: Operation,
                          m: int, n: int, k: int,
                          A: torch.Tensor, lda: int, strideA: int,
                          ipiv: torch.Tensor, stridep: int,
                          C: torch.Tensor, ldc: int, strideC: int,
                          batch_count: int) -> Result[StridedBatch]:
    """orml2 over batch_count items; A, ipiv and C each strided in one tensor."""
    return _orml2(handle, 'orml2_strided_batched', side, trans, m, n, k,
                  A, lda, strideA, ipiv, stridep, C, ldc, strideC, batch_count)


# ═══════════════════════════════════════════════════════════════════════
# Factorizations (geqr2 / geqrf / gelq2)
# ═══════════════════════════════════════════════════════════════════════

def _factor(handle, operation, template, m, n, A_view, tau, batch_count) -> Result:
    dim = min(m, n)
    _check_operands(handle, {'A': (A_view, m, n), 'ipiv': (tau, dim, 1)})

    def run():
        return template(handle, m, n, A_view, 0, tau, 0)

    return _execute(handle, operation, A_view, run,
                    m == 0 or n == 0 or batch_count == 0,
                    m=m, n=n, batch_count=batch_count)


def _factor_strided(handle, operation, template, m, n, A, lda, strideA,
                    ipiv, stridep, batch_count) -> Result:
    check_handle(handle)
    check_nonnegative(m, 'm')
    check_nonnegative(n, 'n')
    check_at_least(lda, m, 'lda', bound='m')
    dim = min(m, n)
    _check_batch(batch_count, (strideA, 'strideA', footprint(m, n, lda)),
                 (stridep, 'stridep', dim))
    A_view = _strided(A, lda, strideA, batch_count, 'A', required=dim > 0)
    tau = _tau(ipiv, dim, stridep, batch_count, required=dim > 0)
    return _factor(handle, operation, template, m, n, A_view, tau, batch_count)


def _unblocked(template) -> Callable[..., dict]:
    def run(handle, m, n, A, shift_a, ipiv, shift_p):
        template(handle, m, n, A, shift_a, ipiv, shift_p)
        return {'method': 'unblocked', 'blocks': 0}
    return run


def _blocked_qr(handle, m, n, A, shift_a, ipiv, shift_p) -> dict:
    return geqrf_template(handle, m, n, A, shift_a, ipiv, shift_p, handle.config)


def geqr2(handle: Handle, m: int, n: int, A: torch.Tensor, lda: int,
          ipiv: torch.Tensor) -> Result[StridedBatch]:
    """
    Unblocked QR factorization A = Q R.

    On exit R is on and above the diagonal of A and the min(m, n) column
    reflectors defining Q are below it; their scalars are written to ipiv.
    """
    return _factor_strided(handle, 'geqr2', _unblocked(geqr2_template),
                           m, n, A, lda, 0, ipiv, 0, 1)


def geqrf(handle: Handle, m: int, n: int, A: torch.Tensor, lda: int,
          ipiv: torch.Tensor) -> Result[StridedBatch]:
    """
    Blocked QR factorization A = Q R; same output layout as geqr2.

    The reflectors and ipiv are exactly the input orgqr expects:

        >>> geqrf(handle, m, n, A, lda, tau)
        >>> R = ...  # read the upper triangle of A first
        >>> orgqr(handle, m, n, n, A, lda, tau)
    """
    return _factor_strided(handle, 'geqrf', _blocked_qr,
                           m, n, A, lda, 0, ipiv, 0, 1)


def geqrf_batched(handle: Handle, m: int, n: int, A: Sequence[torch.Tensor],
                  lda: int, ipiv: torch.Tensor, stridep: int,
                  batch_count: int) -> Result[PointerBatch]:
    """geqrf over a sequence of per-item tensors."""
    check_handle(handle)
    check_nonnegative(m, 'm')
    check_nonnegative(n, 'n')
    check_at_least(lda, m, 'lda', bound='m')
    dim = min(m, n)
    _check_batch(batch_count, (stridep, 'stridep', dim))
    A_view = _pointers(A, lda, batch_count, 'A', required=dim > 0)
    tau = _tau(ipiv, dim, stridep, batch_count, required=dim > 0)
    return _factor(handle, 'geqrf_batched', _blocked_qr, m, n, A_view, tau, batch_count)


def geqrf_strided_batched(handle: Handle, m: int, n: int, A: torch.Tensor,
                          lda: int, strideA: int, ipiv: torch.Tensor,
                          stridep: int, batch_count: int) -> Result[StridedBatch]:
    """geqrf over batch_count items strideA elements apart in one tensor."""
    return _factor_strided(handle, 'geqrf_strided_batched', _blocked_qr,
                           m, n, A, lda, strideA, ipiv, stridep, batch_count)


def gelq2(handle: Handle, m: int, n: int, A: torch.Tensor, lda: int,
          ipiv: torch.Tensor) -> Result[StridedBatch]:
    """
    Unblocked LQ factorization A = L Q.

    On exit L is on and below the diagonal of A and the min(m, n) row
    reflectors defining Q are to its right, ready for orml2.
    """
    return _factor_strided(handle, 'gelq2', _unblocked(gelq2_template),
                           m, n, A, lda, 0, ipiv, 0, 1)


def gelq2_strided_batched(handle: Handle, m: int, n: int, A: torch.Tensor,
                          lda: int, strideA: int, ipiv: torch.Tensor,
                          stridep: int, batch_count: int) -> Result[StridedBatch]:
    """gelq2 over batch_count items strideA elements apart in one tensor."""
    return _factor_strided(handle, 'gelq2_strided_batched', _unblocked(gelq2_template),
                           m, n, A, lda, strideA, ipiv, stridep, batch_count)
