"""
Tests for block reflector application (larfb).

Validates:
    - All side / trans / storev combinations against the explicit product
    - larft + larfb equals applying the reflectors one at a time
    - Precondition failures report the right Status and touch nothing
    - Backward composition is rejected without mutating A
    - The per-item trmm fallback gives the batched result
"""

import numpy as np
import pytest
import torch

from pyhouseholder.core.compute.linalg.blas import TorchBlas
from pyhouseholder.core.compute.tolerances import FP64
from pyhouseholder.core.exceptions import Status, UnsupportedVariantError, status_of
from pyhouseholder.core.handle import Handle
from pyhouseholder.core.matrix import StridedBatch
from pyhouseholder.householder import larfb
from pyhouseholder.householder._larfb import larfb_template
from pyhouseholder.householder._larft import larft_template


def _flat(array):
    """Column-major flat tensor of a 2-D array."""
    return torch.from_numpy(np.asarray(array, dtype=np.float64).ravel(order='F').copy())


def _unflat(tensor, rows, cols, ld=None):
    ld = ld or rows
    return tensor.numpy()[:ld * cols].reshape(cols, ld).T[:rows]


def _explicit_v(V, storev, order, k):
    """Dense order x k generator matrix with the implied unit diagonal."""
    if storev == 'column_wise':
        return np.tril(V[:order, :k], -1) + np.eye(order, k)
    return (np.triu(V[:k, :order], 1) + np.eye(k, order)).T


def _expected(A, V, T, side, trans):
    op_t = T.T if trans == 'transpose' else T
    if side == 'left':
        return A - V @ op_t @ V.T @ A
    return A - A @ V @ op_t @ V.T


# ═══════════════════════════════════════════════════════════════════════
# Explicit product
# ═══════════════════════════════════════════════════════════════════════


class TestExplicitProduct:

    @pytest.mark.parametrize("side", ['left', 'right'])
    @pytest.mark.parametrize("trans", ['none', 'transpose'])
    @pytest.mark.parametrize("storev", ['column_wise', 'row_wise'])
    def test_combination(self, handle, rng, side, trans, storev):
        m, n, k = 7, 5, 3
        order = m if side == 'left' else n
        shape_v = (order, k) if storev == 'column_wise' else (k, order)
        V = rng.standard_normal(shape_v)
        T = np.triu(rng.standard_normal((k, k)))
        A = rng.standard_normal((m, n))
        ldv = shape_v[0]

        A_t = _flat(A)
        larfb(handle, side, trans, 'forward', storev, m, n, k,
              _flat(V), ldv, _flat(T), k, A_t, m)

        expected = _expected(A, _explicit_v(V, storev, order, k), T, side, trans)
        np.testing.assert_allclose(_unflat(A_t, m, n), expected,
                                   rtol=FP64.rtol, atol=FP64.atol)

    def test_square_generator(self, handle, rng):
        """k equal to the order: no trapezoidal part."""
        m, n, k = 3, 4, 3
        V = rng.standard_normal((m, k))
        T = np.triu(rng.standard_normal((k, k)))
        A = rng.standard_normal((m, n))
        A_t = _flat(A)
        larfb(handle, 'left', 'none', 'forward', 'column_wise', m, n, k,
              _flat(V), m, _flat(T), k, A_t, m)
        expected = _expected(A, _explicit_v(V, 'column_wise', m, k), T, 'left', 'none')
        np.testing.assert_allclose(_unflat(A_t, m, n), expected,
                                   rtol=FP64.rtol, atol=FP64.atol)

    def test_padded_leading_dimensions(self, handle, rng):
        m, n, k = 6, 4, 2
        ldv, ldf, lda = 9, 5, 8
        V = rng.standard_normal((ldv, k))
        T = rng.standard_normal((ldf, k))
        A = rng.standard_normal((lda, n))
        A_t = _flat(A)

        larfb(handle, 'left', 'transpose', 'forward', 'column_wise', m, n, k,
              _flat(V), ldv, _flat(T), ldf, A_t, lda)

        out = _unflat(A_t, lda, n)
        expected = _expected(A[:m], _explicit_v(V, 'column_wise', m, k),
                             np.triu(T[:k]), 'left', 'transpose')
        np.testing.assert_allclose(out[:m], expected, rtol=FP64.rtol, atol=FP64.atol)
        np.testing.assert_array_equal(out[m:], A[m:])


class TestWithTriangularFactor:

    @pytest.mark.parametrize("trans", ['none', 'transpose'])
    def test_matches_sequential_reflectors(self, handle, rng, trans):
        m, n, k, batch = 8, 5, 3, 2
        V = torch.from_numpy(rng.standard_normal((batch, m, k)))
        tau = torch.from_numpy(rng.uniform(0.5, 1.5, (batch, k)))
        A = torch.from_numpy(rng.standard_normal((batch, m, n)))

        Vb = StridedBatch.from_matrices(V)
        Ab = StridedBatch.from_matrices(A)
        taub = StridedBatch(tau.reshape(-1).clone(), ld=k, stride=k, batch_count=batch)
        Tb = StridedBatch.from_matrices(torch.zeros(batch, k, k, dtype=torch.float64))

        larft_template(handle, 'forward', 'column_wise', m, k,
                       Vb.tile(0, m, k), taub.vector(0, k), Tb.tile(0, k, k))
        larfb_template(handle, 'left', trans, 'forward', 'column_wise', m, n, k,
                       Vb, 0, Tb, 0, Ab, 0)

        out = Ab.to_matrices(m, n).numpy()
        for b in range(batch):
            Q = np.eye(m)
            for i in range(k):
                v = np.zeros(m)
                v[i] = 1
                v[i + 1:] = V[b, i + 1:, i].numpy()
                Q = Q @ (np.eye(m) - tau[b, i].item() * np.outer(v, v))
            op_q = Q.T if trans == 'transpose' else Q
            np.testing.assert_allclose(out[b], op_q @ A[b].numpy(),
                                       rtol=FP64.rtol, atol=FP64.atol)

    def test_backward_factor_rejected(self, handle):
        T = StridedBatch(torch.zeros(4, dtype=torch.float64), 2, 0, 1)
        V = StridedBatch(torch.zeros(6, dtype=torch.float64), 3, 0, 1)
        tau = StridedBatch(torch.ones(2, dtype=torch.float64), 2, 0, 1)
        with pytest.raises(UnsupportedVariantError):
            larft_template(handle, 'backward', 'column_wise', 3, 2,
                           V.tile(0, 3, 2), tau.vector(0, 2), T.tile(0, 2, 2))


# ═══════════════════════════════════════════════════════════════════════
# Preconditions
# ═══════════════════════════════════════════════════════════════════════


def _args(**overrides):
    m, n, k = 5, 4, 2
    args = dict(
        side='left', trans='none', direct='forward', storev='column_wise',
        m=m, n=n, k=k,
        V=torch.ones(m * k, dtype=torch.float64), ldv=m,
        F=torch.ones(k * k, dtype=torch.float64), ldf=k,
        A=torch.ones(m * n, dtype=torch.float64), lda=m,
    )
    args.update(overrides)
    return args


class TestPreconditions:

    @pytest.mark.parametrize("overrides, status", [
        (dict(k=0), Status.INVALID_SIZE),
        (dict(m=-1), Status.INVALID_SIZE),
        (dict(lda=4), Status.INVALID_SIZE),
        (dict(ldf=1), Status.INVALID_SIZE),
        (dict(ldv=4), Status.INVALID_SIZE),
        (dict(storev='row_wise', ldv=1), Status.INVALID_SIZE),
        (dict(side='right', ldv=3), Status.INVALID_SIZE),
        (dict(k=6, ldf=6, F=torch.ones(36, dtype=torch.float64)), Status.INVALID_SIZE),
        (dict(V=None), Status.INVALID_POINTER),
        (dict(F=None), Status.INVALID_POINTER),
        (dict(A=None), Status.INVALID_POINTER),
        (dict(F=torch.ones(4, dtype=torch.float32)), Status.INVALID_POINTER),
        (dict(A=torch.ones(10, dtype=torch.float64)), Status.INVALID_SIZE),
        (dict(side='top'), Status.NOT_IMPLEMENTED),
        (dict(storev='diagonal'), Status.NOT_IMPLEMENTED),
    ])
    def test_rejected_without_backend_calls(self, recording_handle, overrides, status):
        handle, blas = recording_handle()
        args = _args(**overrides)
        before = args['A'].clone() if args['A'] is not None else None
        assert status_of(larfb, handle, **args) is status
        assert blas.calls == []
        if before is not None:
            assert torch.equal(args['A'], before)

    def test_missing_handle(self):
        assert status_of(larfb, None, **_args()) is Status.INVALID_HANDLE

    def test_row_wise_ldv_is_k(self, handle):
        result = larfb(handle, **_args(storev='row_wise', ldv=2,
                                       V=torch.ones(2 * 5, dtype=torch.float64)))
        assert result.status is Status.SUCCESS
        assert result.info['method'] == 'blocked'

    def test_empty_target_still_needs_a(self, recording_handle):
        handle, blas = recording_handle()
        assert status_of(larfb, handle, **_args(m=0, lda=1, A=None)) is Status.INVALID_POINTER
        assert status_of(larfb, handle, **_args(n=0, A=None)) is Status.INVALID_POINTER
        assert blas.calls == []

    def test_empty_target_quick_return(self, recording_handle):
        handle, blas = recording_handle()
        result = larfb(handle, **_args(n=0))
        assert result.info['method'] == 'quick_return'
        assert blas.calls == []


class TestBackward:

    def test_not_implemented_and_a_untouched(self, recording_handle):
        handle, blas = recording_handle()
        args = _args(direct='backward')
        before = args['A'].clone()
        with pytest.raises(UnsupportedVariantError) as exc:
            larfb(handle, **args)
        assert exc.value.option == 'direct'
        assert exc.value.status is Status.NOT_IMPLEMENTED
        assert torch.equal(args['A'], before)
        assert blas.calls == []
        assert handle.workspace_bytes_in_use == 0

    def test_quick_return_precedes_direction_check(self, handle):
        result = larfb(handle, **_args(direct='backward', m=0, lda=1))
        assert result.status is Status.SUCCESS


# ═══════════════════════════════════════════════════════════════════════
# Batched trmm capability
# ═══════════════════════════════════════════════════════════════════════


class TestTrmmFallback:

    @pytest.mark.parametrize("side", ['left', 'right'])
    def test_per_item_loop_matches_batched(self, rng, side):
        m, n, k, batch = 6, 5, 2, 3
        order = m if side == 'left' else n
        V = torch.from_numpy(rng.standard_normal((batch, order, k)))
        T = torch.from_numpy(np.triu(rng.standard_normal((batch, k, k))))
        A = torch.from_numpy(rng.standard_normal((batch, m, n)))

        outputs = []
        for batched_trmm in (True, False):
            handle = Handle.create(
                'cpu', backend=TorchBlas(torch.device('cpu'), batched_trmm=batched_trmm)
            )
            Ab = StridedBatch.from_matrices(A)
            larfb_template(handle, side, 'transpose', 'forward', 'column_wise', m, n, k,
                           StridedBatch.from_matrices(V), 0,
                           StridedBatch.from_matrices(T), 0, Ab, 0)
            outputs.append(Ab.to_matrices(m, n).numpy())

        np.testing.assert_allclose(outputs[1], outputs[0], rtol=FP64.rtol, atol=FP64.atol)
