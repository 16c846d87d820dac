"""
Tests for the QR (geqr2, geqrf) and LQ (gelq2) factorizations.

Validates:
    - Reflectors and tau match LAPACK geqrf
    - Blocked geqrf matches unblocked geqr2
    - geqrf + orgqr reproduces A; gelq2 + orml2 reproduces A
    - Zero columns give identity reflectors
"""

import numpy as np
import pytest
import torch

from pyhouseholder.core.compute.linalg.reference import geqrf_cpu
from pyhouseholder.core.compute.tolerances import FP64, select_tolerance
from pyhouseholder.core.matrix import PointerBatch
from pyhouseholder.householder import (
    gelq2,
    gelq2_strided_batched,
    geqr2,
    geqrf,
    geqrf_batched,
    geqrf_strided_batched,
    orgqr,
    orml2,
)


def _zeros(n, dtype=torch.float64):
    return torch.zeros(n, dtype=dtype)


# ═══════════════════════════════════════════════════════════════════════
# QR
# ═══════════════════════════════════════════════════════════════════════


class TestGeqr2:

    @pytest.mark.parametrize("m, n", [(6, 4), (4, 6), (5, 5), (7, 1), (1, 3)])
    def test_matches_lapack(self, handle, rng, column_major, m, n):
        X = rng.standard_normal((m, n))
        A = column_major(X)
        tau = _zeros(min(m, n))

        result = geqr2(handle, m, n, A.data, m, tau)

        ref = geqrf_cpu(X)
        np.testing.assert_allclose(A.to_matrices(m, n)[0].numpy(), ref.packed,
                                   rtol=FP64.rtol, atol=FP64.atol)
        np.testing.assert_allclose(tau.numpy(), ref.tau, rtol=FP64.rtol, atol=FP64.atol)
        assert result.info['method'] == 'unblocked'

    def test_zero_column_gives_identity_reflector(self, handle, rng, column_major):
        X = rng.standard_normal((4, 3))
        X[1:, 0] = 0.0
        alpha = X[0, 0]
        A = column_major(X)
        tau = _zeros(3)
        geqr2(handle, 4, 3, A.data, 4, tau)
        assert tau[0].item() == 0.0
        assert A.to_matrices(4, 3)[0, 0, 0].item() == alpha

    @pytest.mark.parametrize("dtype", [torch.float32, torch.float64])
    def test_precision(self, handle, rng, column_major, dtype):
        X = rng.standard_normal((6, 4))
        tol = select_tolerance(dtype)
        A = column_major(X, dtype=dtype)
        tau = _zeros(4, dtype)
        geqr2(handle, 6, 4, A.data, 6, tau)
        ref = geqrf_cpu(X)
        np.testing.assert_allclose(A.to_matrices(6, 4)[0].numpy(), ref.packed,
                                   rtol=tol.rtol, atol=tol.atol)


class TestGeqrf:

    @pytest.mark.parametrize("m, n, blocks", [(14, 10, 2), (10, 14, 2), (9, 9, 2), (8, 5, 1)])
    def test_blocked_matches_lapack(self, small_handle, rng, column_major, m, n, blocks):
        X = rng.standard_normal((m, n))
        A = column_major(X)
        tau = _zeros(min(m, n))

        result = geqrf(small_handle, m, n, A.data, m, tau)

        ref = geqrf_cpu(X)
        assert result.info['method'] == 'blocked'
        assert result.info['blocks'] == blocks
        np.testing.assert_allclose(A.to_matrices(m, n)[0].numpy(), ref.packed,
                                   rtol=FP64.rtol, atol=FP64.atol)
        np.testing.assert_allclose(tau.numpy(), ref.tau, rtol=FP64.rtol, atol=FP64.atol)

    def test_small_problem_is_unblocked(self, small_handle, rng, column_major):
        A = column_major(rng.standard_normal((8, 4)))
        result = geqrf(small_handle, 8, 4, A.data, 8, _zeros(4))
        assert result.info['method'] == 'unblocked'

    def test_q_times_r_reproduces_a(self, small_handle, rng, column_major):
        m, n = 13, 9
        X = rng.standard_normal((m, n))
        A = column_major(X)
        tau = _zeros(n)

        geqrf(small_handle, m, n, A.data, m, tau)
        R = np.triu(A.to_matrices(m, n)[0].numpy()[:n])
        orgqr(small_handle, m, n, n, A.data, m, tau)
        Q = A.to_matrices(m, n)[0].numpy()

        np.testing.assert_allclose(Q @ R, X, rtol=1e-10, atol=1e-10)

    def test_strided_batch(self, small_handle, rng, column_major):
        m, n, batch = 10, 7, 3
        X = rng.standard_normal((batch, m, n))
        A = column_major(X)
        tau = _zeros(batch * n)
        geqrf_strided_batched(small_handle, m, n, A.data, m, m * n, tau, n, batch)
        for b in range(batch):
            ref = geqrf_cpu(X[b])
            np.testing.assert_allclose(A.to_matrices(m, n)[b].numpy(), ref.packed,
                                       rtol=FP64.rtol, atol=FP64.atol)
            np.testing.assert_allclose(tau[b * n:(b + 1) * n].numpy(), ref.tau,
                                       rtol=FP64.rtol, atol=FP64.atol)

    def test_pointer_matches_strided(self, small_handle, rng, column_major):
        m, n, batch = 9, 8, 2
        X = rng.standard_normal((batch, m, n))
        strided = column_major(X)
        pointers = PointerBatch.from_matrices(torch.from_numpy(X))
        tau_s, tau_p = _zeros(batch * n), _zeros(batch * n)

        geqrf_strided_batched(small_handle, m, n, strided.data, m, m * n, tau_s, n, batch)
        geqrf_batched(small_handle, m, n, pointers.items, m, tau_p, n, batch)

        np.testing.assert_allclose(pointers.to_matrices(m, n).numpy(),
                                   strided.to_matrices(m, n).numpy(),
                                   rtol=FP64.rtol, atol=FP64.atol)
        np.testing.assert_allclose(tau_p.numpy(), tau_s.numpy(),
                                   rtol=FP64.rtol, atol=FP64.atol)

    def test_workspace_released(self, small_handle, rng, column_major):
        A = column_major(rng.standard_normal((12, 12)))
        geqrf(small_handle, 12, 12, A.data, 12, _zeros(12))
        assert small_handle.workspace_bytes_in_use == 0


# ═══════════════════════════════════════════════════════════════════════
# LQ
# ═══════════════════════════════════════════════════════════════════════


class TestGelq2:

    @pytest.mark.parametrize("m, n", [(4, 6), (6, 4), (5, 5)])
    def test_is_qr_of_transpose(self, handle, rng, column_major, m, n):
        X = rng.standard_normal((m, n))
        A = column_major(X)
        tau = _zeros(min(m, n))

        gelq2(handle, m, n, A.data, m, tau)

        ref = geqrf_cpu(X.T)
        np.testing.assert_allclose(A.to_matrices(m, n)[0].numpy(), ref.packed.T,
                                   rtol=FP64.rtol, atol=FP64.atol)
        np.testing.assert_allclose(tau.numpy(), ref.tau, rtol=FP64.rtol, atol=FP64.atol)

    def test_l_times_q_reproduces_a(self, handle, rng, column_major):
        m, n = 4, 7
        X = rng.standard_normal((m, n))
        A = column_major(X)
        tau = _zeros(m)
        gelq2(handle, m, n, A.data, m, tau)

        # C = [L 0], then C := C Q
        C = np.zeros((m, n))
        C[:, :m] = np.tril(A.to_matrices(m, n)[0].numpy()[:, :m])
        C_b = column_major(C)
        orml2(handle, 'right', 'none', m, n, m, A.data, m, tau, C_b.data, m)

        np.testing.assert_allclose(C_b.to_matrices(m, n)[0].numpy(), X,
                                   rtol=1e-10, atol=1e-10)

    def test_strided_batch(self, handle, rng, column_major):
        m, n, batch = 3, 5, 2
        X = rng.standard_normal((batch, m, n))
        A = column_major(X)
        tau = _zeros(batch * m)
        gelq2_strided_batched(handle, m, n, A.data, m, m * n, tau, m, batch)
        for b in range(batch):
            ref = geqrf_cpu(X[b].T)
            np.testing.assert_allclose(A.to_matrices(m, n)[b].numpy(), ref.packed.T,
                                       rtol=FP64.rtol, atol=FP64.atol)
