"""
Tests for the element-wise kernels.

Each kernel is run on a strided batch (one batched op) and on a pointer
batch (one op per item); both must give the same storage contents.
"""

import numpy as np
import pytest
import torch

from pyhouseholder.core.compute.linalg import kernels
from pyhouseholder.core.matrix import PointerBatch, StridedBatch, idx2d

LAYOUTS = [StridedBatch.from_matrices, PointerBatch.from_matrices]


@pytest.fixture(params=LAYOUTS, ids=['strided', 'pointer'])
def pack(request):
    return request.param


def _mats(rng, batch=2, rows=5, cols=4):
    return torch.from_numpy(rng.standard_normal((batch, rows, cols)))


class TestInitIdentCol:

    def test_pattern(self, rng, pack):
        mats = _mats(rng)
        A = pack(mats)
        kernels.init_ident_col(A.tile(0, 5, 4), k=2)
        out = A.to_matrices(5, 4).numpy()
        orig = mats.numpy()
        for b in range(2):
            for i in range(5):
                for j in range(4):
                    if i == j:
                        expected = 1.0
                    elif j > i or j >= 2:
                        expected = 0.0
                    else:
                        expected = orig[b, i, j]
                    assert out[b, i, j] == expected

    def test_k_zero_gives_identity_columns(self, rng, pack):
        A = pack(_mats(rng))
        kernels.init_ident_col(A.tile(0, 5, 4), k=0)
        np.testing.assert_array_equal(A.to_matrices(5, 4).numpy()[0], np.eye(5, 4))


class TestDiagonalKernels:

    def test_set_diag_negate_tau(self, rng, pack):
        A = pack(_mats(rng))
        tau = StridedBatch(torch.tensor([0.25, 1.5], dtype=torch.float64), 1, 1, 2)
        kernels.set_diag_negate_tau(A.tile(idx2d(1, 1, A.ld), 1, 1), tau.tile(0, 1, 1))
        out = A.to_matrices(5, 4).numpy()
        np.testing.assert_allclose(out[:, 1, 1], [0.75, -0.5])
        np.testing.assert_array_equal(tau.data.numpy(), [-0.25, -1.5])

    def test_set_one_and_restore(self, rng, pack):
        mats = _mats(rng)
        A = pack(mats)
        saved = StridedBatch(torch.zeros(2, dtype=torch.float64), 1, 1, 2)
        diag = A.tile(idx2d(2, 2, A.ld), 1, 1)

        kernels.set_one_diag(saved.tile(0, 1, 1), diag)
        assert np.all(A.to_matrices(5, 4).numpy()[:, 2, 2] == 1.0)
        np.testing.assert_array_equal(saved.data.numpy(), mats[:, 2, 2].numpy())

        kernels.restore_diag(saved.tile(0, 1, 1), diag)
        np.testing.assert_array_equal(A.to_matrices(5, 4).numpy(), mats.numpy())

    def test_negate(self):
        x = StridedBatch(torch.tensor([1.0, -2.0, 3.0, 4.0], dtype=torch.float64), 2, 2, 2)
        kernels.negate(x.vector(0, 2))
        np.testing.assert_array_equal(x.data.numpy(), [-1.0, 2.0, -3.0, -4.0])


class TestBlockKernels:

    def test_set_zero_sub_block(self, rng, pack):
        mats = _mats(rng)
        A = pack(mats)
        kernels.set_zero(A.tile(idx2d(0, 2, A.ld), 3, 2))
        out = A.to_matrices(5, 4).numpy()
        assert np.all(out[:, :3, 2:] == 0)
        np.testing.assert_array_equal(out[:, 3:, 2:], mats.numpy()[:, 3:, 2:])
        np.testing.assert_array_equal(out[:, :, :2], mats.numpy()[:, :, :2])

    def test_copy_and_subtract(self, rng, pack):
        src = pack(_mats(rng))
        dst = pack(torch.zeros(2, 5, 4, dtype=torch.float64))
        kernels.copy_block(src.tile(0, 5, 4), dst.tile(0, 5, 4))
        np.testing.assert_array_equal(dst.to_matrices(5, 4).numpy(), src.to_matrices(5, 4).numpy())
        kernels.subtract_block(dst.tile(0, 5, 4), src.tile(0, 5, 4))
        assert np.all(dst.to_matrices(5, 4).numpy() == 0)

    def test_empty_tiles_are_noops(self, rng, pack):
        mats = _mats(rng)
        A = pack(mats)
        kernels.set_zero(A.tile(0, 0, 4))
        kernels.negate(A.vector(0, 0))
        np.testing.assert_array_equal(A.to_matrices(5, 4).numpy(), mats.numpy())
