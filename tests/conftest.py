"""
pytest configuration and shared fixtures.
"""

import numpy as np
import pytest
import torch

from pyhouseholder.core.compute.linalg.blas import TorchBlas
from pyhouseholder.core.compute.linalg.reference import geqrf_cpu
from pyhouseholder.core.config import BlockingConfig
from pyhouseholder.core.handle import Handle
from pyhouseholder.core.matrix import StridedBatch


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def handle():
    """CPU handle with the default blocking configuration."""
    return Handle.create('cpu', config=BlockingConfig())


@pytest.fixture
def small_handle():
    """CPU handle that blocks above 4 reflectors, in panels of 3."""
    return Handle.create('cpu', config=BlockingConfig(switch_size=4, block_size=3))


@pytest.fixture
def column_major():
    """Pack a (rows, cols) or (batch, rows, cols) array into a StridedBatch."""
    def pack(array, dtype=torch.float64):
        return StridedBatch.from_matrices(torch.as_tensor(np.asarray(array), dtype=dtype))
    return pack


class RecordingBlas:
    """
    TorchBlas wrapper that records every call and can fail on demand.

    Args:
        fail_after: Raise RuntimeError on the call after this many calls
        batched_trmm: Passed through to the wrapped TorchBlas
    """

    def __init__(self, fail_after=None, batched_trmm=True):
        self._inner = TorchBlas(torch.device('cpu'), batched_trmm=batched_trmm)
        self.fail_after = fail_after
        self.calls = []

    @property
    def name(self):
        return 'recording_cpu'

    def supports(self, capability):
        return self._inner.supports(capability)

    def _record(self, op):
        if self.fail_after is not None and len(self.calls) >= self.fail_after:
            raise RuntimeError("simulated device fault")
        self.calls.append(op)

    def gemm(self, *args):
        self._record('gemm')
        self._inner.gemm(*args)

    def trmm(self, *args):
        self._record('trmm')
        self._inner.trmm(*args)

    def scal(self, *args):
        self._record('scal')
        self._inner.scal(*args)


@pytest.fixture
def recording_handle():
    """Factory for a CPU handle backed by a RecordingBlas; returns (handle, blas)."""
    def make(fail_after=None, batched_trmm=True, config=None):
        blas = RecordingBlas(fail_after=fail_after, batched_trmm=batched_trmm)
        config = config or BlockingConfig(switch_size=4, block_size=3)
        return Handle.create('cpu', backend=blas, config=config), blas
    return make


@pytest.fixture
def reflectors(rng):
    """Column reflectors of a random m x n matrix, from LAPACK geqrf."""
    def make(m, n, batch=None):
        if batch is None:
            return geqrf_cpu(rng.standard_normal((m, n)))
        results = [geqrf_cpu(rng.standard_normal((m, n))) for _ in range(batch)]
        return (np.stack([r.packed for r in results]),
                np.stack([r.tau for r in results]))
    return make
