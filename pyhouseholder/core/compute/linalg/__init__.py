"""
Linear algebra building blocks for PyHouseholder.

All functions follow these conventions:
    - Device code works on Tiles, in place, on the caller's stream
    - CPU reference code uses NumPy/SciPy (LAPACK under the hood)
    - Errors are raised immediately with clear messages

Submodules:
    blas: TorchBlas numeric backend (gemm, trmm, scal)
    kernels: Element-wise kernels used by the reflector routines
    reference: LAPACK reference results via SciPy
"""

from pyhouseholder.core.compute.linalg.blas import TorchBlas
from pyhouseholder.core.compute.linalg.reference import (
    ReflectorResult,
    geqrf_cpu,
    orgqr_cpu,
    orthogonality_error,
    q_from_row_reflectors,
)

__all__ = [
    # Backend
    "TorchBlas",
    # CPU reference
    "ReflectorResult",
    "geqrf_cpu",
    "orgqr_cpu",
    "orthogonality_error",
    "q_from_row_reflectors",
]
