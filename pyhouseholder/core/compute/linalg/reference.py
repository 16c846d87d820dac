"""
CPU reference implementations.

LAPACK (via SciPy) results for the same reflector layouts the device
routines produce and consume. Used to validate the device path and as a
known-good source of reflectors in tests.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.linalg.lapack import get_lapack_funcs


@dataclass(frozen=True)
class ReflectorResult:
    """
    Compact Householder representation of a factorization.

    Attributes:
        packed: Factor on/above (QR) or on/below (LQ) the diagonal,
                reflector vectors in the remaining triangle
        tau: Reflector scalars, min(m, n) entries
    """
    packed: NDArray[np.floating[Any]]
    tau: NDArray[np.floating[Any]]


def _check_info(routine: str, info: int) -> None:
    if info < 0:
        raise ValueError(f"{routine}: illegal value in argument {-info}")


def geqrf_cpu(X: NDArray[np.floating[Any]]) -> ReflectorResult:
    """
    QR factorization into reflectors using LAPACK geqrf.

    Args:
        X: Matrix to factor (m x n), float32 or float64

    Returns:
        ReflectorResult with R above the diagonal and column reflectors below
    """
    X = np.asarray(X)
    geqrf, = get_lapack_funcs(('geqrf',), (X,))
    qr, tau, _work, info = geqrf(X)
    _check_info('geqrf', info)
    return ReflectorResult(packed=qr, tau=tau)


def orgqr_cpu(
    packed: NDArray[np.floating[Any]],
    tau: NDArray[np.floating[Any]],
) -> NDArray[np.floating[Any]]:
    """
    First n columns of Q from column reflectors using LAPACK orgqr.

    Args:
        packed: m x n matrix whose first len(tau) columns hold reflectors
        tau: Reflector scalars, len(tau) <= n

    Returns:
        Q, m x n with orthonormal columns
    """
    packed = np.asarray(packed)
    orgqr, = get_lapack_funcs(('orgqr',), (packed,))
    q, _work, info = orgqr(packed, tau)
    _check_info('orgqr', info)
    return q


def q_from_row_reflectors(
    packed: NDArray[np.floating[Any]],
    tau: NDArray[np.floating[Any]],
    order: int,
) -> NDArray[np.floating[Any]]:
    """
    Explicit Q = H(k-1) ... H(1) H(0) from reflectors stored in rows.

    Row i of packed holds reflector i to the right of column i with its
    unit leading entry implied, as left by an LQ factorization.

    Args:
        packed: k x order (or wider) matrix of reflector rows
        tau: k reflector scalars
        order: Size of Q

    Returns:
        Q, order x order
    """
    Q = np.eye(order, dtype=packed.dtype)
    for i in range(len(tau)):
        v = np.zeros(order, dtype=packed.dtype)
        v[i] = 1
        v[i + 1:] = packed[i, i + 1:order]
        H = np.eye(order, dtype=packed.dtype) - tau[i] * np.outer(v, v)
        Q = H @ Q
    return Q


def orthogonality_error(Q: NDArray[np.floating[Any]]) -> float:
    """max |Q'Q - I| over the columns of Q."""
    Q = np.asarray(Q)
    gram = Q.T @ Q
    return float(np.max(np.abs(gram - np.eye(gram.shape[0], dtype=Q.dtype)), initial=0.0))
