"""
Householder reflector routines.

Public API:
    org2r / orgqr (+ _batched, _strided_batched): build Q from column reflectors
    larfb: apply a block reflector
    orml2 (+ _strided_batched): apply row reflectors to a matrix
    geqr2 / geqrf (+ _batched, _strided_batched): QR factorization
    gelq2 (+ _strided_batched): LQ factorization

Every entry point takes a Handle first, validates before touching device
memory and returns a Result describing the in-place update.

Example:
    >>> from pyhouseholder import Handle
    >>> from pyhouseholder.householder import geqrf, orgqr
    >>> handle = Handle.create('auto')
    >>> geqrf(handle, m, n, A, m, tau)
    >>> result = orgqr(handle, m, n, n, A, m, tau)
    >>> result.info['method']
    'blocked'
"""

from pyhouseholder.householder.solvers import (
    org2r,
    org2r_batched,
    org2r_strided_batched,
    orgqr,
    orgqr_batched,
    orgqr_strided_batched,
    larfb,
    orml2,
    orml2_strided_batched,
    geqr2,
    geqrf,
    geqrf_batched,
    geqrf_strided_batched,
    gelq2,
    gelq2_strided_batched,
)

__all__ = [
    "org2r",
    "org2r_batched",
    "org2r_strided_batched",
    "orgqr",
    "orgqr_batched",
    "orgqr_strided_batched",
    "larfb",
    "orml2",
    "orml2_strided_batched",
    "geqr2",
    "geqrf",
    "geqrf_batched",
    "geqrf_strided_batched",
    "gelq2",
    "gelq2_strided_batched",
]
