"""
Triangular factor of a block reflector.

For k reflectors H(i) = I - tau[i] v_i v_i' composed forward,

    H(0) H(1) ... H(k-1) = I - V T V'

with T k x k upper triangular. Column i of T follows the recurrence

    T[0:i, i] = -tau[i] * T[0:i, 0:i] @ (V[:, 0:i]' @ v_i),   T[i, i] = tau[i]

V is read with its implicit unit diagonal; whatever is stored on and above
(column-wise) or below (row-wise) the diagonal is ignored.
"""

import torch

from pyhouseholder.core.exceptions import UnsupportedVariantError
from pyhouseholder.core.matrix import Tile, batched_parts
from pyhouseholder.core.options import Direction, Storage


def _unit_generators(v: torch.Tensor, storev: Storage) -> torch.Tensor:
    """Dense (..., n, k) reflector matrix with explicit unit diagonal."""
    if storev == 'column_wise':
        n, k = v.shape[-2], v.shape[-1]
        return torch.tril(v, -1) + torch.eye(n, k, dtype=v.dtype, device=v.device)
    k, n = v.shape[-2], v.shape[-1]
    unit = torch.triu(v, 1) + torch.eye(k, n, dtype=v.dtype, device=v.device)
    return unit.transpose(-1, -2)


def larft_template(
    handle,
    direct: Direction,
    storev: Storage,
    n: int,
    k: int,
    V: Tile,
    tau: Tile,
    T: Tile,
) -> None:
    """
    Build T for k reflectors of order n.

    Args:
        handle: Execution context
        direct: Only 'forward' is supported
        storev: 'column_wise' (V is n x k) or 'row_wise' (V is k x n)
        n: Order of the block reflector
        k: Number of reflectors
        V: Generator tile
        tau: k x 1 tile of scalars
        T: k x k output tile

    Raises:
        UnsupportedVariantError: For direct='backward'
    """
    if direct == 'backward':
        raise UnsupportedVariantError(
            "Backward composition of reflectors is not implemented",
            option='direct', value=direct,
        )
    if n == 0 or k == 0 or T.batch_count == 0:
        return

    for v, t_vec, f in batched_parts(V, tau, T):
        gram = _unit_generators(v, storev)
        gram = gram.transpose(-1, -2) @ gram
        f.zero_()
        for i in range(k):
            ti = t_vec[..., i:i + 1, :]
            col = -ti * gram[..., :i, i:i + 1]
            f[..., :i, i:i + 1] = f[..., :i, :i] @ col
            f[..., i:i + 1, i:i + 1] = ti
