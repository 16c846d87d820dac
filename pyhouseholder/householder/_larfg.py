"""
Householder reflector generation.

Given alpha and an (n-1)-vector x, finds tau and v with v[0] = 1 such that

    (I - tau * v * v') [alpha; x] = [beta; 0]

beta overwrites alpha and v[1:] overwrites x. When x is zero the reflector
is the identity (tau = 0) and alpha is kept. Computed for the whole batch
at once; no per-item branching on the host.
"""

import torch

from pyhouseholder.core.matrix import Tile, batched_parts


def larfg_template(handle, n: int, alpha: Tile, x: Tile, tau: Tile) -> None:
    """
    Generate one reflector per batch item.

    Args:
        handle: Execution context
        n: Order of the reflector (1 + length of x)
        alpha: 1x1 tile, overwritten by beta
        x: (n-1) vector tile, overwritten by v[1:]
        tau: 1x1 tile receiving the scalar
    """
    if n == 0 or tau.batch_count == 0:
        return
    if n == 1:
        for t in tau.parts():
            t.zero_()
        return

    for a, xv, t in batched_parts(alpha, x, tau):
        xnorm = torch.linalg.vector_norm(xv, dim=(-2, -1), keepdim=True)
        beta = -torch.copysign(torch.hypot(a, xnorm), a)
        reflect = xnorm != 0
        one = torch.ones_like(a)

        t.copy_(torch.where(reflect, (beta - a) / torch.where(reflect, beta, one),
                            torch.zeros_like(a)))
        xv.mul_(torch.where(reflect, 1 / torch.where(reflect, a - beta, one), one))
        a.copy_(torch.where(reflect, beta, a))
