"""
Element-wise device kernels used by the reflector routines.

Each kernel works on Tiles and touches only the elements it names; on a
strided batch it is one vectorized op over the batch dimension, on a
pointer batch one op per item.
"""

import torch

from pyhouseholder.core.matrix import Tile, batched_parts


def init_ident_col(A: Tile, k: int) -> None:
    """
    Prepare A for reconstruction from k reflectors.

    Diagonal := 1; strictly upper part := 0; columns j >= k := 0 below the
    diagonal as well. Entries below the diagonal of columns j < k (the
    reflector vectors) are left alone.
    """
    for part in A.parts():
        m, n = part.shape[-2], part.shape[-1]
        rows = torch.arange(m, device=part.device).unsqueeze(1)
        cols = torch.arange(n, device=part.device).unsqueeze(0)
        part.masked_fill_((cols > rows) | (cols >= k), 0)
        part.diagonal(dim1=-2, dim2=-1).fill_(1)


def set_zero(A: Tile) -> None:
    """A := 0."""
    if A.empty:
        return
    for part in A.parts():
        part.zero_()


def set_diag_negate_tau(diag: Tile, tau: Tile) -> None:
    """
    diag := 1 - tau, then tau := -tau.

    diag and tau are 1x1 tiles: the diagonal element of the current
    reflector column and its scalar.
    """
    for d, t in batched_parts(diag, tau):
        d.copy_(1 - t)
        t.neg_()


def negate(x: Tile) -> None:
    """x := -x (restores tau signs after reconstruction)."""
    if x.empty:
        return
    for part in x.parts():
        part.neg_()


def set_one_diag(saved: Tile, diag: Tile) -> None:
    """Save the 1x1 diag into saved and overwrite it with 1."""
    for s, d in batched_parts(saved, diag):
        s.copy_(d)
        d.fill_(1)


def restore_diag(saved: Tile, diag: Tile) -> None:
    """Put back a diagonal element saved by set_one_diag()."""
    for s, d in batched_parts(saved, diag):
        d.copy_(s)


def copy_block(src: Tile, dst: Tile) -> None:
    """dst := src."""
    if dst.empty:
        return
    for s, d in batched_parts(src, dst):
        d.copy_(s)


def subtract_block(dst: Tile, src: Tile) -> None:
    """dst := dst - src."""
    if dst.empty:
        return
    for d, s in batched_parts(dst, src):
        d.sub_(s)
