"""
Helpers shared by the reflector routines.
"""

from contextlib import contextmanager
from typing import Iterator

from pyhouseholder.core.compute.linalg import kernels
from pyhouseholder.core.matrix import Tile


@contextmanager
def unit_diagonal(saved: Tile, diag: Tile) -> Iterator[None]:
    """
    Temporarily set the 1x1 diag to 1 so a stored reflector reads as v.

    The previous value is kept in saved (a workspace tile) and written back
    on exit, including when the body raises.
    """
    kernels.set_one_diag(saved, diag)
    try:
        yield
    finally:
        kernels.restore_diag(saved, diag)
