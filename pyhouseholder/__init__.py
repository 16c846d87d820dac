"""
PyHouseholder: GPU-accelerated Householder reflector primitives for Python.

Batched reconstruction of orthogonal factors from compact Householder
reflectors, block reflector application and the QR/LQ factorizations that
produce the reflectors, on PyTorch tensors (CUDA, MPS or CPU).

Submodules:
    core: Execution handle, batched matrix views, workspace, errors
    householder: Public entry points (orgqr, larfb, orml2, geqrf, ...)
"""

__version__ = "0.1.0"

from pyhouseholder.core.exceptions import Status, status_of
from pyhouseholder.core.handle import Handle
from pyhouseholder.core.matrix import PointerBatch, StridedBatch
from pyhouseholder import householder

__all__ = [
    "__version__",
    "Handle",
    "Status",
    "status_of",
    "StridedBatch",
    "PointerBatch",
    "householder",
]
