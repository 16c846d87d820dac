"""
Core infrastructure for PyHouseholder.

Shared abstractions used by every reflector routine.

Key components:
    handle: Handle execution context (device, stream, backend, config)
    matrix: StridedBatch / PointerBatch column-major views and Tiles
    config: BlockingConfig switch and block sizes
    protocols: NumericBackend protocol
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy and Status
    validation: Boundary validators
    compute: Device detection, timing, workspace, kernels, backend
"""

from pyhouseholder.core.config import BlockingConfig
from pyhouseholder.core.exceptions import (
    PyHouseholderError,
    InvalidHandleError,
    ValidationError,
    DimensionError,
    InvalidPointerError,
    UnsupportedVariantError,
    InternalError,
    WorkspaceAllocationError,
    Status,
    status_of,
)
from pyhouseholder.core.handle import Handle
from pyhouseholder.core.matrix import BatchedMatrix, PointerBatch, StridedBatch, Tile
from pyhouseholder.core.protocols import NumericBackend
from pyhouseholder.core.result import Result

__all__ = [
    # Context
    "Handle",
    "BlockingConfig",
    # Storage
    "BatchedMatrix",
    "StridedBatch",
    "PointerBatch",
    "Tile",
    # Protocols
    "NumericBackend",
    # Result
    "Result",
    # Exceptions
    "PyHouseholderError",
    "InvalidHandleError",
    "ValidationError",
    "DimensionError",
    "InvalidPointerError",
    "UnsupportedVariantError",
    "InternalError",
    "WorkspaceAllocationError",
    "Status",
    "status_of",
]
