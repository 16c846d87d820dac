"""
Exception hierarchy and call status for pyhouseholder.

All exceptions inherit from PyHouseholderError to allow catching any
library-specific error. Every exception class carries a ``status`` drawn
from the closed Status set, so callers that prefer status codes over
exceptions can use status_of().

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from enum import Enum
from typing import Any, Callable


class Status(str, Enum):
    """Outcome of a public entry point."""
    SUCCESS = 'success'
    INVALID_HANDLE = 'invalid_handle'
    INVALID_POINTER = 'invalid_pointer'
    INVALID_SIZE = 'invalid_size'
    NOT_IMPLEMENTED = 'not_implemented'
    INTERNAL_ERROR = 'internal_error'


class PyHouseholderError(Exception):
    """Base exception for all pyhouseholder errors."""
    status: Status = Status.INTERNAL_ERROR


class InvalidHandleError(PyHouseholderError):
    """
    No usable execution context was supplied.

    Raised when the handle argument is missing or is not a Handle.
    """
    status = Status.INVALID_HANDLE


class ValidationError(PyHouseholderError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks. Nothing has
    been written to device memory when this is raised.
    """
    status = Status.INVALID_SIZE


class DimensionError(ValidationError):
    """
    A dimension, leading dimension, stride or batch count is invalid.

    Attributes:
        name: Parameter name (e.g. 'lda', 'k', 'batch_count')
        value: The rejected value
        requirement: Human-readable constraint that was violated
    """

    def __init__(
        self,
        message: str,
        name: str | None = None,
        value: int | None = None,
        requirement: str | None = None
    ):
        super().__init__(message)
        self.name = name
        self.value = value
        self.requirement = requirement


class InvalidPointerError(ValidationError):
    """
    A required buffer is absent or unusable.

    Covers missing tensors as well as tensors of the wrong kind
    (non-floating dtype, not flat, on a different device than the handle).

    Attributes:
        name: Parameter name of the offending buffer
    """
    status = Status.INVALID_POINTER

    def __init__(self, message: str, name: str | None = None):
        super().__init__(message)
        self.name = name


class UnsupportedVariantError(PyHouseholderError):
    """
    The requested variant of an operation is not implemented.

    Raised for backward-direction reflector composition, unknown option
    strings, and precision/device combinations the device cannot run.

    Attributes:
        option: Option name (e.g. 'direct', 'side')
        value: The requested value
    """
    status = Status.NOT_IMPLEMENTED

    def __init__(self, message: str, option: str | None = None, value: Any = None):
        super().__init__(message)
        self.option = option
        self.value = value


class InternalError(PyHouseholderError):
    """
    Device-side computation failed after validation passed.

    The original backend exception is chained as __cause__.
    """
    status = Status.INTERNAL_ERROR


class WorkspaceAllocationError(InternalError):
    """
    Workspace could not be acquired on the device.

    Attributes:
        nbytes: Size of the failed request in bytes
        device: Device the request was made on
    """

    def __init__(self, message: str, nbytes: int | None = None, device: str | None = None):
        super().__init__(message)
        self.nbytes = nbytes
        self.device = device


def status_of(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Status:
    """
    Run an entry point and report its outcome as a Status.

    Only pyhouseholder errors are translated; anything else propagates.

    Example:
        >>> status_of(orgqr, handle, m, n, k, A, lda, tau)
        <Status.SUCCESS: 'success'>
    """
    try:
        func(*args, **kwargs)
    except PyHouseholderError as e:
        return e.status
    return Status.SUCCESS
