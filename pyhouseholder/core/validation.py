"""
Input validation utilities for pyhouseholder.

These validators follow the "fail fast, fail loud" principle. They run at
the public boundary, before any workspace is acquired or any device memory
is written, and raise with clear error messages rather than silently
correcting inputs.

Design principles:
    - No silent coercion: tensors are used as given or rejected
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

from typing import Any, Sequence

import torch

from pyhouseholder.core.exceptions import (
    DimensionError,
    InvalidHandleError,
    InvalidPointerError,
    UnsupportedVariantError,
)
from pyhouseholder.core.matrix import BatchedMatrix


def check_handle(handle: Any) -> None:
    """
    Verify an execution context was supplied.

    Raises:
        InvalidHandleError: If handle is None or not a Handle
    """
    from pyhouseholder.core.handle import Handle

    if handle is None:
        raise InvalidHandleError("handle: required, got None")
    if not isinstance(handle, Handle):
        raise InvalidHandleError(
            f"handle: expected Handle, got {type(handle).__name__}"
        )


def check_tensor(tensor: Any, name: str) -> torch.Tensor:
    """
    Verify a buffer is a flat, contiguous floating-point tensor.

    Args:
        tensor: Buffer to validate
        name: Parameter name for error messages

    Returns:
        The tensor, unchanged

    Raises:
        InvalidPointerError: If tensor is missing or unusable as storage
    """
    if tensor is None:
        raise InvalidPointerError(f"{name}: required, got None", name=name)
    if not isinstance(tensor, torch.Tensor):
        raise InvalidPointerError(
            f"{name}: expected torch.Tensor, got {type(tensor).__name__}", name=name
        )
    if tensor.dtype not in (torch.float32, torch.float64):
        raise InvalidPointerError(
            f"{name}: dtype {tensor.dtype} not supported, expected float32 or float64",
            name=name,
        )
    if tensor.dim() != 1 or not tensor.is_contiguous():
        raise InvalidPointerError(
            f"{name}: expected flat contiguous column-major storage, "
            f"got shape {tuple(tensor.shape)}",
            name=name,
        )
    return tensor


def check_tensor_list(items: Any, batch_count: int, name: str) -> list[torch.Tensor]:
    """
    Verify an array of per-item buffers covers batch_count items.

    Returns:
        The first batch_count tensors

    Raises:
        InvalidPointerError: If items is missing, any item is unusable, or
            the items do not share one dtype
        DimensionError: If fewer than batch_count items are given
    """
    if items is None:
        raise InvalidPointerError(f"{name}: required, got None", name=name)
    if isinstance(items, torch.Tensor) or not isinstance(items, Sequence):
        raise InvalidPointerError(
            f"{name}: expected a sequence of tensors, got {type(items).__name__}",
            name=name,
        )
    if len(items) < batch_count:
        raise DimensionError(
            f"{name}: {len(items)} items given, batch_count={batch_count}",
            name='batch_count', value=batch_count, requirement=f"<= len({name})",
        )
    tensors = [check_tensor(t, f"{name}[{b}]") for b, t in enumerate(items[:batch_count])]
    dtypes = {t.dtype for t in tensors}
    if len(dtypes) > 1:
        raise InvalidPointerError(
            f"{name}: items mix dtypes {sorted(str(d) for d in dtypes)}", name=name
        )
    return tensors


def check_nonnegative(value: int, name: str) -> None:
    """
    Verify a size argument is >= 0.

    Raises:
        DimensionError: If value is negative
    """
    check_at_least(value, 0, name)


def check_at_least(value: int, minimum: int, name: str, bound: str | None = None) -> None:
    """
    Verify value >= minimum.

    Args:
        value: Value to check
        minimum: Smallest allowed value
        name: Parameter name for error messages
        bound: How minimum was derived (e.g. 'm'), for the message

    Raises:
        DimensionError: If value < minimum
    """
    if value < minimum:
        requirement = f">= {bound}" if bound else f">= {minimum}"
        detail = f" ({bound}={minimum})" if bound else ""
        raise DimensionError(
            f"{name}: must be {requirement}{detail}, got {value}",
            name=name, value=value, requirement=requirement,
        )


def check_at_most(value: int, maximum: int, name: str, bound: str) -> None:
    """
    Verify value <= maximum.

    Raises:
        DimensionError: If value > maximum
    """
    if value > maximum:
        raise DimensionError(
            f"{name}: must be <= {bound} ({bound}={maximum}), got {value}",
            name=name, value=value, requirement=f"<= {bound}",
        )


def check_option(value: Any, allowed: tuple[str, ...], name: str) -> None:
    """
    Verify an option string is one of the supported values.

    Raises:
        UnsupportedVariantError: If value is not in allowed
    """
    if value not in allowed:
        raise UnsupportedVariantError(
            f"{name}: unsupported value {value!r}, expected one of {allowed}",
            option=name, value=value,
        )


def check_device(tensors: Sequence[torch.Tensor], device: torch.device, name: str) -> None:
    """
    Verify every buffer lives on the handle's device.

    Raises:
        InvalidPointerError: If a tensor is on another device
    """
    for t in tensors:
        if t.device.type != device.type or (
            device.index is not None and t.device.index != device.index
        ):
            raise InvalidPointerError(
                f"{name}: tensor on {t.device}, handle on {device}", name=name
            )


def check_dtypes(matrices: Sequence[BatchedMatrix], names: tuple[str, ...]) -> None:
    """
    Verify all operands share one dtype.

    Raises:
        InvalidPointerError: If dtypes differ
    """
    dtypes = {(n, m.dtype) for n, m in zip(names, matrices) if m.dtype is not None}
    if len({d for _, d in dtypes}) > 1:
        details = ", ".join(f"{n}={d}" for n, d in sorted(dtypes, key=lambda x: x[0]))
        raise InvalidPointerError(f"Inconsistent dtypes: {details}", name=names[0])


def check_extent(matrix: BatchedMatrix, rows: int, cols: int, name: str) -> None:
    """
    Verify every item's storage holds a rows x cols block at ld.

    Raises:
        DimensionError: If some item's storage is too short
    """
    needed = footprint(rows, cols, matrix.ld)
    if needed == 0:
        return
    for b in range(matrix.batch_count):
        have = matrix.available(b)
        if have < needed:
            raise DimensionError(
                f"{name}: item {b} has {have} elements, a {rows}x{cols} block "
                f"with ld={matrix.ld} needs {needed}",
                name=name, value=have, requirement=f">= {needed} elements",
            )


def footprint(rows: int, cols: int, ld: int) -> int:
    """Elements spanned by a rows x cols column-major block at ld (0 if empty)."""
    if rows == 0 or cols == 0:
        return 0
    return (rows - 1) + (cols - 1) * ld + 1


def check_batch_stride(stride: int, extent: int, batch_count: int, name: str) -> None:
    """
    Verify consecutive batch items do not overlap.

    Items overwritten in place (and tau, which is negated while Q is built)
    must each own their storage, so with more than one item the stride has
    to cover the extent of one item.

    Args:
        stride: Distance between items in elements
        extent: Elements one item spans
        batch_count: Number of items
        name: Parameter name for error messages

    Raises:
        DimensionError: If items would share storage
    """
    if batch_count > 1 and extent > 0 and stride < extent:
        raise DimensionError(
            f"{name}: must be >= {extent} so that {batch_count} items do not "
            f"overlap, got {stride}",
            name=name, value=stride, requirement=f">= {extent}",
        )
