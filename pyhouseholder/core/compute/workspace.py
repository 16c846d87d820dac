"""
Scoped device workspace.

Every transient buffer an algorithm needs is acquired through workspace(),
which accounts the bytes on the Handle and releases them when the with
block exits, whether by return or by exception.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, TYPE_CHECKING
import logging

import torch

from pyhouseholder.core.exceptions import WorkspaceAllocationError
from pyhouseholder.core.matrix import StridedBatch

if TYPE_CHECKING:
    from pyhouseholder.core.handle import Handle

logger = logging.getLogger(__name__)


@contextmanager
def workspace(
    handle: Handle,
    rows: int,
    cols: int,
    batch_count: int,
    dtype: torch.dtype,
) -> Iterator[StridedBatch]:
    """
    Acquire a rows x cols buffer per batch item.

    Allocation is synchronous on the handle's device. The buffer content is
    uninitialized.

    Args:
        handle: Execution context owning the accounting
        rows: Rows per item (also the leading dimension)
        cols: Columns per item
        batch_count: Number of items
        dtype: Element type

    Yields:
        StridedBatch over the buffer, ld = rows, stride = rows * cols

    Raises:
        WorkspaceAllocationError: If the device cannot satisfy the request
    """
    numel = rows * cols * batch_count
    nbytes = numel * torch.empty((), dtype=dtype).element_size()
    try:
        data = torch.empty(numel, dtype=dtype, device=handle.device)
    except RuntimeError as e:
        raise WorkspaceAllocationError(
            f"Could not allocate {nbytes} bytes of workspace on {handle.device}: {e}",
            nbytes=nbytes,
            device=str(handle.device),
        ) from e

    handle._acquire(nbytes)
    logger.debug("workspace acquired: %d x %d x %d (%d bytes) on %s",
                 rows, cols, batch_count, nbytes, handle.device)
    try:
        yield StridedBatch(data, ld=max(rows, 1), stride=rows * cols, batch_count=batch_count)
    finally:
        handle._release(nbytes)
        logger.debug("workspace released: %d bytes", nbytes)
