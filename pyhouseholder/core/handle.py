"""
Execution context.

A Handle binds together everything a call needs besides its operands:
the device, the stream work is issued on, the numeric backend and the
blocking configuration. Every public entry point takes a Handle first,
mirroring the way device libraries thread a context through their API.
"""

from __future__ import annotations

from contextlib import nullcontext
from typing import ContextManager
import logging
import warnings

import torch

from pyhouseholder.core.compute.device import (
    DeviceChoice,
    DeviceInfo,
    get_cpu_info,
    select_device,
)
from pyhouseholder.core.compute.linalg.blas import TorchBlas
from pyhouseholder.core.config import BlockingConfig
from pyhouseholder.core.exceptions import UnsupportedVariantError
from pyhouseholder.core.protocols import NumericBackend

logger = logging.getLogger(__name__)


class Handle:
    """
    Device, stream, backend and tuning for a sequence of calls.

    Construct with Handle.create(); the constructor is for callers that
    already hold a DeviceInfo and stream.

    Attributes:
        device_info: The selected device
        device: torch.device work runs on
        stream: CUDA stream work is issued on, None on CPU/MPS
        backend: NumericBackend used for gemm/trmm/scal
        config: BlockingConfig passed to the blocked algorithms
    """

    def __init__(
        self,
        device_info: DeviceInfo,
        *,
        stream: 'torch.cuda.Stream | None' = None,
        backend: NumericBackend | None = None,
        config: BlockingConfig | None = None,
    ):
        self.device_info = device_info
        self.device = device_info.torch_device()
        self.stream = stream
        self.backend = backend if backend is not None else TorchBlas(self.device)
        self.config = config if config is not None else BlockingConfig.from_env()
        self._workspace_in_use = 0
        self._workspace_peak = 0

    @classmethod
    def create(
        cls,
        device: DeviceChoice = 'auto',
        *,
        backend: NumericBackend | None = None,
        config: BlockingConfig | None = None,
        stream: 'torch.cuda.Stream | None' = None,
    ) -> Handle:
        """
        Create a handle on the preferred device.

        On CUDA, work goes to ``stream`` if given, else to the stream that is
        current when the handle is created.

        Args:
            device: 'auto', 'cpu', 'gpu', 'cuda' or 'mps'
            backend: NumericBackend override (default TorchBlas)
            config: Blocking configuration (default from environment)
            stream: CUDA stream override

        Raises:
            RuntimeError: If a GPU was explicitly requested but is unavailable
        """
        try:
            info = select_device(device)
        except RuntimeError:
            if device != 'auto':
                raise
            # only reachable when PYHOUSEHOLDER_DEVICE asks for a missing GPU
            warnings.warn("Requested GPU is not available, using CPU")
            info = get_cpu_info()

        if info.device_type == 'cuda' and stream is None:
            stream = torch.cuda.current_stream(info.torch_device())

        logger.debug("handle created on %s", info)
        return cls(info, stream=stream, backend=backend, config=config)

    def __repr__(self) -> str:
        return (f"Handle(device={self.device}, backend={self.backend.name}, "
                f"config={self.config})")

    def stream_context(self) -> ContextManager:
        """Context in which device work is enqueued on this handle's stream."""
        if self.stream is not None:
            return torch.cuda.stream(self.stream)
        return nullcontext()

    def synchronize(self) -> None:
        """Block until all work issued through this handle has completed."""
        if self.stream is not None:
            self.stream.synchronize()
        elif self.device.type == 'mps':
            torch.mps.synchronize()

    def check_dtype(self, dtype: torch.dtype) -> None:
        """
        Raise if the device cannot compute in dtype.

        Raises:
            UnsupportedVariantError: float64 on MPS
        """
        if dtype == torch.float64 and not self.device_info.supports_fp64:
            raise UnsupportedVariantError(
                f"{self.device_info.name} does not support float64. "
                f"Use float32 tensors or a CPU/CUDA handle.",
                option='dtype',
                value=dtype,
            )

    @property
    def workspace_bytes_in_use(self) -> int:
        """Bytes of workspace currently held by in-flight calls."""
        return self._workspace_in_use

    @property
    def workspace_peak_bytes(self) -> int:
        """Largest workspace footprint seen on this handle."""
        return self._workspace_peak

    def _acquire(self, nbytes: int) -> None:
        self._workspace_in_use += nbytes
        self._workspace_peak = max(self._workspace_peak, self._workspace_in_use)

    def _release(self, nbytes: int) -> None:
        self._workspace_in_use -= nbytes
