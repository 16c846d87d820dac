"""
Device discovery for Handle creation.

Maps a device preference (argument or PYHOUSEHOLDER_DEVICE) onto a
DeviceInfo and from there onto the torch.device the handle runs on.
"""

from dataclasses import dataclass
from typing import Literal
import logging
import os
import platform

logger = logging.getLogger(__name__)

# Environment override for 'auto' device selection
DEVICE_ENV_VAR = 'PYHOUSEHOLDER_DEVICE'

DeviceChoice = Literal['auto', 'cpu', 'gpu', 'cuda', 'mps']


@dataclass(frozen=True)
class DeviceInfo:
    """
    Information about a compute device.

    Attributes:
        device_type: Type of device ('cpu', 'cuda', 'mps')
        device_index: Device index (None for CPU)
        name: Human-readable device name
        memory_bytes: Total device memory in bytes (None if unknown)
        compute_capability: CUDA compute capability as (major, minor), None for non-CUDA
    """
    device_type: Literal['cpu', 'cuda', 'mps']
    device_index: int | None
    name: str
    memory_bytes: int | None
    compute_capability: tuple[int, int] | None

    def __str__(self) -> str:
        if self.device_type == 'cpu':
            return f"CPU ({self.name})"
        mem_str = ""
        if self.memory_bytes is not None:
            mem_gb = self.memory_bytes / (1024**3)
            mem_str = f", {mem_gb:.1f}GB"
        return f"{self.device_type.upper()}:{self.device_index} ({self.name}{mem_str})"

    @property
    def is_gpu(self) -> bool:
        """True if this is a GPU device."""
        return self.device_type in ('cuda', 'mps')

    @property
    def supports_fp64(self) -> bool:
        """MPS has no float64 support."""
        return self.device_type != 'mps'

    def torch_device(self) -> 'torch.device':
        """The torch.device this info describes."""
        import torch

        if self.device_type == 'cuda':
            return torch.device('cuda', self.device_index or 0)
        return torch.device(self.device_type)


def detect_gpu() -> DeviceInfo | None:
    """The current CUDA device if any, else MPS if present, else None."""
    import torch

    if torch.cuda.is_available():
        idx = torch.cuda.current_device()
        props = torch.cuda.get_device_properties(idx)
        return DeviceInfo(
            device_type='cuda',
            device_index=idx,
            name=props.name,
            memory_bytes=props.total_memory,
            compute_capability=(props.major, props.minor)
        )

    if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return DeviceInfo(
            device_type='mps',
            device_index=0,
            name='Apple Silicon GPU',
            memory_bytes=None,  # MPS doesn't expose memory info easily
            compute_capability=None
        )

    return None


def get_cpu_info() -> DeviceInfo:
    """DeviceInfo for the host CPU, named after its processor string."""
    processor = platform.processor()
    if not processor:
        processor = platform.machine() or "Unknown CPU"

    return DeviceInfo(
        device_type='cpu',
        device_index=None,
        name=processor,
        memory_bytes=None,
        compute_capability=None
    )


def select_device(prefer: DeviceChoice = 'auto') -> DeviceInfo:
    """
    Select compute device based on preference and availability.

    Args:
        prefer: Device preference
            - 'cpu': Always use CPU
            - 'gpu': Require a GPU, CUDA or MPS (raises if unavailable)
            - 'cuda' / 'mps': Require that specific GPU type
            - 'auto': Honour PYHOUSEHOLDER_DEVICE if set, else use GPU
              if available, else CPU

    Returns:
        DeviceInfo for selected device

    Raises:
        RuntimeError: If a GPU was requested but is not available
        ValueError: If prefer is not a known choice
    """
    if prefer == 'auto':
        env = os.environ.get(DEVICE_ENV_VAR, '').strip().lower()
        if env and env != 'auto':
            logger.debug("Device preference %r taken from %s", env, DEVICE_ENV_VAR)
            prefer = env  # type: ignore[assignment]

    if prefer == 'cpu':
        return get_cpu_info()

    if prefer not in ('auto', 'gpu', 'cuda', 'mps'):
        raise ValueError(
            f"Unknown device preference: {prefer!r}. "
            f"Use 'auto', 'cpu', 'gpu', 'cuda' or 'mps'."
        )

    gpu = detect_gpu()

    if prefer in ('gpu', 'cuda', 'mps'):
        if gpu is None or (prefer != 'gpu' and gpu.device_type != prefer):
            raise RuntimeError(
                f"{prefer.upper()} requested but not available. "
                "Ensure PyTorch is installed with CUDA/MPS support, "
                "or use device='cpu'."
            )
        return gpu

    # auto: prefer GPU if available
    return gpu if gpu is not None else get_cpu_info()
