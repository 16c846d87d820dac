"""
Shared compute infrastructure for PyHouseholder.

Hardware detection, timing, tolerances and scoped workspace. The numeric
backend and element-wise kernels live in the linalg subpackage.

Submodules:
    device: Hardware detection and device selection
    timing: Execution timing utilities
    tolerances: Precision tiers for comparing results
    workspace: Scoped device buffers accounted on the Handle
    linalg: Numeric backend, element-wise kernels, CPU reference
"""

from pyhouseholder.core.compute.device import (
    DeviceInfo,
    detect_gpu,
    get_cpu_info,
    select_device,
)
from pyhouseholder.core.compute.timing import Timer, timed

__all__ = [
    # Device detection
    "DeviceInfo",
    "detect_gpu",
    "get_cpu_info",
    "select_device",
    # Timing
    "Timer",
    "timed",
]
