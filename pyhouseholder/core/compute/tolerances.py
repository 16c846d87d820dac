"""
Tolerance tiers for numerical validation.

Defines precision expectations for reconstructed orthogonal factors:
- FP64 (CPU or GPU): close to machine precision, scaled by problem size
- FP32: relaxed for single-precision arithmetic

Blocked and unblocked paths reorder floating-point operations, so results
agree within these tiers rather than bit-for-bit.

Used by the test suite and by orthogonality_error() consumers.
"""

from dataclasses import dataclass

import torch


@dataclass(frozen=True)
class ToleranceTier:
    """rtol/atol pair for comparing results at one precision."""
    rtol: float
    atol: float
    name: str
    description: str


FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-11,
    name='fp64',
    description='Double precision: blocked, unblocked and LAPACK agree',
)

FP32 = ToleranceTier(
    rtol=1e-4,
    atol=1e-4,
    name='fp32',
    description='Single precision: equivalent up to float32 rounding',
)

# Orthogonality residual ||Q'Q - I||_max allowed per unit of problem size
ORTHOGONALITY_FACTOR = 50.0


def select_tolerance(dtype: torch.dtype) -> ToleranceTier:
    """Select appropriate tolerance tier for a given dtype."""
    if dtype == torch.float64:
        return FP64
    if dtype == torch.float32:
        return FP32
    raise ValueError(f"No tolerance tier for dtype {dtype}")


def orthogonality_tolerance(dtype: torch.dtype, n: int) -> float:
    """Allowed max-abs deviation of Q'Q from the identity for an n-column Q."""
    return ORTHOGONALITY_FACTOR * max(n, 1) * torch.finfo(dtype).eps
