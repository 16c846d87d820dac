"""
Tuning configuration for the blocked algorithms.

The blocked builders switch to their unblocked counterparts below
``switch_size`` reflectors and otherwise work in panels of ``block_size``
columns. The values are carried by the Handle and passed explicitly into
every blocked template, so tests can force the blocked path on small
matrices.
"""

from dataclasses import dataclass
import os

from pyhouseholder.core.exceptions import ValidationError

SWITCH_SIZE_ENV_VAR = 'PYHOUSEHOLDER_SWITCH_SIZE'
BLOCK_SIZE_ENV_VAR = 'PYHOUSEHOLDER_BLOCK_SIZE'

# Up to this many reflectors the unblocked builders are used outright
DEFAULT_SWITCH_SIZE = 128

# Panel width of the blocked iterations
DEFAULT_BLOCK_SIZE = 64


@dataclass(frozen=True)
class BlockingConfig:
    """
    Switch and block sizes for blocked factorization and reconstruction.

    Attributes:
        switch_size: Reflector count at or below which no blocking is done
        block_size: Number of reflectors folded into one block reflector
    """
    switch_size: int = DEFAULT_SWITCH_SIZE
    block_size: int = DEFAULT_BLOCK_SIZE

    def __post_init__(self):
        if self.switch_size < 0:
            raise ValidationError(
                f"switch_size: must be >= 0, got {self.switch_size}"
            )
        if self.block_size < 1:
            raise ValidationError(
                f"block_size: must be >= 1, got {self.block_size}"
            )
        # the last full panel must end inside the reflector range
        if self.switch_size < self.block_size - 1:
            raise ValidationError(
                f"switch_size: must be >= block_size - 1 "
                f"(block_size={self.block_size}), got {self.switch_size}"
            )

    @classmethod
    def from_env(cls) -> 'BlockingConfig':
        """Defaults, overridden by PYHOUSEHOLDER_SWITCH_SIZE / PYHOUSEHOLDER_BLOCK_SIZE."""
        return cls(
            switch_size=_env_int(SWITCH_SIZE_ENV_VAR, DEFAULT_SWITCH_SIZE),
            block_size=_env_int(BLOCK_SIZE_ENV_VAR, DEFAULT_BLOCK_SIZE),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(f"{name}: expected an integer, got {raw!r}") from e
