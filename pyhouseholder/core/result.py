"""
Call envelope returned by every pyhouseholder entry point.

The routines overwrite caller-owned storage and return nothing of their
own, so the envelope carries the view that was written together with
what the call decided to do: which code path ran, how many panels it
processed and how long issuing the work took.
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

from pyhouseholder.core.exceptions import Status

P = TypeVar('P')  # view written in place


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Outcome of a successful entry point call.

    Failures raise, so ``status`` on a Result is always ``Status.SUCCESS``;
    it is kept so callers that log statuses see a uniform record.

    Attributes:
        params: Batched view of the storage that was overwritten, None
            when the call had nothing to write
        info: operation, method ('quick_return', 'unblocked' or
            'blocked'), blocks, sizes, batch_count, device and dtype
        timing: Host-side issue time per section, or None
        backend_name: NumericBackend.name of the backend that ran
        warnings: Non-fatal notes attached by the call
        status: Always Status.SUCCESS

    Examples:
        >>> res = orgqr(handle, m, n, k, A, lda, tau)
        >>> res.info['method'], res.info['blocks']
        ('blocked', 3)
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    status: Status = Status.SUCCESS

    @property
    def method(self) -> str:
        """Code path the call took."""
        return self.info['method']

    def has_warning(self, substring: str) -> bool:
        """True if any attached warning mentions substring."""
        return any(substring in w for w in self.warnings)
