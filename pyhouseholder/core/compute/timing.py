"""
Execution timing utilities.

Entry points return as soon as their device work is enqueued, so by default
timings measure host-side issue time. Pass a synchronization callable
(usually Handle.synchronize) to measure completed device work instead.
"""

import time
from contextlib import contextmanager
from typing import Callable, Iterator


class Timer:
    """
    Accumulating timer with optional stream synchronization.

    Usage:
        timer = Timer()
        timer.start()

        with timer.section('unblocked_tail'):
            org2r_template(...)

        with timer.section('blocked'):
            ...

        timer.stop()
        result = timer.result()
        # {'total_seconds': 0.05, 'unblocked_tail': 0.01, 'blocked': 0.04}
    """

    def __init__(self, sync: Callable[[], None] | None = None):
        """
        Initialize timer.

        Args:
            sync: Called before each measurement when given. Required for
                  timings that include device execution, not just issue.
        """
        self._sync_fn = sync
        self._sections: dict[str, float] = {}
        self._start_time: float | None = None
        self._total: float | None = None

    def _sync(self) -> None:
        if self._sync_fn is not None:
            self._sync_fn()

    def start(self) -> None:
        """Start the overall timer."""
        self._sync()
        self._start_time = time.perf_counter()

    def stop(self) -> None:
        """Stop the overall timer."""
        self._sync()
        if self._start_time is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._start_time

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """
        Time a named section.

        Args:
            name: Section identifier (used as key in result dict)

        Note:
            Repeated sections with the same name accumulate.
        """
        self._sync()
        start = time.perf_counter()
        try:
            yield
        finally:
            self._sync()
            elapsed = time.perf_counter() - start
            self._sections[name] = self._sections.get(name, 0.0) + elapsed

    def result(self) -> dict[str, float]:
        """
        Get timing results.

        Returns:
            Dictionary with 'total_seconds' and all section timings

        Raises:
            RuntimeError: If called before stop()
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")

        result = {'total_seconds': self._total}
        result.update(self._sections)
        return result


@contextmanager
def timed(sync: Callable[[], None] | None = None) -> Iterator[Timer]:
    """
    Context manager for simple timing.

    Usage:
        with timed(handle.synchronize) as timer:
            orgqr(handle, m, n, k, A, lda, tau)
        print(f"Took {timer.result()['total_seconds']:.3f}s")
    """
    timer = Timer(sync=sync)
    timer.start()
    try:
        yield timer
    finally:
        timer.stop()
