"""
Names of optional NumericBackend features.

Algorithms query ``backend.supports(name)`` with these constants and fall
back to per-item calls when a feature is missing, e.g. in larfb::

    if backend.supports(CAPABILITY_BATCHED_TRMM):
        backend.trmm(side, uplo, trans, diag, 1.0, V1, W)
    else:
        for b in range(W.batch_count):
            backend.trmm(side, uplo, trans, diag, 1.0, V1.select(b), W.select(b))
"""

# trmm over all batch items in a single call
CAPABILITY_BATCHED_TRMM = 'batched_trmm'

# gemm over all batch items in a single call
CAPABILITY_BATCHED_GEMM = 'batched_gemm'

# calls return before device work completes
CAPABILITY_ASYNC_STREAM = 'async_stream'

ALL_CAPABILITIES = frozenset({
    CAPABILITY_BATCHED_TRMM,
    CAPABILITY_BATCHED_GEMM,
    CAPABILITY_ASYNC_STREAM,
})

__all__ = [
    'CAPABILITY_BATCHED_TRMM',
    'CAPABILITY_BATCHED_GEMM',
    'CAPABILITY_ASYNC_STREAM',
    'ALL_CAPABILITIES',
]
