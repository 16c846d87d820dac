"""
Core protocols for pyhouseholder.

These define structural interfaces that interchangeable implementations
must satisfy. We use Protocol (structural typing) rather than ABC (nominal
typing) so a test double or an alternative BLAS binding can stand in for
the torch backend without inheriting from it.

Design Principles:
    - Minimal contracts: prescribe only what the algorithms call
    - Capability-driven: use supports() for optional features
"""

from typing import Protocol, runtime_checkable, TYPE_CHECKING

from pyhouseholder.core.options import Diagonal, Fill, Operation, Side

if TYPE_CHECKING:
    from pyhouseholder.core.matrix import Tile


@runtime_checkable
class NumericBackend(Protocol):
    """
    Protocol for the batched dense-matrix primitives the algorithms build on.

    Operands are Tiles: the backend decides whether to run one batched call
    or a loop over items. All work is issued on the caller's current stream.
    Optional features (batched triangular multiply) are advertised through
    supports(); callers provide a correct fallback when one is missing.
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{library}_{device}'
        Examples: 'torch_cpu', 'torch_cuda', 'torch_mps'
        """
        ...

    def supports(self, capability: str) -> bool:
        """
        Check if this backend supports a given capability.

        Note:
            Unknown capabilities MUST return False, never raise.
        """
        ...

    def gemm(
        self, trans_a: Operation, trans_b: Operation, alpha: float,
        a: 'Tile', b: 'Tile', beta: float, c: 'Tile',
    ) -> None:
        """c := alpha * op(a) @ op(b) + beta * c, per batch item."""
        ...

    def trmm(
        self, side: Side, uplo: Fill, trans: Operation, diag: Diagonal,
        alpha: float, a: 'Tile', b: 'Tile',
    ) -> None:
        """b := alpha * op(a) @ b (left) or alpha * b @ op(a) (right), a triangular."""
        ...

    def scal(self, alpha: 'Tile | float', x: 'Tile') -> None:
        """x := alpha * x, alpha either a per-item 1x1 tile or a constant."""
        ...
