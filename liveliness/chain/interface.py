"""ChainView protocol - pluggable ledger read interface.

Implementations: InMemoryChainView (tests, devnets), RpcChainView (JSON-RPC
block reads over a roster history).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from liveliness.models import Block


@runtime_checkable
class ChainView(Protocol):
    """Height-pinned reads of ledger state."""

    async def get_active_operators(self, block_number: int) -> list[str]:
        """Addresses of the active roster, in contract order, at ``block_number``."""
        ...

    async def get_operator_endpoint(self, address: str, block_number: int) -> str:
        """Registered service endpoint of ``address`` at ``block_number``."""
        ...

    async def get_block_by_number(self, block_number: int) -> Block | None:
        """Block at a height, or None if unknown."""
        ...

    async def get_block_by_hash(self, block_hash: str) -> Block | None:
        """Block with a hash, or None if unknown."""
        ...

    async def get_latest_block_number(self) -> int:
        """Current head height."""
        ...


__all__ = ["ChainView"]
