"""In-memory ChainView for tests and local devnets."""

from __future__ import annotations

from liveliness.models import Block

from .roster import RosterHistory


class InMemoryChainView:
    """ChainView backed by a roster history and a dict of blocks."""

    def __init__(self, roster: RosterHistory | None = None):
        self.roster = roster or RosterHistory()
        self._by_number: dict[int, Block] = {}
        self._by_hash: dict[str, Block] = {}
        self.reads = 0

    def add_block(self, number: int, block_hash: str) -> Block:
        block = Block(number=number, hash=block_hash)
        self._by_number[block.number] = block
        self._by_hash[block.hash] = block
        return block

    async def get_active_operators(self, block_number: int) -> list[str]:
        self.reads += 1
        return [op.address for op in self.roster.active_at(block_number)]

    async def get_operator_endpoint(self, address: str, block_number: int) -> str:
        self.reads += 1
        return self.roster.endpoint_at(address, block_number)

    async def get_block_by_number(self, block_number: int) -> Block | None:
        return self._by_number.get(block_number)

    async def get_block_by_hash(self, block_hash: str) -> Block | None:
        return self._by_hash.get(block_hash.lower())

    async def get_latest_block_number(self) -> int:
        return max(self._by_number, default=0)


__all__ = ["InMemoryChainView"]
