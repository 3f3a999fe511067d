"""Deterministic operator selection.

The operator for a block is ``roster[block_number mod len(roster)]`` where the
roster is read pinned at that same block. Nothing is cached, so two parties
reading the same chain state always agree.
"""

from __future__ import annotations

import bittensor as bt

from liveliness.chain.interface import ChainView
from liveliness.errors import RosterUnavailable
from liveliness.models import OperatorRecord


def selection_index(block_number: int, roster_size: int) -> int:
    if roster_size <= 0:
        raise ValueError("roster is empty")
    return block_number % roster_size


class OperatorSelector:
    """Maps a block height to exactly one active operator."""

    def __init__(self, chain: ChainView):
        self.chain = chain

    async def select(self, block_number: int, block_hash: str) -> OperatorRecord:
        """Resolve the operator chosen for ``block_number``.

        ``block_hash`` does not enter the formula; it is logged so a selection
        can be tied to the probe it drives.

        Raises:
            RosterUnavailable: If the roster at ``block_number`` is empty or
                cannot be read.
        """
        try:
            roster = await self.chain.get_active_operators(block_number)
        except Exception as e:
            raise RosterUnavailable(block_number, str(e)) from e
        if not roster:
            raise RosterUnavailable(block_number, "no active operators")

        index = selection_index(block_number, len(roster))
        address = roster[index]
        try:
            endpoint = await self.chain.get_operator_endpoint(address, block_number)
        except Exception as e:
            raise RosterUnavailable(block_number, f"endpoint lookup for {address}: {e}") from e

        operator = OperatorRecord(address=address, endpoint=endpoint)
        bt.logging.debug({
            "operator_selected": {
                "block_number": block_number,
                "block_hash": block_hash,
                "index": index,
                "roster_size": len(roster),
                "operator": operator.address,
            }
        })
        return operator


__all__ = ["OperatorSelector", "selection_index"]
