"""Height-indexed operator roster history.

A roster snapshot takes effect at ``from_block`` and stays active until the
next snapshot. Reads pinned to a height always see the snapshot that was in
effect at that height, never a later one.

File format (JSON)::

    {"snapshots": [
        {"fromBlock": 0, "operators": [
            {"operatorAddress": "0x...", "endpoint": "http://..."}
        ]}
    ]}
"""

from __future__ import annotations

import bisect
import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from liveliness.models import OperatorRecord


class RosterSnapshot(BaseModel):
    """Active operators from ``from_block`` onwards, in contract order."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_block: int = Field(alias="fromBlock", ge=0)
    operators: list[OperatorRecord] = Field(default_factory=list)


class RosterHistory:
    """Ordered roster snapshots with height-pinned lookups."""

    def __init__(self, snapshots: list[RosterSnapshot] | None = None):
        self._snapshots: list[RosterSnapshot] = []
        for snapshot in snapshots or []:
            self.add(snapshot)

    @classmethod
    def from_file(cls, path: str | Path) -> "RosterHistory":
        with open(path) as f:
            data = json.load(f)
        return cls([RosterSnapshot(**s) for s in data.get("snapshots", [])])

    def add(self, snapshot: RosterSnapshot) -> None:
        """Insert a snapshot, replacing any existing one at the same height."""
        heights = [s.from_block for s in self._snapshots]
        idx = bisect.bisect_left(heights, snapshot.from_block)
        if idx < len(heights) and heights[idx] == snapshot.from_block:
            self._snapshots[idx] = snapshot
        else:
            self._snapshots.insert(idx, snapshot)

    def set_operators(self, from_block: int, operators: list[OperatorRecord]) -> None:
        self.add(RosterSnapshot(from_block=from_block, operators=operators))

    def snapshot_at(self, block_number: int) -> RosterSnapshot | None:
        heights = [s.from_block for s in self._snapshots]
        idx = bisect.bisect_right(heights, block_number)
        if idx == 0:
            return None
        return self._snapshots[idx - 1]

    def active_at(self, block_number: int) -> list[OperatorRecord]:
        snapshot = self.snapshot_at(block_number)
        return list(snapshot.operators) if snapshot else []

    def endpoint_at(self, address: str, block_number: int) -> str:
        """Endpoint registered for ``address`` at ``block_number``.

        Raises:
            KeyError: If the address has no registration at that height.
        """
        wanted = address.lower()
        for operator in self.active_at(block_number):
            if operator.address == wanted:
                return operator.endpoint
        raise KeyError(f"no registration for {address} at block {block_number}")


__all__ = ["RosterHistory", "RosterSnapshot"]
