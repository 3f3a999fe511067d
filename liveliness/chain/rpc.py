"""JSON-RPC chain access.

Block metadata and contract reads go to the L2 node over JSON-RPC. Every
roster and endpoint lookup is pinned to the requested height with the
``eth_call`` block tag.
"""

from __future__ import annotations

import asyncio
from typing import Any

import bittensor as bt
import httpx

from liveliness.models import Block
from liveliness.payload import is_address

from . import contracts
from .contracts import encode_call
from .roster import RosterHistory


def _hex_to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16)


class JsonRpcClient:
    """Minimal async JSON-RPC 2.0 client."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._next_id = 0

    async def close(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Invoke ``method`` and return its ``result``.

        Raises:
            ConnectionError: On HTTP failure or a JSON-RPC error object.
        """
        self._next_id += 1
        body = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params or []}
        resp = await self._client.post(self.url, json=body)
        if resp.status_code != 200:
            raise ConnectionError(f"{method} failed: {resp.status_code} {resp.text}")

        data = resp.json()
        if data.get("error"):
            raise ConnectionError(f"{method} error: {data['error']}")
        return data.get("result")


class RpcChainView:
    """ChainView over a JSON-RPC node.

    Roster and endpoint reads are ``eth_call`` against the attestation center
    and the registry it points to, each pinned to the requested height.
    """

    def __init__(self, rpc: JsonRpcClient, attestation_center: str):
        if not is_address(attestation_center):
            raise ValueError(f"not a contract address: {attestation_center!r}")
        self.rpc = rpc
        self.attestation_center = attestation_center.lower()

    async def _eth_call(self, to: str, data: str, block_number: int) -> str:
        return await self.rpc.call("eth_call", [{"to": to, "data": data}, hex(block_number)])

    async def get_active_operators(self, block_number: int) -> list[str]:
        raw = await self._eth_call(
            self.attestation_center,
            encode_call(contracts.GET_ACTIVE_OPERATORS_DETAILS),
            block_number,
        )
        return contracts.decode_active_operators(raw)

    async def get_operator_endpoint(self, address: str, block_number: int) -> str:
        registry = contracts.decode_address(await self._eth_call(
            self.attestation_center, encode_call(contracts.AVS_LOGIC), block_number,
        ))
        raw = await self._eth_call(registry, encode_call(contracts.REGISTRATIONS, address), block_number)
        return contracts.decode_registration_endpoint(raw)

    async def get_block_by_number(self, block_number: int) -> Block | None:
        raw = await self.rpc.call("eth_getBlockByNumber", [hex(block_number), False])
        return self._to_block(raw)

    async def get_block_by_hash(self, block_hash: str) -> Block | None:
        # Numbers come back as hex strings from the raw RPC method
        raw = await self.rpc.call("eth_getBlockByHash", [block_hash, False])
        return self._to_block(raw)

    async def get_latest_block_number(self) -> int:
        return _hex_to_int(await self.rpc.call("eth_blockNumber"))

    @staticmethod
    def _to_block(raw: dict[str, Any] | None) -> Block | None:
        if not raw:
            return None
        return Block(number=_hex_to_int(raw["number"]), hash=raw["hash"])


class DevnetChainView(RpcChainView):
    """Block reads from the node, roster from a local RosterHistory.

    For devnets without a deployed attestation center.
    """

    def __init__(self, rpc: JsonRpcClient, roster: RosterHistory):
        self.rpc = rpc
        self.attestation_center = None
        self.roster = roster

    async def get_active_operators(self, block_number: int) -> list[str]:
        return [op.address for op in self.roster.active_at(block_number)]

    async def get_operator_endpoint(self, address: str, block_number: int) -> str:
        return self.roster.endpoint_at(address, block_number)


class BlockPoller:
    """Publishes new block heights onto a queue.

    Every height between the last seen head and the current head is emitted
    once, so epoch boundaries are not skipped when the node is polled less
    often than blocks are produced.
    """

    def __init__(
        self,
        rpc: JsonRpcClient,
        queue: asyncio.Queue[int],
        poll_interval: float = 2.0,
    ):
        self.rpc = rpc
        self.queue = queue
        self.poll_interval = poll_interval
        self.last_seen: int | None = None
        self._running = False

    async def poll_once(self) -> list[int]:
        head = _hex_to_int(await self.rpc.call("eth_blockNumber"))
        if self.last_seen is None:
            heights = [head]
        else:
            heights = list(range(self.last_seen + 1, head + 1))
        for height in heights:
            await self.queue.put(height)
        if heights:
            self.last_seen = heights[-1]
        return heights

    async def run(self) -> None:
        self._running = True
        bt.logging.info({"block_poller": {"status": "starting", "interval": self.poll_interval}})
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                bt.logging.warning({"block_poller_error": str(e)})
            try:
                await asyncio.sleep(self.poll_interval)
            except asyncio.CancelledError:
                break
        self._running = False
        bt.logging.info({"block_poller": "stopped"})

    def stop(self) -> None:
        self._running = False


__all__ = ["BlockPoller", "DevnetChainView", "JsonRpcClient", "RpcChainView"]
