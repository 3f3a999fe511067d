"""Tests for JSON-RPC chain reads and the block poller."""

import asyncio
import json

import httpx
import pytest

from conftest import OP_A, OP_B, OP_C, block_hash
from liveliness.chain import contracts
from liveliness.chain.roster import RosterHistory
from liveliness.chain.rpc import BlockPoller, DevnetChainView, JsonRpcClient, RpcChainView
from liveliness.config import Settings
from liveliness.entrypoints.common import build_chain
from liveliness.errors import ConfigError
from liveliness.selector import OperatorSelector

CENTER = "0x" + "ce" * 20
REGISTRY = "0x" + "5e" * 20


def word(value: int) -> str:
    return value.to_bytes(32, "big").hex()


def address_word(address: str) -> str:
    return address[2:].rjust(64, "0")


def active_operators_reply(operators) -> str:
    details = "".join(address_word(op.address) + word(i + 1) + word(1000) for i, op in enumerate(operators))
    return "0x" + word(32) + word(len(operators)) + details


def registration_reply(endpoint: str) -> str:
    raw = endpoint.encode()
    padded = raw.hex().ljust(-(-len(raw) // 32) * 64, "0")
    return "0x" + word(1) + word(7) + word(96) + word(len(raw)) + padded


class FakeNode:
    def __init__(self, head: int = 47):
        self.head = head
        self.calls = []
        self.eth_calls = []

    def roster_at(self, number: int):
        return [OP_A, OP_B] if number < 40 else [OP_A, OP_B, OP_C]

    def contract_call(self, call: dict, tag: str) -> str:
        number = int(tag, 16)
        data = call["data"]
        self.eth_calls.append((call["to"], data[:10], number))

        if call["to"] == CENTER and data == contracts.GET_ACTIVE_OPERATORS_DETAILS:
            return active_operators_reply(self.roster_at(number))
        if call["to"] == CENTER and data == contracts.AVS_LOGIC:
            return "0x" + address_word(REGISTRY)
        if call["to"] == REGISTRY and data.startswith(contracts.REGISTRATIONS):
            address = "0x" + data[-40:]
            endpoints = {op.address: op.endpoint for op in self.roster_at(number)}
            return registration_reply(endpoints.get(address, ""))
        return "0x"

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append(method)

        if method == "eth_blockNumber":
            result = hex(self.head)
        elif method == "eth_getBlockByNumber":
            number = int(params[0], 16)
            result = {"number": params[0], "hash": block_hash(number)} if number <= self.head else None
        elif method == "eth_getBlockByHash":
            result = None
            for n in range(self.head + 1):
                if block_hash(n) == params[0]:
                    result = {"number": hex(n), "hash": params[0]}
        elif method == "eth_call":
            result = self.contract_call(params[0], params[1])
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"],
                                             "error": {"code": -32601, "message": "not found"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def rpc(node):
    return JsonRpcClient("http://l2.test", client=httpx.AsyncClient(transport=httpx.MockTransport(node.handler)))


@pytest.mark.asyncio
class TestRpcChainView:

    async def test_block_reads(self, rpc):
        view = RpcChainView(rpc, CENTER)
        assert await view.get_latest_block_number() == 47
        block = await view.get_block_by_number(40)
        assert block.number == 40 and block.hash == block_hash(40)
        assert (await view.get_block_by_hash(block_hash(40))).number == 40
        assert await view.get_block_by_number(99) is None

    async def test_active_operators_read_from_attestation_center(self, rpc, node):
        view = RpcChainView(rpc, CENTER)
        assert await view.get_active_operators(30) == [OP_A.address, OP_B.address]
        assert await view.get_active_operators(40) == [OP_A.address, OP_B.address, OP_C.address]
        assert node.eth_calls == [
            (CENTER, contracts.GET_ACTIVE_OPERATORS_DETAILS, 30),
            (CENTER, contracts.GET_ACTIVE_OPERATORS_DETAILS, 40),
        ]

    async def test_endpoint_read_from_registry_at_same_height(self, rpc, node):
        view = RpcChainView(rpc, CENTER)
        assert await view.get_operator_endpoint(OP_C.address, 40) == OP_C.endpoint
        assert node.eth_calls == [
            (CENTER, contracts.AVS_LOGIC, 40),
            (REGISTRY, contracts.REGISTRATIONS, 40),
        ]

    async def test_selection_over_contract_reads(self, rpc):
        operator = await OperatorSelector(RpcChainView(rpc, CENTER)).select(41, block_hash(41))
        assert operator == OP_C

    async def test_unregistered_operator_has_empty_endpoint(self, rpc):
        view = RpcChainView(rpc, CENTER)
        assert await view.get_operator_endpoint(OP_C.address, 30) == ""

    async def test_rejects_bad_contract_address(self, rpc):
        with pytest.raises(ValueError):
            RpcChainView(rpc, "0x1234")

    async def test_rpc_error_raises(self, rpc):
        with pytest.raises(ConnectionError):
            await rpc.call("eth_unknown")


@pytest.mark.asyncio
class TestDevnetChainView:

    async def test_roster_reads_come_from_history(self, rpc, node):
        history = RosterHistory()
        history.set_operators(0, [OP_A, OP_B])
        view = DevnetChainView(rpc, history)
        assert await view.get_active_operators(40) == [OP_A.address, OP_B.address]
        assert await view.get_operator_endpoint(OP_B.address, 40) == OP_B.endpoint
        assert (await view.get_block_by_number(40)).hash == block_hash(40)
        assert node.eth_calls == []


class TestContractDecoding:

    def test_call_data_pads_address_argument(self):
        data = contracts.encode_call(contracts.REGISTRATIONS, OP_A.address)
        assert data == contracts.REGISTRATIONS + "0" * 24 + OP_A.address[2:]

    def test_empty_roster(self):
        assert contracts.decode_active_operators("0x" + word(32) + word(0)) == []

    def test_truncated_array_raises(self):
        with pytest.raises(ValueError):
            contracts.decode_active_operators("0x" + word(32) + word(2) + address_word(OP_A.address))

    def test_endpoint_longer_than_one_word(self):
        endpoint = "http://operator-with-a-long-hostname.example:8545"
        assert contracts.decode_registration_endpoint(registration_reply(endpoint)) == endpoint


class TestBuildChain:

    def settings(self, **values):
        return Settings(l2_rpc="http://l2.test", aggregator_rpc="http://aggregator.test", **values)

    def test_attestation_center_selects_contract_reads(self):
        _, view = build_chain(self.settings(attestation_center_address=CENTER))
        assert type(view) is RpcChainView
        assert view.attestation_center == CENTER

    def test_roster_file_selects_devnet_view(self, tmp_dir):
        path = f"{tmp_dir}/roster.json"
        with open(path, "w") as f:
            json.dump({"snapshots": [{"fromBlock": 0, "operators": [OP_A.model_dump(by_alias=True)]}]}, f)
        _, view = build_chain(self.settings(roster_file=path))
        assert isinstance(view, DevnetChainView)

    def test_requires_a_roster_source(self):
        with pytest.raises(ConfigError):
            build_chain(self.settings())


@pytest.mark.asyncio
class TestBlockPoller:

    async def test_emits_every_height_once(self, rpc, node):
        queue: asyncio.Queue[int] = asyncio.Queue()
        poller = BlockPoller(rpc, queue)

        assert await poller.poll_once() == [47]
        node.head = 51
        assert await poller.poll_once() == [48, 49, 50, 51]
        assert await poller.poll_once() == []

        drained = [queue.get_nowait() for _ in range(queue.qsize())]
        assert drained == [47, 48, 49, 50, 51]
