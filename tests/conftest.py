"""Shared fakes: a hash-based signature scheme and scripted operators."""

from __future__ import annotations

import hashlib
import json
import tempfile

import httpx
import pytest

from liveliness.chain.memory import InMemoryChainView
from liveliness.chain.roster import RosterHistory
from liveliness.models import OperatorRecord
from liveliness.prober import HealthcheckProber, healthcheck_message
from liveliness.proposer import Proposer
from liveliness.selector import OperatorSelector
from liveliness.store.filesystem import compute_cid

CALLBACK = "http://aggregator.test"

OP_A = OperatorRecord(address="0x" + "aa" * 20, endpoint="http://op-a.test")
OP_B = OperatorRecord(address="0x" + "bb" * 20, endpoint="http://op-b.test")
OP_C = OperatorRecord(address="0x" + "cc" * 20, endpoint="http://op-c.test")


def block_hash(number: int) -> str:
    return "0x" + hashlib.sha256(f"block-{number}".encode()).hexdigest()


def fake_sign(message: bytes, address: str) -> bytes:
    return hashlib.sha256(address.lower().encode() + message).digest()


class HashSignatureScheme:
    """Stand-in for the deployment's signature scheme."""

    def verify(self, message: bytes, signature: bytes, address: str) -> bool:
        return signature == fake_sign(message, address)


def signed_reply(address: str, block_number: int, blk_hash: str, good_signature: bool = True) -> dict:
    signature = fake_sign(healthcheck_message(block_number, blk_hash), address)
    if not good_signature:
        signature = bytes(reversed(signature))
    return {
        "blockNumber": block_number,
        "blockHash": blk_hash,
        "address": address,
        "signature": "0x" + signature.hex(),
    }


class FakeOperators:
    """httpx transport answering healthchecks per operator host.

    Behaviours: "ok", "bad_signature", "impostor", "timeout", "garbage",
    "error". Hosts without a behaviour answer "ok" as themselves.
    """

    def __init__(self, operators: list[OperatorRecord]):
        self.by_host = {httpx.URL(op.endpoint).host: op for op in operators}
        self.behaviour: dict[str, str] = {}
        self.requests: list[dict] = []

    def set(self, operator: OperatorRecord, behaviour: str) -> None:
        self.behaviour[httpx.URL(operator.endpoint).host] = behaviour

    def handler(self, request: httpx.Request) -> httpx.Response:
        challenge = json.loads(request.content)
        self.requests.append({"host": request.url.host, "path": request.url.path, **challenge})
        operator = self.by_host[request.url.host]
        behaviour = self.behaviour.get(request.url.host, "ok")

        if behaviour == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if behaviour == "error":
            return httpx.Response(503, text="unavailable")
        if behaviour == "garbage":
            return httpx.Response(200, json={"hello": "world"})

        address = operator.address
        if behaviour == "impostor":
            address = "0x" + "ee" * 20
        reply = signed_reply(
            address,
            challenge["blockNumber"],
            challenge["blockHash"],
            good_signature=behaviour != "bad_signature",
        )
        return httpx.Response(200, json=reply)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class MemoryStore:
    """In-memory content-addressed store."""

    def __init__(self, fail: bool = False):
        self.blobs: dict[str, dict] = {}
        self.fail = fail

    async def put(self, blob):
        if self.fail:
            raise ConnectionError("store down")
        cid = compute_cid(blob)
        self.blobs[cid] = blob
        return cid

    async def get(self, cid):
        return self.blobs.get(cid)


class RecordingSubmitter:
    def __init__(self, fail: bool = False):
        self.calls: list[tuple] = []
        self.fail = fail

    async def submit(self, proof_of_task, data, task_definition_id):
        if self.fail:
            raise ConnectionError("aggregator down")
        self.calls.append((proof_of_task, data, task_definition_id))
        return True


def make_proposer(chain, prober, store, submitter, retries=1):
    return Proposer(
        selector=OperatorSelector(chain),
        prober=prober,
        store=store,
        submitter=submitter,
        callback_base=CALLBACK,
        retries=retries,
        retry_delay=0,
    )


@pytest.fixture
def operators():
    return [OP_A, OP_B, OP_C]


@pytest.fixture
def chain(operators):
    view = InMemoryChainView(RosterHistory())
    view.roster.set_operators(0, operators)
    for n in range(0, 48):
        view.add_block(n, block_hash(n))
    return view


@pytest.fixture
def scheme():
    return HashSignatureScheme()


@pytest.fixture
def fake_operators(operators):
    return FakeOperators(operators)


@pytest.fixture
def prober(scheme, fake_operators):
    return HealthcheckProber(scheme, timeout=1.0, client=fake_operators.client())


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d
