"""Tests for the healthcheck prober."""

import asyncio
import time

import pytest

from conftest import CALLBACK, OP_A, OP_B, block_hash, signed_reply
from liveliness.models import HealthcheckResponse
from liveliness.prober import HealthcheckProber, ProbeFailure, ProbeSuccess, verify_response


@pytest.mark.asyncio
class TestHealthcheckProber:

    async def test_valid_reply(self, prober, fake_operators):
        outcome = await prober.probe(OP_A.endpoint, 40, block_hash(40), CALLBACK)
        assert isinstance(outcome, ProbeSuccess)
        assert outcome.is_valid
        assert outcome.response.address == OP_A.address

    async def test_challenge_carries_block_and_callback(self, prober, fake_operators):
        await prober.probe(OP_A.endpoint, 40, block_hash(40), CALLBACK)
        request = fake_operators.requests[0]
        assert request["path"] == "/healthcheck"
        assert request["blockNumber"] == 40
        assert request["blockHash"] == block_hash(40)
        assert request["callbackBase"] == CALLBACK

    async def test_bad_signature_is_invalid_not_failure(self, prober, fake_operators):
        fake_operators.set(OP_A, "bad_signature")
        outcome = await prober.probe(OP_A.endpoint, 40, block_hash(40), CALLBACK)
        assert isinstance(outcome, ProbeSuccess)
        assert not outcome.is_valid

    async def test_timeout_is_failure(self, prober, fake_operators):
        fake_operators.set(OP_A, "timeout")
        outcome = await prober.probe(OP_A.endpoint, 40, block_hash(40), CALLBACK)
        assert isinstance(outcome, ProbeFailure)
        assert "timeout" in outcome.reason

    async def test_malformed_reply_is_failure(self, prober, fake_operators):
        fake_operators.set(OP_A, "garbage")
        outcome = await prober.probe(OP_A.endpoint, 40, block_hash(40), CALLBACK)
        assert isinstance(outcome, ProbeFailure)
        assert "malformed" in outcome.reason

    async def test_http_error_is_failure(self, prober, fake_operators):
        fake_operators.set(OP_B, "error")
        outcome = await prober.probe(OP_B.endpoint, 40, block_hash(40), CALLBACK)
        assert isinstance(outcome, ProbeFailure)
        assert "503" in outcome.reason


class DripServer:
    """Real socket server that sends headers at once, then one body byte every 0.1s."""

    def __init__(self):
        self.done = asyncio.Event()
        self.server = None

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        await reader.readuntil(b"\r\n\r\n")
        writer.write(b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\nContent-Length: 10000\r\n\r\n")
        try:
            while not self.done.is_set():
                writer.write(b" ")
                await writer.drain()
                await asyncio.sleep(0.1)
        except ConnectionError:
            pass
        finally:
            writer.close()

    async def start(self) -> str:
        self.server = await asyncio.start_server(self.handle, "127.0.0.1", 0)
        port = self.server.sockets[0].getsockname()[1]
        return f"http://127.0.0.1:{port}"

    async def stop(self):
        self.done.set()
        self.server.close()
        await self.server.wait_closed()


@pytest.mark.asyncio
class TestProbeDeadline:

    async def test_slow_body_cannot_outlast_timeout(self, scheme):
        drip = DripServer()
        endpoint = await drip.start()
        prober = HealthcheckProber(scheme, timeout=0.5)
        try:
            started = time.monotonic()
            outcome = await prober.probe(endpoint, 40, block_hash(40), CALLBACK)
            elapsed = time.monotonic() - started
        finally:
            await prober.close()
            await drip.stop()

        assert isinstance(outcome, ProbeFailure)
        assert "timeout" in outcome.reason
        assert elapsed < 2.0


class TestVerifyResponse:

    def _response(self, **overrides):
        data = signed_reply(OP_A.address, 40, block_hash(40))
        data.update(overrides)
        return HealthcheckResponse.model_validate(data)

    def test_accepts_bound_reply(self, scheme):
        assert verify_response(self._response(), block_hash(40), scheme, 40)

    def test_hash_comparison_ignores_case(self, scheme):
        assert verify_response(self._response(), block_hash(40).upper().replace("0X", "0x"), scheme)

    def test_rejects_other_block_hash(self, scheme):
        assert not verify_response(self._response(), block_hash(41), scheme)

    def test_rejects_other_block_number(self, scheme):
        assert not verify_response(self._response(), block_hash(40), scheme, 41)

    def test_rejects_malformed_address(self, scheme):
        assert not verify_response(self._response(address="0x1234"), block_hash(40), scheme)

    def test_rejects_non_hex_signature(self, scheme):
        assert not verify_response(self._response(signature="zz"), block_hash(40), scheme)

    def test_scheme_exception_counts_as_invalid(self):
        class Exploding:
            def verify(self, message, signature, address):
                raise RuntimeError("boom")

        assert not verify_response(self._response(), block_hash(40), Exploding())
