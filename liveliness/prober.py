"""Healthcheck challenge against an operator endpoint.

The operator receives ``{blockNumber, blockHash, callbackBase}`` and must
answer with a reply signed over the challenged block. A probe never raises
for an unreachable or misbehaving operator; it returns a ProbeFailure.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable

import bittensor as bt
import httpx
from pydantic import ValidationError

from liveliness.models import HealthcheckResponse
from liveliness.payload import is_address

DEFAULT_PROBE_TIMEOUT = 5.0


@runtime_checkable
class SignatureScheme(Protocol):
    """Signature check supplied by the deployment."""

    def verify(self, message: bytes, signature: bytes, address: str) -> bool:
        """True if ``signature`` over ``message`` was produced by ``address``."""
        ...


@dataclass(frozen=True)
class ProbeSuccess:
    """Operator replied with a well-formed response."""

    response: HealthcheckResponse
    is_valid: bool


@dataclass(frozen=True)
class ProbeFailure:
    """Operator unreachable, timed out, or replied with garbage."""

    reason: str


ProbeOutcome = Union[ProbeSuccess, ProbeFailure]


def healthcheck_message(block_number: int, block_hash: str) -> bytes:
    """Canonical bytes an operator signs to answer a challenge."""
    return f"liveliness:{block_number}:{block_hash.lower()}".encode()


def _signature_bytes(signature: str) -> bytes | None:
    text = signature[2:] if signature[:2].lower() == "0x" else signature
    if not text:
        return None
    try:
        return bytes.fromhex(text)
    except ValueError:
        return None


def verify_response(
    response: HealthcheckResponse,
    block_hash: str,
    scheme: SignatureScheme,
    block_number: int | None = None,
) -> bool:
    """Structural and cryptographic check of an operator reply.

    Only binding and signature are checked here; whether the operator is the
    one that should have answered is the validator's concern.
    """
    if response.block_hash != block_hash.lower():
        return False
    if block_number is not None and response.block_number != block_number:
        return False
    if not is_address(response.address):
        return False

    sig = _signature_bytes(response.signature)
    if sig is None:
        return False

    message = healthcheck_message(response.block_number, response.block_hash)
    try:
        return bool(scheme.verify(message, sig, response.address))
    except Exception as e:
        bt.logging.debug({"signature_verify_error": str(e)})
        return False


class HealthcheckProber:
    """Sends liveliness challenges and judges the replies."""

    def __init__(
        self,
        scheme: SignatureScheme,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.scheme = scheme
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def probe(
        self,
        endpoint: str,
        block_number: int,
        block_hash: str,
        callback_base: str,
    ) -> ProbeOutcome:
        url = f"{endpoint.rstrip('/')}/healthcheck"
        challenge = {
            "blockNumber": block_number,
            "blockHash": block_hash,
            "callbackBase": callback_base,
        }

        try:
            # httpx timeouts are per phase; bound the whole exchange
            resp = await asyncio.wait_for(
                self._client.post(url, json=challenge, timeout=self.timeout), self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._failed(endpoint, block_number, f"timeout after {self.timeout}s")
        except httpx.HTTPError as e:
            return self._failed(endpoint, block_number, f"transport error: {e}")

        if resp.status_code != 200:
            return self._failed(endpoint, block_number, f"status {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            return self._failed(endpoint, block_number, "reply is not JSON")
        if not isinstance(body, dict):
            return self._failed(endpoint, block_number, "reply is not an object")

        try:
            response = HealthcheckResponse.model_validate(body)
        except ValidationError as e:
            return self._failed(endpoint, block_number, f"malformed reply: {e.error_count()} errors")

        is_valid = verify_response(response, block_hash, self.scheme, block_number)
        bt.logging.info({
            "healthcheck": {
                "endpoint": endpoint,
                "block_number": block_number,
                "operator": response.address,
                "is_valid": is_valid,
            }
        })
        return ProbeSuccess(response=response, is_valid=is_valid)

    @staticmethod
    def _failed(endpoint: str, block_number: int, reason: str) -> ProbeFailure:
        bt.logging.warning({
            "healthcheck_failed": {"endpoint": endpoint, "block_number": block_number, "reason": reason}
        })
        return ProbeFailure(reason=reason)


__all__ = [
    "DEFAULT_PROBE_TIMEOUT",
    "HealthcheckProber",
    "ProbeFailure",
    "ProbeOutcome",
    "ProbeSuccess",
    "SignatureScheme",
    "healthcheck_message",
    "verify_response",
]
