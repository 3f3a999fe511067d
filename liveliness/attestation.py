"""Signed attestation submission to the aggregator.

The proposer attests to a published Task by sending the aggregator a
``sendTask`` JSON-RPC call carrying the Task CID, the encoded payload and a
hotkey signature over both.

Signs: hash(proofOfTask, data, taskDefinitionId, performerAddress)
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Protocol, runtime_checkable

import bittensor as bt
import httpx


@runtime_checkable
class AttestationSubmitter(Protocol):
    """Write side of the attestation ledger."""

    async def submit(self, proof_of_task: str, data: str, task_definition_id: int) -> Any:
        """Submit an attestation referencing a published artifact."""
        ...


def submission_hash(
    proof_of_task: str, data: str, task_definition_id: int, performer: str,
) -> str:
    """Hex digest the performer signs; the aggregator recomputes it to verify."""
    payload = {
        "proofOfTask": proof_of_task,
        "data": data.lower(),
        "taskDefinitionId": task_definition_id,
        "performerAddress": performer,
    }
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
    return hashlib.sha256(raw).hexdigest()


def sign_submission(
    proof_of_task: str, data: str, task_definition_id: int, wallet: Any,
) -> tuple[str, str]:
    """Sign a submission with the performer's hotkey.

    Returns:
        (performer hotkey ss58, hex-encoded signature)
    """
    performer = wallet.hotkey.ss58_address
    payload_hash = submission_hash(proof_of_task, data, task_definition_id, performer)
    signature = wallet.hotkey.sign(payload_hash.encode())
    sig_hex = signature.hex() if isinstance(signature, bytes) else str(signature)
    return performer, sig_hex


class AggregatorClient:
    """Submits signed attestations to the aggregator JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_url: str,
        wallet: Any,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url
        self.wallet = wallet
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def submit(self, proof_of_task: str, data: str, task_definition_id: int) -> Any:
        performer, signature = sign_submission(proof_of_task, data, task_definition_id, self.wallet)
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendTask",
            "params": [proof_of_task, data, task_definition_id, performer, signature],
        }
        resp = await self._client.post(self.rpc_url, json=body)
        if resp.status_code != 200:
            raise ConnectionError(f"sendTask failed: {resp.status_code} {resp.text}")

        result = resp.json()
        if result.get("error"):
            raise ConnectionError(f"sendTask error: {result['error']}")

        bt.logging.info({
            "attestation_submitted": {
                "proof_of_task": proof_of_task,
                "task_definition_id": task_definition_id,
                "performer": performer,
            }
        })
        return result.get("result")


__all__ = [
    "AggregatorClient",
    "AttestationSubmitter",
    "sign_submission",
    "submission_hash",
]
