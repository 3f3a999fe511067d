"""IPFS-backed ArtifactStore client.

Publishes through the IPFS HTTP API (``/api/v0/add``) and reads through a
gateway (``/ipfs/{cid}``), which is what both proposers and validators can
reach without running a node of their own.
"""

from __future__ import annotations

import json
from typing import Any

import bittensor as bt
import httpx

from .filesystem import canonical_json


class IPFSArtifactStore:
    """ArtifactStore over an IPFS HTTP API and gateway."""

    def __init__(
        self,
        api_url: str,
        gateway_url: str,
        api_token: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def put(self, blob: dict[str, Any]) -> str:
        resp = await self._client.post(
            f"{self.api_url}/api/v0/add",
            params={"pin": "true", "cid-version": "1"},
            files={"file": ("task.json", canonical_json(blob), "application/json")},
            headers=self._headers,
        )
        if resp.status_code != 200:
            raise ConnectionError(f"IPFS add failed: {resp.status_code} {resp.text}")

        cid = resp.json().get("Hash")
        if not cid:
            raise ConnectionError(f"IPFS add returned no hash: {resp.text}")
        bt.logging.debug({"ipfs_store": {"put": cid}})
        return cid

    async def get(self, cid: str) -> dict[str, Any] | None:
        resp = await self._client.get(f"{self.gateway_url}/ipfs/{cid}")
        if resp.status_code in (400, 404):
            return None
        resp.raise_for_status()
        try:
            data = resp.json()
        except json.JSONDecodeError:
            bt.logging.warning({"ipfs_store": {"not_json": cid}})
            return None
        return data if isinstance(data, dict) else None


__all__ = ["IPFSArtifactStore"]
