"""ArtifactStore protocol - pluggable transport interface.

Implementations: FilesystemArtifactStore (local/devnet), IPFSArtifactStore
(IPFS HTTP API + gateway).
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ArtifactStore(Protocol):
    """Content-addressed put/get of JSON blobs."""

    async def put(self, blob: dict[str, Any]) -> str:
        """Store a JSON blob. Returns its content identifier."""
        ...

    async def get(self, cid: str) -> dict[str, Any] | None:
        """Fetch a blob by content identifier, or None if not found."""
        ...


__all__ = ["ArtifactStore"]
