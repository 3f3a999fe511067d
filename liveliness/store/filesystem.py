"""Filesystem-based ArtifactStore implementation.

Blobs are written as canonical JSON under their content identifier:
  {data_dir}/artifacts/{cid[:2]}/{cid}.json

The CID is the SHA256 of the canonical encoding, so identical Tasks map to
the same file and a blob is checked against its CID when read back.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import bittensor as bt

_CID_RE = re.compile(r"^[0-9a-f]{64}$")


def canonical_json(blob: Any) -> bytes:
    return json.dumps(blob, sort_keys=True, separators=(",", ":"), default=str).encode()


def compute_cid(blob: Any) -> str:
    """SHA256 hex digest of the canonical JSON encoding."""
    return hashlib.sha256(canonical_json(blob)).hexdigest()


class FilesystemArtifactStore:
    """Local content-addressed ArtifactStore."""

    def __init__(self, data_dir: str):
        self.base = Path(data_dir) / "artifacts"
        self.base.mkdir(parents=True, exist_ok=True)

    def _path(self, cid: str) -> Path:
        return self.base / cid[:2] / f"{cid}.json"

    async def put(self, blob: dict[str, Any]) -> str:
        """Write a blob atomically (tmp + rename). Returns its CID."""
        raw = canonical_json(blob)
        cid = hashlib.sha256(raw).hexdigest()
        path = self._path(cid)
        if path.exists():
            return cid

        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(tmp_fd, "wb") as f:
                f.write(raw)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return cid

    async def get(self, cid: str) -> dict[str, Any] | None:
        if not _CID_RE.match(cid or ""):
            return None
        path = self._path(cid)
        if not path.exists():
            return None

        raw = path.read_bytes()
        if hashlib.sha256(raw).hexdigest() != cid:
            bt.logging.warning({"artifact_store": {"corrupt_blob": cid}})
            return None
        return json.loads(raw)


__all__ = ["FilesystemArtifactStore", "canonical_json", "compute_cid"]
