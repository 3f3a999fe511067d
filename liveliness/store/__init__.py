"""Content-addressed storage for published Task artifacts."""

from .filesystem import FilesystemArtifactStore, compute_cid
from .interface import ArtifactStore
from .ipfs import IPFSArtifactStore

__all__ = ["ArtifactStore", "FilesystemArtifactStore", "IPFSArtifactStore", "compute_cid"]
