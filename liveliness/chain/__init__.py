"""Read-only chain access pinned to block heights."""

from .interface import ChainView
from .memory import InMemoryChainView
from .roster import RosterHistory, RosterSnapshot

__all__ = ["ChainView", "InMemoryChainView", "RosterHistory", "RosterSnapshot"]
