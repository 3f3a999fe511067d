"""Epoch scheduler.

A single dispatcher consumes block heights from a queue. Only heights on an
epoch boundary start a proposer run, and at most one run is in flight: a
boundary that arrives while a run is still going is dropped.
"""

from __future__ import annotations

import asyncio
from collections import deque
from enum import Enum

import bittensor as bt

from liveliness.chain.interface import ChainView
from liveliness.payload import DEFAULT_EPOCH, is_epoch_boundary
from liveliness.proposer import Proposer

DROPPED_HISTORY = 32


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING_EPOCH_TASK = "running_epoch_task"


class EpochScheduler:
    """Gates proposer runs to one per epoch boundary."""

    def __init__(
        self,
        chain: ChainView,
        proposer: Proposer,
        epoch: int = DEFAULT_EPOCH,
        queue: asyncio.Queue[int] | None = None,
    ):
        self.chain = chain
        self.proposer = proposer
        self.epoch = epoch
        self.queue: asyncio.Queue[int] = queue or asyncio.Queue()
        self.state = SchedulerState.IDLE
        self.dropped: deque[int] = deque(maxlen=DROPPED_HISTORY)
        self.dropped_count = 0
        self._inflight: asyncio.Task | None = None
        self._running = False

    def notify(self, height: int) -> None:
        """Deliver a new-block notification."""
        self.queue.put_nowait(height)

    async def handle(self, height: int) -> bool:
        """Process one notification. Returns True if a run was started."""
        if not is_epoch_boundary(height, self.epoch):
            return False

        if self.state is SchedulerState.RUNNING_EPOCH_TASK:
            self.dropped.append(height)
            self.dropped_count += 1
            bt.logging.warning({
                "epoch_scheduler": {
                    "dropped_boundary": height,
                    "reason": "run_in_flight",
                    "dropped_total": self.dropped_count,
                }
            })
            return False

        self.state = SchedulerState.RUNNING_EPOCH_TASK
        bt.logging.info({"epoch_scheduler": {"performing_task": height}})
        self._inflight = asyncio.create_task(self._run_epoch(height))
        return True

    async def _run_epoch(self, height: int) -> None:
        try:
            block = await self.chain.get_block_by_number(height)
            if block is None:
                bt.logging.error({"epoch_scheduler": {"block_not_found": height}})
                return
            await self.proposer.run(block)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            bt.logging.error({"epoch_scheduler_error": {"block_number": height, "error": str(e)}})
        finally:
            self.state = SchedulerState.IDLE

    async def wait_idle(self) -> None:
        """Wait for the in-flight run, if any, to finish."""
        if self._inflight is not None:
            await asyncio.gather(self._inflight, return_exceptions=True)

    async def run(self) -> None:
        """Dispatch notifications until stopped."""
        self._running = True
        bt.logging.info({"epoch_scheduler": {"status": "starting", "epoch": self.epoch}})

        while self._running:
            try:
                height = await asyncio.wait_for(self.queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
            await self.handle(height)

        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        await self.wait_idle()
        self._running = False
        bt.logging.info({"epoch_scheduler": "stopped"})

    def stop(self) -> None:
        """Signal the dispatcher to stop."""
        self._running = False


__all__ = ["EpochScheduler", "SchedulerState"]
