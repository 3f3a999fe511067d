"""Proposer: probe the chosen operator, publish the Task, attest to it.

Probe, publish and attest run strictly in that order. Any failure abandons
the epoch; the next boundary is a fresh attempt.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import bittensor as bt

from liveliness.attestation import AttestationSubmitter
from liveliness.errors import AttestationSubmitFailed, HealthcheckFailed, PublishFailed
from liveliness.models import Block, Task
from liveliness.payload import encode_attestation
from liveliness.prober import HealthcheckProber, ProbeFailure
from liveliness.selector import OperatorSelector
from liveliness.store.interface import ArtifactStore

HEALTHCHECK_TASK_DEFINITION_ID = 0


@dataclass(frozen=True)
class ProposalReceipt:
    """What a successful run published and attested."""

    block_number: int
    cid: str
    data: str
    task: Task


class Proposer:
    """Runs the healthcheck task for one epoch boundary block."""

    def __init__(
        self,
        selector: OperatorSelector,
        prober: HealthcheckProber,
        store: ArtifactStore,
        submitter: AttestationSubmitter,
        callback_base: str,
        retries: int = 1,
        retry_delay: float = 1.0,
        task_definition_id: int = HEALTHCHECK_TASK_DEFINITION_ID,
    ):
        if retries < 1:
            raise ValueError(f"retries must be at least 1, got {retries}")
        self.selector = selector
        self.prober = prober
        self.store = store
        self.submitter = submitter
        self.callback_base = callback_base
        self.retries = retries
        self.retry_delay = retry_delay
        self.task_definition_id = task_definition_id

    async def run(self, block: Block) -> ProposalReceipt | None:
        """Perform the epoch task. Never raises except on cancellation."""
        bt.logging.info({"proposer": {"status": "starting", "block_number": block.number}})
        try:
            task = await self.perform_healthcheck(block)
            cid = await self.publish(task)
            data = encode_attestation(task.chosen_operator.address, task.is_valid)
            await self.attest(cid, data)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            bt.logging.error({
                "proposer_run_failed": {
                    "block_number": block.number,
                    "step": type(e).__name__,
                    "error": str(e),
                }
            })
            return None

        bt.logging.info({
            "proposer": {
                "status": "attested",
                "block_number": block.number,
                "cid": cid,
                "operator": task.chosen_operator.address,
                "is_valid": task.is_valid,
            }
        })
        return ProposalReceipt(block_number=block.number, cid=cid, data=data, task=task)

    async def perform_healthcheck(self, block: Block) -> Task:
        """Probe up to ``retries`` times, stopping at the first valid reply.

        Raises:
            HealthcheckFailed: If any attempt gets no usable reply.
            RosterUnavailable: If no operator can be selected.
        """
        is_valid = False
        tries = 0
        operator = None
        outcome = None
        while not is_valid and tries < self.retries:
            if tries > 0:
                await asyncio.sleep(self.retry_delay)

            bt.logging.debug({"proposer": {"attempt": tries + 1, "block_number": block.number}})
            operator = await self.selector.select(block.number, block.hash)
            outcome = await self.prober.probe(
                operator.endpoint, block.number, block.hash, self.callback_base,
            )
            if isinstance(outcome, ProbeFailure):
                raise HealthcheckFailed(
                    f"healthcheck of {operator.address} at block {block.number} failed: {outcome.reason}"
                )

            is_valid = outcome.is_valid
            tries += 1

        return Task(
            block_hash=block.hash,
            chosen_operator=operator,
            response=outcome.response,
            is_valid=outcome.is_valid,
        )

    async def publish(self, task: Task) -> str:
        try:
            return await self.store.put(task.to_json())
        except Exception as e:
            raise PublishFailed(f"publishing task failed: {e}") from e

    async def attest(self, cid: str, data: str) -> None:
        try:
            await self.submitter.submit(cid, data, self.task_definition_id)
        except Exception as e:
            raise AttestationSubmitFailed(f"submitting attestation for {cid} failed: {e}") from e


__all__ = ["HEALTHCHECK_TASK_DEFINITION_ID", "ProposalReceipt", "Proposer"]
