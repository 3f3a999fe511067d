"""Validator: audit a proposer's Task against independently read chain state.

A disagreement is a rejection, never an exception. There is no verdict when
the roster, chain or artifact store cannot be read, or when a re-probe gets
no usable reply while checking a claim that the operator was down.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import bittensor as bt
from pydantic import ValidationError

from liveliness.chain.interface import ChainView
from liveliness.errors import FatalValidatorError, RosterUnavailable
from liveliness.models import Task
from liveliness.payload import DEFAULT_EPOCH, encode_attestation, epoch_boundary, payload_bytes
from liveliness.prober import HealthcheckProber, ProbeFailure, SignatureScheme, verify_response
from liveliness.selector import OperatorSelector
from liveliness.store.interface import ArtifactStore


class Outcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNDETERMINED = "undetermined"


@dataclass
class Verdict:
    """Outcome of validating one Task."""

    outcome: Outcome
    reason: str = ""

    def __bool__(self) -> bool:
        return self.outcome is Outcome.ACCEPTED


def _accept(reason: str) -> Verdict:
    return Verdict(Outcome.ACCEPTED, reason)


def _reject(reason: str) -> Verdict:
    return Verdict(Outcome.REJECTED, reason)


class Validator:
    """Re-derives a published Task and judges it."""

    def __init__(
        self,
        chain: ChainView,
        store: ArtifactStore,
        prober: HealthcheckProber,
        scheme: SignatureScheme,
        callback_base: str,
        epoch: int = DEFAULT_EPOCH,
    ):
        self.chain = chain
        self.store = store
        self.prober = prober
        self.scheme = scheme
        self.callback_base = callback_base
        self.epoch = epoch
        self.selector = OperatorSelector(chain)

    async def validate(self, task_ref: str, attested_payload: str) -> bool:
        """True if the Task was performed correctly, False otherwise.

        Raises:
            FatalValidatorError: If no verdict can be reached.
        """
        verdict = await self.evaluate(task_ref, attested_payload)
        if verdict.outcome is Outcome.UNDETERMINED:
            raise FatalValidatorError(verdict.reason)
        return bool(verdict)

    async def evaluate(self, task_ref: str, attested_payload: str) -> Verdict:
        try:
            verdict = await self._evaluate(task_ref, attested_payload)
        except Exception as e:
            # Chain or store unreachable: no evidence either way
            verdict = Verdict(Outcome.UNDETERMINED, f"{type(e).__name__}: {e}")
        log = bt.logging.info if verdict.outcome is not Outcome.UNDETERMINED else bt.logging.error
        log({
            "validator": {
                "task_ref": task_ref,
                "outcome": verdict.outcome.value,
                "reason": verdict.reason,
            }
        })
        return verdict

    async def _evaluate(self, task_ref: str, attested_payload: str) -> Verdict:
        blob = await self.store.get(task_ref)
        if blob is None:
            return _reject("task not found in artifact store")
        try:
            task = Task.model_validate(blob)
        except ValidationError as e:
            return _reject(f"malformed task: {e.error_count()} errors")

        # Epoch boundary
        latest = await self.chain.get_latest_block_number()
        target = epoch_boundary(latest, self.epoch)
        block = await self.chain.get_block_by_hash(task.block_hash)
        if block is None:
            return _reject(f"unknown block hash {task.block_hash}")
        if block.number < target:
            return _reject(f"task block {block.number} is stale, expected {target}")
        if block.number > target:
            return _reject(
                f"task block {block.number} must be the last epoch boundary {target}"
            )

        # Operator selection
        try:
            expected_operator = await self.selector.select(block.number, block.hash)
        except RosterUnavailable as e:
            return Verdict(Outcome.UNDETERMINED, str(e))
        chosen = task.chosen_operator
        bt.logging.debug({
            "chosen_operator_comparison": {
                "claimed": chosen.model_dump(),
                "expected": expected_operator.model_dump(),
            }
        })
        if chosen.address != expected_operator.address or chosen.endpoint != expected_operator.endpoint:
            return _reject("chosen operator differs from re-derived selection")

        # Attested payload
        try:
            expected_data = payload_bytes(encode_attestation(chosen.address, task.is_valid))
            attested_data = payload_bytes(attested_payload)
        except ValueError as e:
            return _reject(f"malformed payload: {e}")
        if attested_data != expected_data:
            return _reject("attested payload does not match task")

        if task.is_valid:
            if not verify_response(task.response, block.hash, self.scheme, block.number):
                return _reject("healthcheck response is invalid")
            if task.response.address != chosen.address:
                return _reject("healthcheck response signed by another operator")
            return _accept("valid response from chosen operator")

        outcome = await self.prober.probe(
            chosen.endpoint, block.number, block.hash, self.callback_base,
        )
        if isinstance(outcome, ProbeFailure):
            return Verdict(
                Outcome.UNDETERMINED,
                f"re-probe of {chosen.address} failed: {outcome.reason}",
            )
        if outcome.is_valid:
            return _reject("operator answered the re-probe, claim of failure is false")
        return _accept("re-probe confirms operator failure")


__all__ = ["Outcome", "Validator", "Verdict"]
