"""Liveliness attestation for off-chain operators.

A proposer selects one operator per epoch boundary, probes it, publishes the
result as a Task artifact and attests to it. Validators re-derive the same
selection from chain state and audit the claim.
"""

__version__ = "0.1.0"
