"""Error kinds raised by the liveliness core.

A rejected claim is not an error: the validator reports it as ``False``.
"""

from __future__ import annotations


class LivelinessError(Exception):
    """Base class for liveliness errors."""


class ConfigError(LivelinessError):
    """Missing or malformed process configuration."""


class RosterUnavailable(LivelinessError):
    """Active-operator roster is empty or unreadable at a pinned height."""

    def __init__(self, block_number: int, detail: str = ""):
        self.block_number = block_number
        message = f"roster unavailable at block {block_number}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class HealthcheckFailed(LivelinessError):
    """Healthcheck attempt failed; the proposer run is abandoned."""


class PublishFailed(LivelinessError):
    """Artifact store rejected or failed to store the Task."""


class AttestationSubmitFailed(LivelinessError):
    """Attestation could not be submitted to the aggregator."""


class FatalValidatorError(LivelinessError):
    """Validator could not reach a verdict."""


__all__ = [
    "AttestationSubmitFailed",
    "ConfigError",
    "FatalValidatorError",
    "HealthcheckFailed",
    "LivelinessError",
    "PublishFailed",
    "RosterUnavailable",
]
