"""Process configuration.

Settings are built once at startup and passed into component constructors.
Precedence: environment (``LIVELINESS_*``) over CLI flags over defaults.
"""

from __future__ import annotations

import importlib
import os
from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from liveliness.errors import ConfigError
from liveliness.payload import is_address

ENV_PREFIX = "LIVELINESS_"

# Names used by earlier deployments of the execution/validation services
_LEGACY_ENV = {
    "l2_rpc": "L2_RPC",
    "aggregator_rpc": "OTHENTIC_CLIENT_RPC_ADDRESS",
    "attestation_center_address": "ATTESTATION_CENTER_ADDRESS",
}


class Settings(BaseModel):
    """Everything the proposer and validator need from the environment."""

    l2_rpc: str = Field(min_length=1)
    aggregator_rpc: str = Field(min_length=1, description="Also the probe callback base")
    attestation_center_address: str | None = None

    epoch: int = Field(default=10, gt=0)
    retries: int = Field(default=1, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)
    probe_timeout: float = Field(default=5.0, gt=0)
    task_definition_id: int = 0
    poll_interval: float = Field(default=2.0, gt=0)

    data_dir: str = "liveliness/data"
    ipfs_api_url: str | None = None
    ipfs_gateway_url: str | None = None
    ipfs_api_token: str | None = None
    roster_file: str | None = None
    signature_scheme: str | None = None

    validator_host: str = "0.0.0.0"
    validator_port: int = 4002

    @field_validator("attestation_center_address")
    @classmethod
    def check_contract_address(cls, value: str | None) -> str | None:
        if value is not None and not is_address(value):
            raise ValueError("expected a 0x-prefixed 20-byte address")
        return value.lower() if value else value

    @property
    def callback_base(self) -> str:
        return self.aggregator_rpc

    @classmethod
    def from_env(
        cls,
        overrides: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Settings":
        """Build settings from CLI ``overrides`` with the environment on top.

        Raises:
            ConfigError: If a required value is missing or malformed.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {k: v for k, v in (overrides or {}).items() if v is not None}

        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None and name in _LEGACY_ENV:
                raw = env.get(_LEGACY_ENV[name])
            if raw is not None and raw != "":
                values[name] = raw

        try:
            return cls(**values)
        except ValidationError as e:
            missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise ConfigError(f"invalid settings: {', '.join(missing)}") from e


def load_object(path: str) -> Any:
    """Import ``package.module:attribute``; classes are instantiated.

    Raises:
        ConfigError: If the path is malformed or cannot be imported.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"expected 'module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"cannot import {module_name}: {e}") from e

    obj = getattr(module, attr, None)
    if obj is None:
        raise ConfigError(f"{module_name} has no attribute {attr}")
    return obj() if isinstance(obj, type) else obj


__all__ = ["ENV_PREFIX", "Settings", "load_object"]
