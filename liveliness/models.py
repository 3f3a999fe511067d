"""Pydantic models for liveliness tasks.

The Task artifact is serialized with camelCase keys so that proposers and
validators running different builds read the same JSON.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class Block(BaseModel):
    """Block metadata needed to pin reads and bind probes."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=0)
    hash: str

    @field_validator("hash", mode="before")
    @classmethod
    def normalize_hash(cls, value: Any) -> Any:
        return _lower(value)


class OperatorRecord(BaseModel):
    """An operator resolved from the roster at one block height."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: str = Field(alias="operatorAddress")
    endpoint: str

    @field_validator("address", mode="before")
    @classmethod
    def normalize_address(cls, value: Any) -> Any:
        return _lower(value)


class HealthcheckResponse(BaseModel):
    """Operator-signed reply to a healthcheck challenge.

    Extra fields sent by the operator are kept so the published Task holds
    the reply exactly as received.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    block_number: int = Field(alias="blockNumber")
    block_hash: str = Field(alias="blockHash")
    address: str
    signature: str

    @field_validator("block_hash", "address", mode="before")
    @classmethod
    def normalize_hex(cls, value: Any) -> Any:
        return _lower(value)


class Task(BaseModel):
    """Published proof of one epoch's healthcheck."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    block_hash: str = Field(alias="blockHash")
    chosen_operator: OperatorRecord = Field(alias="chosenOperator")
    response: HealthcheckResponse
    is_valid: bool = Field(alias="isValid")

    @field_validator("block_hash", mode="before")
    @classmethod
    def normalize_hash(cls, value: Any) -> Any:
        return _lower(value)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


__all__ = ["Block", "HealthcheckResponse", "OperatorRecord", "Task"]
