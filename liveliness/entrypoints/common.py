"""Wiring shared by the proposer and validator processes."""

from __future__ import annotations

import argparse
import os
from typing import Any

import bittensor as bt
from dotenv import load_dotenv

from liveliness.chain.roster import RosterHistory
from liveliness.chain.rpc import DevnetChainView, JsonRpcClient, RpcChainView
from liveliness.config import Settings, load_object
from liveliness.errors import ConfigError
from liveliness.prober import HealthcheckProber, SignatureScheme
from liveliness.store.filesystem import FilesystemArtifactStore
from liveliness.store.interface import ArtifactStore
from liveliness.store.ipfs import IPFSArtifactStore


def load_environment() -> None:
    # Load .env if not in test mode
    if os.environ.get("LIVELINESS_TEST_MODE") != "true":
        load_dotenv()


def add_settings_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--l2_rpc", type=str, required=False)
    parser.add_argument("--aggregator_rpc", type=str, required=False)
    parser.add_argument("--attestation_center_address", type=str, required=False)
    parser.add_argument("--epoch", type=int, required=False)
    parser.add_argument("--retries", type=int, required=False)
    parser.add_argument("--retry_delay", type=float, required=False)
    parser.add_argument("--probe_timeout", type=float, required=False)
    parser.add_argument("--data_dir", type=str, required=False)
    parser.add_argument("--roster_file", type=str, required=False)
    parser.add_argument("--signature_scheme", type=str, required=False)


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {name: getattr(args, name, None) for name in Settings.model_fields}
    return Settings.from_env(overrides)


def build_chain(settings: Settings) -> tuple[JsonRpcClient, RpcChainView]:
    if not settings.attestation_center_address and not settings.roster_file:
        raise ConfigError("LIVELINESS_ATTESTATION_CENTER_ADDRESS is required")
    rpc = JsonRpcClient(settings.l2_rpc)
    if settings.attestation_center_address:
        return rpc, RpcChainView(rpc, settings.attestation_center_address)
    bt.logging.warning({"chain": {"roster": "file", "path": settings.roster_file}})
    return rpc, DevnetChainView(rpc, RosterHistory.from_file(settings.roster_file))


def build_store(settings: Settings) -> ArtifactStore:
    if settings.ipfs_api_url and settings.ipfs_gateway_url:
        return IPFSArtifactStore(
            api_url=settings.ipfs_api_url,
            gateway_url=settings.ipfs_gateway_url,
            api_token=settings.ipfs_api_token,
        )
    return FilesystemArtifactStore(data_dir=settings.data_dir)


def build_prober(settings: Settings) -> tuple[SignatureScheme, HealthcheckProber]:
    if not settings.signature_scheme:
        raise ConfigError("LIVELINESS_SIGNATURE_SCHEME is required")
    scheme = load_object(settings.signature_scheme)
    if not isinstance(scheme, SignatureScheme):
        raise ConfigError(f"{settings.signature_scheme} does not provide verify()")
    return scheme, HealthcheckProber(scheme, timeout=settings.probe_timeout)


def log_settings(role: str, settings: Settings, **extra: Any) -> None:
    bt.logging.info({
        f"{role}_config": {
            "l2_rpc": settings.l2_rpc,
            "aggregator_rpc": settings.aggregator_rpc,
            "attestation_center_address": settings.attestation_center_address,
            "epoch": settings.epoch,
            "retries": settings.retries,
            "probe_timeout": settings.probe_timeout,
            **extra,
        }
    })


async def close_all(*resources: Any) -> None:
    for resource in resources:
        close = getattr(resource, "close", None)
        if close is not None:
            await close()


__all__ = [
    "add_settings_args",
    "build_chain",
    "build_prober",
    "build_store",
    "close_all",
    "load_environment",
    "log_settings",
    "settings_from_args",
]
