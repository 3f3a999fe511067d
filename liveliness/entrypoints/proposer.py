"""Proposer entrypoint.

Watches the L2 chain, and on every epoch boundary probes the selected
operator, publishes the Task and submits the attestation.
"""

import argparse
import asyncio
import os
import signal
import sys

import bittensor as bt

from liveliness.errors import ConfigError


def main() -> None:
    from liveliness.entrypoints.common import (
        add_settings_args,
        build_chain,
        build_prober,
        build_store,
        close_all,
        load_environment,
        log_settings,
        settings_from_args,
    )

    load_environment()
    bt.logging.info({"proposer": "starting"})

    parser = argparse.ArgumentParser(description="Liveliness Proposer")
    bt.Wallet.add_args(parser)
    bt.logging.add_args(parser)
    add_settings_args(parser)
    args = parser.parse_args()

    try:
        settings = settings_from_args(args)
        rpc, chain = build_chain(settings)
        _, prober = build_prober(settings)
    except ConfigError as e:
        bt.logging.error(str(e))
        sys.exit(1)

    wallet_name = os.environ.get("LIVELINESS_WALLET__NAME", getattr(args, "wallet.name", "default"))
    wallet_hotkey = os.environ.get("LIVELINESS_WALLET__HOTKEY", getattr(args, "wallet.hotkey", "default"))
    wallet = bt.Wallet(name=wallet_name, hotkey=wallet_hotkey)

    log_settings("proposer", settings, hotkey=wallet.hotkey.ss58_address)

    from liveliness.attestation import AggregatorClient
    from liveliness.chain.rpc import BlockPoller
    from liveliness.proposer import Proposer
    from liveliness.scheduler import EpochScheduler
    from liveliness.selector import OperatorSelector

    store = build_store(settings)
    submitter = AggregatorClient(rpc_url=settings.aggregator_rpc, wallet=wallet)
    proposer = Proposer(
        selector=OperatorSelector(chain),
        prober=prober,
        store=store,
        submitter=submitter,
        callback_base=settings.callback_base,
        retries=settings.retries,
        retry_delay=settings.retry_delay,
        task_definition_id=settings.task_definition_id,
    )

    queue: asyncio.Queue[int] = asyncio.Queue()
    scheduler = EpochScheduler(chain=chain, proposer=proposer, epoch=settings.epoch, queue=queue)
    poller = BlockPoller(rpc=rpc, queue=queue, poll_interval=settings.poll_interval)

    loop = asyncio.new_event_loop()

    def _signal_handler(sig, frame):
        bt.logging.info({"proposer": "shutdown_signal_received"})
        poller.stop()
        scheduler.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        loop.run_until_complete(asyncio.gather(poller.run(), scheduler.run()))
    except KeyboardInterrupt:
        bt.logging.info({"proposer": "keyboard_interrupt"})
    finally:
        loop.run_until_complete(close_all(store, submitter, prober, rpc))
        loop.close()
        bt.logging.info({"proposer": "stopped"})


if __name__ == "__main__":
    main()
