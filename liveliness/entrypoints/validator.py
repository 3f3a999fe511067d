"""Validator entrypoint.

Serves POST /task/validate for the attestation layer. No wallet is needed:
the validator only reads chain state, the artifact store and operators.
"""

import argparse
import asyncio
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
    bt.logging.info({"validator": "starting"})

    parser = argparse.ArgumentParser(description="Liveliness Validator")
    bt.logging.add_args(parser)
    add_settings_args(parser)
    parser.add_argument("--validator_host", type=str, required=False)
    parser.add_argument("--validator_port", type=int, required=False)
    args = parser.parse_args()

    try:
        settings = settings_from_args(args)
        rpc, chain = build_chain(settings)
        scheme, prober = build_prober(settings)
    except ConfigError as e:
        bt.logging.error(str(e))
        sys.exit(1)

    log_settings("validator", settings, port=settings.validator_port)

    from liveliness.server import ValidationHTTPServer
    from liveliness.validator import Validator

    store = build_store(settings)
    validator = Validator(
        chain=chain,
        store=store,
        prober=prober,
        scheme=scheme,
        callback_base=settings.callback_base,
        epoch=settings.epoch,
    )
    server = ValidationHTTPServer(
        validator, host=settings.validator_host, port=settings.validator_port,
    )

    loop = asyncio.new_event_loop()
    stopped = asyncio.Event()

    def _signal_handler(sig, frame):
        bt.logging.info({"validator": "shutdown_signal_received"})
        loop.call_soon_threadsafe(stopped.set)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    async def _serve() -> None:
        await server.start()
        await stopped.wait()
        await server.stop()

    try:
        loop.run_until_complete(_serve())
    except KeyboardInterrupt:
        bt.logging.info({"validator": "keyboard_interrupt"})
    finally:
        loop.run_until_complete(close_all(store, prober, rpc))
        loop.close()
        bt.logging.info({"validator": "stopped"})


if __name__ == "__main__":
    main()
