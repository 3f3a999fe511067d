"""HTTP endpoint exposing the validator to the attestation layer.

Routes:
  POST /task/validate - validate {proofOfTask, data}, replies {data: bool}
  GET  /health        - liveness of the validator process itself
"""

from __future__ import annotations

import bittensor as bt
from aiohttp import web

from liveliness.errors import FatalValidatorError
from liveliness.validator import Validator


def _reply(data, *, error: bool = False, message: str | None = None, status: int = 200) -> web.Response:
    return web.json_response({"data": data, "error": error, "message": message}, status=status)


class ValidationHTTPServer:
    """Lightweight async HTTP server in front of a Validator."""

    def __init__(self, validator: Validator, host: str = "0.0.0.0", port: int = 4002):
        self.validator = validator
        self.host = host
        self.port = port
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/task/validate", self._handle_validate)
        app.router.add_get("/health", self._handle_health)
        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        bt.logging.info({"validation_http": {"status": "started", "port": self.port}})

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner:
            await self._runner.cleanup()
            bt.logging.info({"validation_http": "stopped"})

    async def _handle_health(self, request: web.Request) -> web.Response:
        return _reply("ok")

    async def _handle_validate(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
            proof_of_task = body["proofOfTask"]
            data = body["data"]
        except Exception:
            bt.logging.warning({"validation_request": {"status": 400, "error": "invalid_body"}})
            return _reply(None, error=True, message="invalid_body", status=400)
        if not isinstance(proof_of_task, str) or not isinstance(data, str):
            return _reply(None, error=True, message="invalid_body", status=400)

        try:
            result = await self.validator.validate(proof_of_task, data)
        except FatalValidatorError as e:
            bt.logging.error({"validation_request": {"proof_of_task": proof_of_task, "status": 500, "fatal": str(e)}})
            return _reply(None, error=True, message=f"undetermined: {e}", status=500)
        except Exception as e:
            bt.logging.error({"validation_request": {"proof_of_task": proof_of_task, "status": 500, "error": str(e)}})
            return _reply(None, error=True, message=str(e), status=500)

        bt.logging.info({"validation_request": {"proof_of_task": proof_of_task, "status": 200, "result": result}})
        return _reply(result)


__all__ = ["ValidationHTTPServer"]
