from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any, Callable, Dict, Optional

import websockets
from websockets.http11 import Request, Response

from shared.log import get_logger

logger = get_logger(__name__)

RUNNING_TEXT = "Jumble Clanker is running.\nSet ROOM_ID and check logs.\n"

StatusProvider = Callable[[], Dict[str, Any]]


class HealthServer:
    """
    Plain HTTP liveness endpoint for hosting platforms that idle quiet apps.

    Served by the websockets server: process_request answers every request
    before any WebSocket upgrade, so no socket is ever accepted.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 3000, status: Optional[StatusProvider] = None) -> None:
        self.host = host
        self.port = port
        self.status = status
        self._server: Optional[websockets.Server] = None

    def process_request(self, connection: websockets.ServerConnection, request: Request) -> Response:
        path = request.path.split("?", 1)[0]
        if path == "/":
            return connection.respond(HTTPStatus.OK, RUNNING_TEXT)
        if path == "/status" and self.status is not None:
            response = connection.respond(HTTPStatus.OK, json.dumps(self.status(), default=str) + "\n")
            del response.headers["Content-Type"]
            response.headers["Content-Type"] = "application/json"
            return response
        return connection.respond(HTTPStatus.NOT_FOUND, "Not found\n")

    async def _reject(self, websocket: websockets.ServerConnection) -> None:
        # process_request answers everything; nothing reaches here
        await websocket.close(code=1008)

    async def start(self) -> None:
        self._server = await websockets.serve(
            self._reject,
            self.host,
            self.port,
            process_request=self.process_request,
        )
        logger.info("[http] listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
